"""Pytest fixtures for session-inspect tests."""

import pytest
from pathlib import Path
import shutil


@pytest.fixture
def fixtures_dir() -> Path:
    """Path to the test fixtures directory."""
    return Path(__file__).parent / 'fixtures'


@pytest.fixture
def sample_session_path(fixtures_dir) -> Path:
    """Path to the current-schema session JSONL file."""
    return fixtures_dir / 'sample_session.jsonl'


@pytest.fixture
def legacy_session_path(fixtures_dir) -> Path:
    """Path to the legacy-schema session JSONL file."""
    return fixtures_dir / 'legacy_session.jsonl'


@pytest.fixture
def malformed_path(fixtures_dir) -> Path:
    """Path to the malformed JSONL file."""
    return fixtures_dir / 'malformed.jsonl'


@pytest.fixture
def sample_text(sample_session_path) -> str:
    return sample_session_path.read_text(encoding='utf-8')


@pytest.fixture
def legacy_text(legacy_session_path) -> str:
    return legacy_session_path.read_text(encoding='utf-8')


@pytest.fixture
def temp_sessions_dir(tmp_path, fixtures_dir):
    """Sessions directory laid out like the runtime's, with the sessions.json index."""
    sessions_dir = tmp_path / 'sessions'
    sessions_dir.mkdir()

    shutil.copy(fixtures_dir / 'sample_session.jsonl', sessions_dir / 'test-session-001.jsonl')
    shutil.copy(fixtures_dir / 'legacy_session.jsonl', sessions_dir / 'legacy-session.jsonl')
    shutil.copy(fixtures_dir / 'sessions.json', sessions_dir / 'sessions.json')
    # Active-session lock files must be ignored
    (sessions_dir / 'test-session-001.jsonl.lock').write_text('')

    return sessions_dir


@pytest.fixture
def temp_home(tmp_path, monkeypatch):
    """Point the home directory at a temporary directory."""
    home = tmp_path / 'home'
    home.mkdir()
    monkeypatch.setattr(Path, 'home', lambda: home)
    return home
