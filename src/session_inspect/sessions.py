"""Session discovery, loading and per-session metadata."""

from pathlib import Path
from typing import Optional
from datetime import datetime, timezone
import json
import logging

from .models import SessionConfig, SessionInfo, SessionView
from .parser import parse_jsonl
from .stats import StatsAccumulator
from .timeline import build_timeline

logger = logging.getLogger(__name__)

SESSIONS_INDEX = 'sessions.json'


def find_session_files(sessions_dir: Path) -> list[Path]:
    """
    Find all session JSONL files in a directory.

    Excludes .jsonl.lock files (active sessions).
    Returns files sorted by modification time (newest first).
    """
    if not sessions_dir.exists():
        return []

    files = [f for f in sessions_dir.glob('*.jsonl') if f.is_file()]
    files.sort(key=lambda p: p.stat().st_mtime, reverse=True)
    return files


def _file_times(stat) -> tuple[datetime, datetime]:
    modified = datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc)
    # st_birthtime is not available on every platform
    created_ts = getattr(stat, 'st_birthtime', None) or stat.st_ctime
    return modified, datetime.fromtimestamp(created_ts, tz=timezone.utc)


def list_sessions(sessions_dir: Path) -> list[SessionInfo]:
    """List sessions in a directory, most recently modified first."""
    sessions = []
    for path in find_session_files(sessions_dir):
        stat = path.stat()
        modified, created = _file_times(stat)
        sessions.append(SessionInfo(
            id=path.stem,
            filename=path.name,
            path=path,
            size=stat.st_size,
            modified=modified,
            created=created,
        ))
    return sessions


def session_path(sessions_dir: Path, session_id: str) -> Path:
    """Path of a session file; rejects ids that would leave the directory."""
    if not session_id or '/' in session_id or '\\' in session_id or '..' in session_id:
        raise ValueError(f"Invalid session id: {session_id!r}")
    return sessions_dir / f"{session_id}.jsonl"


def read_session(sessions_dir: Path, session_id: str) -> str:
    """Raw text of a session log."""
    path = session_path(sessions_dir, session_id)
    if not path.is_file():
        raise FileNotFoundError(f"Session not found: {session_id}")
    return path.read_text(encoding='utf-8')


def _names(entries) -> list[str]:
    names = []
    if not isinstance(entries, list):
        return names
    for entry in entries:
        if isinstance(entry, str):
            names.append(entry)
        elif isinstance(entry, dict) and entry.get('name'):
            names.append(str(entry['name']))
    return names


def _session_config(key: str, entry: dict) -> SessionConfig:
    skills = _names(entry.get('skills'))
    if not skills and isinstance(entry.get('skillsSnapshot'), dict):
        skills = _names(entry['skillsSnapshot'].get('skills'))

    tools = _names(entry.get('tools'))
    report = entry.get('systemPromptReport')
    if not tools and isinstance(report, dict) and isinstance(report.get('tools'), dict):
        tools = _names(report['tools'].get('entries'))

    context_tokens = entry.get('contextTokens')
    return SessionConfig(
        session_key=key,
        session_id=str(entry.get('sessionId')),
        model=entry.get('model'),
        provider=entry.get('modelProvider') or entry.get('provider'),
        context_tokens=context_tokens if isinstance(context_tokens, int) else None,
        skills=skills,
        tools=tools,
        raw=entry,
    )


def load_session_config(sessions_dir: Path, session_id: str) -> Optional[SessionConfig]:
    """
    Look up runtime metadata for a session in the sessions.json index.

    Returns None when the index is missing, unreadable, or has no entry for
    the session.
    """
    index_path = sessions_dir / SESSIONS_INDEX
    if not index_path.exists():
        return None

    try:
        with index_path.open('r', encoding='utf-8') as f:
            index = json.load(f)
    except (json.JSONDecodeError, OSError) as e:
        logger.warning("Could not read %s (%s)", index_path, type(e).__name__)
        return None

    if not isinstance(index, dict):
        return None

    for key, entry in index.items():
        if isinstance(entry, dict) and entry.get('sessionId') == session_id:
            return _session_config(key, entry)
    return None


def build_session_view(session_id: str, path: str, text: str) -> SessionView:
    """Parse, normalize and aggregate one session's raw text."""
    parsed = parse_jsonl(text)
    warnings = list(parsed.warnings)
    timeline = build_timeline(parsed.records, warnings)
    accumulator = StatsAccumulator().extend(parsed.records)

    return SessionView(
        id=session_id,
        path=path,
        name=session_id[:8],
        records=parsed.records,
        timeline=timeline,
        stats=accumulator.stats,
        warnings=warnings,
        created_at=accumulator.first_timestamp,
        modified_at=accumulator.last_timestamp,
    )


def load_session_view(sessions_dir: Path, session_id: str) -> SessionView:
    """Load a session from the sessions directory, with its runtime config if indexed."""
    text = read_session(sessions_dir, session_id)
    view = build_session_view(session_id, str(session_path(sessions_dir, session_id)), text)
    view.config = load_session_config(sessions_dir, session_id)
    return view
