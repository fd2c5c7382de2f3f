"""Tests for user configuration."""

import json
import pytest
from pathlib import Path

from session_inspect.budget import BudgetConfig, BudgetConfigError
from session_inspect.config import (
    get_budget_config,
    get_config_file_path,
    get_default_sessions_dir,
    get_sessions_dir,
    load_config,
    save_config,
)


class TestConfigFile:
    """Tests for config file operations."""

    def test_get_config_file_path(self, temp_home):
        """Config file lives under the home directory."""
        path = get_config_file_path()
        assert path == temp_home / '.session-inspect' / 'config.json'
        assert path.parent.is_dir()

    def test_load_config_empty(self, temp_home):
        """Loading a nonexistent config returns an empty dict."""
        assert load_config() == {}

    def test_load_config_corrupted(self, temp_home):
        """Corrupted config returns an empty dict."""
        get_config_file_path().write_text('{oops')
        assert load_config() == {}

    def test_load_config_not_an_object(self, temp_home):
        get_config_file_path().write_text('[1, 2]')
        assert load_config() == {}

    def test_save_and_load(self, temp_home):
        save_config(sessions_dir=Path('/data/sessions'), budget={'contextWindow': 100000})
        data = json.loads(get_config_file_path().read_text())
        assert data == {'sessions_dir': '/data/sessions', 'budget': {'contextWindow': 100000}}
        assert load_config() == data

    def test_save_merges(self, temp_home):
        """Existing values are preserved when not provided."""
        save_config(sessions_dir=Path('/data/sessions'), budget={'contextWindow': 100000})
        save_config(budget={'keepRecentTokens': 10000})

        config = load_config()
        assert config['sessions_dir'] == '/data/sessions'
        assert config['budget'] == {'contextWindow': 100000, 'keepRecentTokens': 10000}


class TestSessionsDir:
    """Tests for sessions directory resolution."""

    def test_default(self, temp_home):
        assert get_sessions_dir() == get_default_sessions_dir()
        assert get_default_sessions_dir() == temp_home / '.openclaw' / 'agents' / 'main' / 'sessions'

    def test_configured(self, temp_home):
        save_config(sessions_dir=Path('/data/sessions'))
        assert get_sessions_dir() == Path('/data/sessions')

    def test_override_wins(self, temp_home):
        save_config(sessions_dir=Path('/data/sessions'))
        assert get_sessions_dir('/elsewhere') == Path('/elsewhere')


class TestBudgetConfig:
    """Tests for get_budget_config function."""

    def test_defaults(self, temp_home):
        assert get_budget_config() == BudgetConfig()

    def test_file_values_over_defaults(self, temp_home):
        save_config(budget={'contextWindow': 100000, 'keepRecentTokens': 10000})
        config = get_budget_config()
        assert config.context_window == 100000
        assert config.keep_recent_tokens == 10000
        assert config.reserve_tokens == 16384

    def test_invalid_values_raise(self, temp_home):
        save_config(budget={'contextWindow': 1000})
        with pytest.raises(BudgetConfigError):
            get_budget_config()

    def test_non_dict_budget_ignored(self, temp_home):
        get_config_file_path().write_text(json.dumps({'budget': 'big'}))
        assert get_budget_config() == BudgetConfig()
