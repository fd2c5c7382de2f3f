"""User configuration for session-inspect."""

import json
from pathlib import Path
from typing import Optional

from .budget import BudgetConfig


def get_default_sessions_dir() -> Path:
    return Path.home() / '.openclaw' / 'agents' / 'main' / 'sessions'


def get_config_file_path() -> Path:
    """Get the path to the config file.

    Returns:
        Path to ~/.session-inspect/config.json
    """
    config_dir = Path.home() / '.session-inspect'
    config_dir.mkdir(parents=True, exist_ok=True)
    return config_dir / 'config.json'


def load_config() -> dict:
    """Load the config file.

    Returns:
        Config dictionary with optional keys:
        - sessions_dir: default sessions directory
        - budget: contextWindow / reserveTokens / keepRecentTokens / softThresholdTokens

        Returns empty dict if file doesn't exist or is corrupted.
    """
    config_file = get_config_file_path()

    if not config_file.exists():
        return {}

    try:
        with config_file.open('r') as f:
            data = json.load(f)
    except (json.JSONDecodeError, IOError):
        return {}

    return data if isinstance(data, dict) else {}


def save_config(
    sessions_dir: Optional[Path] = None,
    budget: Optional[dict] = None,
) -> dict:
    """Save config values, merging with the existing file.

    Existing values are preserved if not provided. ``budget`` entries are
    merged key by key. Returns the config as written.
    """
    config_file = get_config_file_path()
    config = load_config()

    if sessions_dir is not None:
        config['sessions_dir'] = str(sessions_dir)

    if budget:
        merged = dict(config.get('budget') or {})
        merged.update(budget)
        config['budget'] = merged

    with config_file.open('w') as f:
        json.dump(config, f, indent=2)

    return config


def get_sessions_dir(override: Optional[str] = None) -> Path:
    """Sessions directory: explicit override, then config file, then the runtime default."""
    if override:
        return Path(override)
    configured = load_config().get('sessions_dir')
    if configured:
        return Path(configured)
    return get_default_sessions_dir()


def get_budget_config() -> BudgetConfig:
    """Budget config with file values over the defaults.

    Raises:
        BudgetConfigError: if the merged values are invalid
    """
    budget = load_config().get('budget')
    if not isinstance(budget, dict):
        budget = {}
    return BudgetConfig.from_dict(budget).validate()
