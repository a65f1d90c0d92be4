"""Configuration and filesystem paths for TradeJournal."""

import json
import logging
import os
from pathlib import Path
from typing import Optional

import toml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG = {
    "journal": {
        "default_currency": "USD",
        "daily_window_days": 30,
    },
    "cloud": {
        "project_id": "",
    },
}


def get_home_dir() -> Path:
    """Get the TradeJournal home directory.

    Uses ``TRADEJOURNAL_HOME`` when set, otherwise ``~/.config/tradejournal``.
    """
    override = os.environ.get("TRADEJOURNAL_HOME")
    if override:
        return Path(override)
    return Path.home() / ".config" / "tradejournal"


def get_config_path() -> Path:
    """Get the config file path."""
    return get_home_dir() / "config.toml"


def get_db_path() -> Path:
    """Get the local ledger database path."""
    return get_home_dir() / "tradejournal.db"


def get_session_path() -> Path:
    """Get the path of the file recording the signed-in user."""
    return get_home_dir() / "session.json"


def load_config(config_path: Optional[Path] = None) -> dict:
    """Load configuration merged over the defaults.

    Args:
        config_path: Optional explicit path. Uses the default path if None.

    Returns:
        Configuration dictionary. Defaults are returned when the file is
        missing or cannot be parsed.
    """
    path = config_path or get_config_path()
    config = {section: dict(values) for section, values in DEFAULT_CONFIG.items()}

    if not path.exists():
        return config

    try:
        loaded = toml.load(path)
    except (toml.TomlDecodeError, OSError) as e:
        logger.warning("Ignoring unreadable config %s: %s", path, e)
        return config

    for section, values in loaded.items():
        if isinstance(values, dict):
            config.setdefault(section, {}).update(values)
        else:
            config[section] = values
    return config


def create_template_config(config_path: Optional[Path] = None) -> Path:
    """Write a template config file if none exists.

    Returns:
        Path of the config file.
    """
    path = config_path or get_config_path()
    if not path.exists():
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            toml.dump(DEFAULT_CONFIG, f)
    return path


def resolve_project_id(config: dict) -> Optional[str]:
    """Resolve the Firebase project id from config or environment."""
    project_id = config.get("cloud", {}).get("project_id") or None
    return (
        project_id
        or os.environ.get("FIREBASE_PROJECT_ID")
        or os.environ.get("GOOGLE_CLOUD_PROJECT")
        or None
    )


def load_session() -> Optional[str]:
    """Get the uid of the signed-in user, if any."""
    path = get_session_path()
    if not path.exists():
        return None
    try:
        with open(path) as f:
            data = json.load(f)
    except (json.JSONDecodeError, OSError):
        return None
    return data.get("uid") or None


def save_session(uid: str) -> None:
    """Record the signed-in user."""
    path = get_session_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        json.dump({"uid": uid}, f)


def clear_session() -> None:
    """Forget the signed-in user."""
    path = get_session_path()
    if path.exists():
        path.unlink()
