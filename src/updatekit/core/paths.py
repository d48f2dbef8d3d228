"""XDG-compliant path management for updatekit.

XDG defaults:
- Config: ~/.config/updatekit/
- State: ~/.local/state/updatekit/
"""

from __future__ import annotations

import os
from pathlib import Path

APP_NAME = "updatekit"


def _get_xdg_dir(env_var: str, default_subdir: str) -> Path:
    """Get XDG directory respecting environment variable override.

    Args:
        env_var: XDG environment variable name (e.g., "XDG_CONFIG_HOME").
        default_subdir: Default subdirectory under home (e.g., ".config").

    Returns:
        Path to the application-specific directory.
    """
    base = os.environ.get(env_var)
    if base:
        return Path(base) / APP_NAME
    return Path.home() / default_subdir / APP_NAME


def get_config_dir() -> Path:
    """Get the configuration directory path."""
    return _get_xdg_dir("XDG_CONFIG_HOME", ".config")


def get_state_dir() -> Path:
    """Get the state directory path, where log files are kept."""
    return _get_xdg_dir("XDG_STATE_HOME", ".local/state")


def get_config_path() -> Path:
    """Get the persisted configuration file path.

    Returns:
        Path to ~/.config/updatekit/config.json.
    """
    return get_config_dir() / "config.json"
