"""
Request Context and Configuration State for Logging.

The request id lives in a ContextVar so every log line emitted while
handling one HTTP request (including the route, the cache and the
proxy) can be correlated. Background preload passes set the job id
instead, so their lines can be matched with the status polls.

Environment Variables:
    - PRONOUNCE_MS_LOG_LEVEL: Override log level (1-4 or name)
    - PRONOUNCE_MS_LOG_DIR: Directory for the JSONL log file
    - PRONOUNCE_MS_JSONL_FILE: JSONL filename
    - PRONOUNCE_MS_LOG_ROTATE_BYTES: Max log file size
    - PRONOUNCE_MS_LOG_ROTATE_BACKUP: Number of backup files
"""
from __future__ import annotations

import os
from contextvars import ContextVar
from typing import Any, Dict

import yaml

from .levels import LEVEL_NAMES, LogLevel

# "-" marks log lines emitted outside any request
_request_id: ContextVar[str] = ContextVar("request_id", default="-")

_configured: bool = False
_log_config: Dict[str, Any] = {}
_current_level: LogLevel = LogLevel.NORMAL


def get_request_id() -> str:
    """Get the request id for the current context, "-" if unset."""
    return _request_id.get()


def set_request_id(rid: str) -> None:
    """Set the request id used to tag subsequent log lines."""
    _request_id.set(rid)


def get_level() -> LogLevel:
    return _current_level


def set_level(level: LogLevel) -> None:
    global _current_level
    _current_level = level


def get_level_name() -> str:
    """Current level as a display name ("MINIMAL" ... "DEBUG")."""
    return LEVEL_NAMES.get(_current_level, "NORMAL")


def is_configured() -> bool:
    return _configured


def set_configured(value: bool) -> None:
    global _configured
    _configured = value


def get_log_config() -> Dict[str, Any]:
    return _log_config


def set_log_config(config: Dict[str, Any]) -> None:
    global _log_config
    _log_config = config


def read_logging_config() -> Dict[str, Any]:
    """
    Resolve logging configuration.

    Priority (highest first):
        1. PRONOUNCE_MS_* environment variables
        2. logging section of the settings file (PRONOUNCE_MS_SETTINGS)
        3. Defaults

    Returns:
        Dictionary with the resolved logging options.
    """
    cfg: Dict[str, Any] = {}

    settings_path = os.getenv("PRONOUNCE_MS_SETTINGS", "config/settings.yaml")
    try:
        from pronounce_ms.core.config import load_settings
        settings = load_settings(settings_path)
        cfg.update(settings.raw.get("logging", {}) or {})
    except (OSError, ValueError, yaml.YAMLError):
        # Missing or unreadable settings file: fall back to defaults
        pass

    if os.getenv("PRONOUNCE_MS_LOG_LEVEL"):
        cfg["level"] = os.environ["PRONOUNCE_MS_LOG_LEVEL"]
    if os.getenv("PRONOUNCE_MS_LOG_DIR"):
        cfg["log_dir"] = os.environ["PRONOUNCE_MS_LOG_DIR"]
    if os.getenv("PRONOUNCE_MS_JSONL_FILE"):
        cfg["jsonl_file"] = os.environ["PRONOUNCE_MS_JSONL_FILE"]
    for env_name, key in (
        ("PRONOUNCE_MS_LOG_ROTATE_BYTES", "rotate_max_bytes"),
        ("PRONOUNCE_MS_LOG_ROTATE_BACKUP", "rotate_backup_count"),
    ):
        value = os.getenv(env_name)
        if value:
            try:
                cfg[key] = int(value)
            except ValueError:
                pass  # ignore malformed numbers

    return cfg
