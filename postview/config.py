"""Postview configuration — loads settings from .env file or environment.

Config is loaded from (in priority order):
  1. Environment variables (highest priority)
  2. .env file in current directory
  3. .postview/.env file
  4. Defaults

Keys:
  POSTVIEW_YTDLP_PATH        metadata tool executable (default: yt-dlp)
  POSTVIEW_YTDLP_TIMEOUT     seconds before the tool is killed (default: 60)
  POSTVIEW_NAV_TIMEOUT       page navigation timeout, seconds (default: 30)
  POSTVIEW_CONTENT_TIMEOUT   wait for the post markup, seconds (default: 10)
  POSTVIEW_SETTLE_DELAY      pause after load for lazy media, seconds (default: 2)
  POSTVIEW_HEADLESS          run the browser headless (default: true)
  POSTVIEW_EVIDENCE_LIMIT    captured URLs kept per type (default: 100)
  POSTVIEW_LOG_LEVEL         log level for the CLI and server (default: INFO)
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)

_loaded = False

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def _parse_env_file(path: Path) -> dict[str, str]:
    """Parse a simple .env file (KEY=VALUE, one per line)."""
    values: dict[str, str] = {}
    if not path.exists():
        return values
    for line in path.read_text(encoding="utf-8").splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            continue
        key, _, value = line.partition("=")
        values[key.strip()] = value.strip().strip("\"'")
    return values


def load_config() -> None:
    """Load config from .env files into os.environ (if not already set)."""
    global _loaded
    if _loaded:
        return
    _loaded = True

    candidates = [
        Path.cwd() / ".env",
        Path.cwd() / ".postview" / ".env",
    ]

    for env_path in candidates:
        values = _parse_env_file(env_path)
        if values:
            logger.debug("Loaded config from %s", env_path)
            for key, value in values.items():
                if key not in os.environ:  # env vars take priority
                    os.environ[key] = value
            break  # use first found


def get(key: str, default: str = "") -> str:
    """Get a config value (loads .env on first call)."""
    load_config()
    return os.environ.get(key, default)


def get_float(key: str, default: float) -> float:
    raw = get(key)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("Ignoring malformed %s=%r, using %s", key, raw, default)
        return default


def get_int(key: str, default: int) -> int:
    raw = get(key)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring malformed %s=%r, using %s", key, raw, default)
        return default


def get_bool(key: str, default: bool) -> bool:
    raw = get(key).strip().lower()
    if not raw:
        return default
    if raw in _TRUE:
        return True
    if raw in _FALSE:
        return False
    logger.warning("Ignoring malformed %s=%r, using %s", key, raw, default)
    return default
