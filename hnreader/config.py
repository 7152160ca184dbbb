import json
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

from hnreader.cache_utils import atomic_write_json
from hnreader.constants import (
    CACHE_FILE,
    COMMENTS_CACHE_TTL,
    EXTERNAL_REQUEST_SEMAPHORE,
    HN_USER_AGENT,
    LISTING_CACHE_TTL,
    REQUEST_TIMEOUT,
)
from hnreader.logging_config import get_logger

logger = get_logger(__name__)

CONFIG_DIR = Path.home() / ".config" / "hn_reader"
CONFIG_FILE = CONFIG_DIR / "config.json"


@dataclass
class Settings:
    listing_ttl: float = LISTING_CACHE_TTL
    comments_ttl: float = COMMENTS_CACHE_TTL
    request_timeout: float = REQUEST_TIMEOUT
    max_concurrency: int = EXTERNAL_REQUEST_SEMAPHORE
    user_agent: str = HN_USER_AGENT
    cache_file: str = CACHE_FILE
    log_level: str = "WARNING"


_FIELDS = {f.name: f for f in fields(Settings)}


def load_config() -> dict:
    if not CONFIG_FILE.exists():
        return {}
    try:
        with open(CONFIG_FILE, "r") as f:
            return json.load(f)
    except Exception:
        return {}


def _coerce(name: str, raw: Any) -> Any:
    """Convert a raw config value to the declared type of a Settings field."""
    value = _FIELDS[name].type(raw)
    if isinstance(value, (int, float)) and value <= 0:
        raise ValueError(f"{name} must be positive, got {raw!r}")
    return value


def save_setting(key: str, value: str) -> Settings:
    """Validate and persist one setting, returning the settings now in effect."""
    if key not in _FIELDS:
        raise ValueError(f"unknown setting {key!r}, expected one of: {', '.join(_FIELDS)}")
    config = load_config()
    config[key] = _coerce(key, value)
    atomic_write_json(CONFIG_FILE, config)
    return load_settings()


def load_settings() -> Settings:
    """Build Settings from the config file, falling back to defaults per key."""
    raw = load_config()
    settings = Settings()
    for name in _FIELDS:
        if name not in raw:
            continue
        try:
            value = _coerce(name, raw[name])
        except (TypeError, ValueError):
            logger.warning("invalid_config_value", key=name, value=raw[name])
            continue
        setattr(settings, name, value)
    return settings
