"""Configuration loading: JSON file over built-in defaults, then env overrides."""

import copy
import json
import logging
import os
import warnings
from pathlib import Path
from typing import Any

from stackit.auth.passwords import DEFAULT_ROUNDS
from stackit.auth.service import DEFAULT_TIMEOUT
from stackit.auth.store import DEFAULT_DB_PATH
from stackit.events import DEFAULT_EVENT_LOG

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = ".stackit/config.json"

DEFAULTS: dict[str, Any] = {
    "host": "0.0.0.0",
    "port": 5000,
    "cors_origins": ["http://localhost:8080"],
    "auth": {
        "db_path": DEFAULT_DB_PATH,
        "bcrypt_rounds": DEFAULT_ROUNDS,
        "request_timeout": DEFAULT_TIMEOUT,
        "jwt_secret": "",
        "token_expiry_hours": 24,
    },
    "events": {
        "path": DEFAULT_EVENT_LOG,
    },
}

# env var -> (section or None, key, type)
ENV_OVERRIDES = {
    "STACKIT_DB_PATH": ("auth", "db_path", str),
    "STACKIT_JWT_SECRET": ("auth", "jwt_secret", str),
    "STACKIT_PORT": (None, "port", int),
}


class ConfigError(Exception):
    """Configuration file is missing, unreadable, or invalid."""


def _merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def apply_env(config: dict[str, Any], environ=None) -> dict[str, Any]:
    environ = os.environ if environ is None else environ
    for var, (section, key, cast) in ENV_OVERRIDES.items():
        raw = environ.get(var)
        if not raw:
            continue
        try:
            value = cast(raw)
        except ValueError as e:
            raise ConfigError(f"{var}={raw!r} is not a valid {cast.__name__}") from e
        target = config.setdefault(section, {}) if section else config
        target[key] = value
    return config


def validate(config: dict[str, Any]) -> None:
    auth = config["auth"]
    rounds = auth.get("bcrypt_rounds")
    if not isinstance(rounds, int) or not 4 <= rounds <= 31:
        raise ConfigError(f"auth.bcrypt_rounds must be an integer 4-31, got {rounds!r}")
    timeout = auth.get("request_timeout")
    if not isinstance(timeout, (int, float)) or timeout <= 0:
        raise ConfigError(f"auth.request_timeout must be positive, got {timeout!r}")
    port = config.get("port")
    if not isinstance(port, int) or not 0 <= port <= 65535:
        raise ConfigError(f"port must be 0-65535, got {port!r}")
    if "CHANGE-ME" in (auth.get("jwt_secret") or ""):
        warnings.warn("auth.jwt_secret contains placeholder value; tokens will be insecure")


def load_config(config_path: str | None = None, environ=None) -> dict[str, Any]:
    """Load configuration from an optional JSON file.

    A path that was passed explicitly must exist; the default path is
    optional and falls back to built-in defaults.
    """
    overrides: dict[str, Any] = {}
    path = Path(config_path or DEFAULT_CONFIG_PATH)
    if path.exists():
        try:
            with open(path) as f:
                overrides = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigError(f"Cannot read config {path}: {e}") from e
        if not isinstance(overrides, dict):
            raise ConfigError(f"Config {path} must contain a JSON object")
    elif config_path:
        raise ConfigError(f"Config not found at {path}")
    else:
        logger.debug(f"No config at {path}, using defaults")

    config = apply_env(_merge(DEFAULTS, overrides), environ)
    validate(config)
    return config
