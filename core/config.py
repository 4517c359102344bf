"""YAML settings for the events feed.

Every section is optional; anything left out falls back to the defaults
below.  The secret token may also be supplied through ``GITHUB_TOKEN``,
which takes precedence over the file.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml

from core.engine import DEFAULT_ERROR_COOLDOWN_SECONDS, DEFAULT_POLL_FLOOR_SECONDS
from core.fetcher import (
    DEFAULT_ACCEPT,
    DEFAULT_BASE_URL,
    DEFAULT_TIMEOUT_SECONDS,
    DEFAULT_USER_AGENT,
)
from core.retry import RetryPolicy
from core.tracker import DEFAULT_POLL_INTERVAL

logger = logging.getLogger(__name__)

TOKEN_ENV_VAR = "GITHUB_TOKEN"


class ConfigError(ValueError):
    """Raised when the settings file is missing or malformed."""


@dataclass(frozen=True)
class ApiSettings:
    base_url: str = DEFAULT_BASE_URL
    token: Optional[str] = None
    user_agent: str = DEFAULT_USER_AGENT
    accept: str = DEFAULT_ACCEPT
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS


@dataclass(frozen=True)
class PollingSettings:
    default_interval_seconds: int = DEFAULT_POLL_INTERVAL
    floor_seconds: int = DEFAULT_POLL_FLOOR_SECONDS
    error_cooldown_seconds: float = DEFAULT_ERROR_COOLDOWN_SECONDS


@dataclass(frozen=True)
class DisplaySettings:
    filter: str = "All"
    query: str = ""


@dataclass(frozen=True)
class Settings:
    api: ApiSettings = field(default_factory=ApiSettings)
    polling: PollingSettings = field(default_factory=PollingSettings)
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    display: DisplaySettings = field(default_factory=DisplaySettings)


def _section(config: Mapping[str, Any], name: str, cls: type) -> Any:
    raw = config.get(name) or {}
    if not isinstance(raw, Mapping):
        raise ConfigError(f"section {name!r} must be a mapping")
    try:
        return cls(**raw)
    except TypeError as exc:
        raise ConfigError(f"invalid {name!r} section: {exc}") from exc


def parse_settings(
    config: Optional[Mapping[str, Any]],
    environ: Optional[Mapping[str, str]] = None,
) -> Settings:
    """Build :class:`Settings` from an already-decoded mapping."""
    config = config or {}
    if not isinstance(config, Mapping):
        raise ConfigError("settings root must be a mapping")
    environ = os.environ if environ is None else environ

    api: ApiSettings = _section(config, "api", ApiSettings)
    env_token = environ.get(TOKEN_ENV_VAR)
    if env_token:
        api = replace(api, token=env_token)

    retry: RetryPolicy = _section(config, "retry", RetryPolicy)
    if retry.max_attempts < 1:
        raise ConfigError("retry.max_attempts must be at least 1")

    return Settings(
        api=api,
        polling=_section(config, "polling", PollingSettings),
        retry=retry,
        display=_section(config, "display", DisplaySettings),
    )


def load_settings(
    path: Path, environ: Optional[Mapping[str, str]] = None
) -> Settings:
    """Read the YAML file at *path* and return the resulting settings."""
    try:
        with open(path) as fh:
            config = yaml.safe_load(fh)
    except OSError as exc:
        raise ConfigError(f"cannot read settings file {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"invalid YAML in {path}: {exc}") from exc

    settings = parse_settings(config, environ)
    logger.info(
        "Loaded settings from %s (base_url=%s, token=%s)",
        path,
        settings.api.base_url,
        "set" if settings.api.token else "unset",
    )
    return settings
