"""
Runtime settings for matchflow.

Settings are resolved in three layers, later layers winning:

1. dataclass defaults,
2. an optional YAML file with ``provider:`` and ``matching:`` sections,
3. environment variables (a ``.env`` file is loaded first via
   python-dotenv).

Example YAML::

    provider:
      api_key: sk-...
      api_base_url: https://api.openai.com/v1
      embedding_model: text-embedding-ada-002
      completion_model: gpt-3.5-turbo
      request_timeout: 20
    matching:
      max_concurrency: 8
      cache_embeddings: true
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, fields, replace
from typing import Any, Dict, FrozenSet, Optional

import yaml  # type: ignore
from dotenv import load_dotenv

from .errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_PLACEHOLDER_KEYS = frozenset(
    {
        "demo-key-replace-with-real",
        "your-api-key-here",
        "changeme",
    }
)

# setting name -> environment variable
_ENV_VARS = {
    "api_key": "OPENAI_API_KEY",
    "api_base_url": "OPENAI_API_URL",
    "embedding_model": "MATCHFLOW_EMBEDDING_MODEL",
    "completion_model": "MATCHFLOW_COMPLETION_MODEL",
    "max_tokens": "MATCHFLOW_MAX_TOKENS",
    "temperature": "MATCHFLOW_TEMPERATURE",
    "request_timeout": "MATCHFLOW_REQUEST_TIMEOUT",
    "max_concurrency": "MATCHFLOW_MAX_CONCURRENCY",
    "cache_embeddings": "MATCHFLOW_CACHE_EMBEDDINGS",
    "cache_size": "MATCHFLOW_CACHE_SIZE",
}

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off", ""}


@dataclass(frozen=True)
class Settings:
    """Provider and matching configuration shared by every component."""

    api_key: Optional[str] = None
    api_base_url: str = "https://api.openai.com/v1"
    embedding_model: str = "text-embedding-ada-002"
    completion_model: str = "gpt-3.5-turbo"
    max_tokens: int = 500
    temperature: float = 0.7
    request_timeout: float = 30.0
    max_concurrency: int = 10
    cache_embeddings: bool = False
    cache_size: int = 1024
    placeholder_keys: FrozenSet[str] = field(default=DEFAULT_PLACEHOLDER_KEYS)

    def with_overrides(self, **overrides: Any) -> "Settings":
        return _coerce(replace(self, **{k: v for k, v in overrides.items() if v is not None}))


def _coerce(settings: Settings) -> Settings:
    """Convert string values (from YAML or the environment) to the declared types."""
    values: Dict[str, Any] = {}
    for f in fields(settings):
        value = getattr(settings, f.name)
        if f.name == "placeholder_keys":
            values[f.name] = frozenset(value)
            continue
        default_type = type(getattr(Settings, f.name, None)) if f.name != "api_key" else str
        try:
            if value is None:
                values[f.name] = None
            elif default_type is bool:
                values[f.name] = _to_bool(value)
            elif default_type is int:
                values[f.name] = int(value)
            elif default_type is float:
                values[f.name] = float(value)
            else:
                values[f.name] = str(value)
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"Invalid value for {f.name}: {value!r}") from exc
    if values["max_concurrency"] < 1:
        raise ConfigError("max_concurrency must be at least 1")
    if values["request_timeout"] <= 0:
        raise ConfigError("request_timeout must be positive")
    return Settings(**values)


def _to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUTHY:
        return True
    if text in _FALSY:
        return False
    raise ValueError(value)


def _load_yaml(config_path: str) -> Dict[str, Any]:
    with open(config_path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ConfigError(f"{config_path} must contain a mapping")
    merged: Dict[str, Any] = {}
    for section in ("provider", "matching"):
        merged.update(data.get(section) or {})
    known = {f.name for f in fields(Settings)}
    unknown = sorted(set(merged) - known)
    if unknown:
        logger.warning("Ignoring unknown settings in %s: %s", config_path, ", ".join(unknown))
    return {k: v for k, v in merged.items() if k in known}


def load_settings(config_path: Optional[str] = None, env: Optional[Dict[str, str]] = None) -> Settings:
    """Build ``Settings`` from defaults, an optional YAML file and the environment.

    Args:
        config_path: Optional path to a YAML file.
        env: Mapping to read overrides from.  Defaults to ``os.environ``
            after loading a ``.env`` file.

    Returns:
        A fully typed ``Settings`` instance.
    """
    if env is None:
        load_dotenv()
        env = dict(os.environ)
    values: Dict[str, Any] = {}
    if config_path:
        values.update(_load_yaml(config_path))
    for name, var in _ENV_VARS.items():
        if env.get(var) is not None:
            values[name] = env[var]
    settings = _coerce(replace(Settings(), **values))
    logger.debug(
        "Loaded settings: base_url=%s embedding_model=%s completion_model=%s",
        settings.api_base_url,
        settings.embedding_model,
        settings.completion_model,
    )
    return settings
