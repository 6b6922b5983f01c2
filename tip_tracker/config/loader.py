"""
Configuration management and loading.

Handles application settings and environment variables. The configuration
object is built once at process start and passed to the components that
need it.
"""

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml

from tip_tracker.core.errors import ConfigurationError

ENV_DB_PATH = "TIP_TRACKER_DB_PATH"
ENV_TIMEZONE = "TIP_TRACKER_TIMEZONE"
ENV_USER_ID = "TIP_TRACKER_USER_ID"

DEFAULT_TIMEZONE = "UTC"
DEFAULT_POLL_INTERVAL = 2.0
DEFAULT_MODEL = "gpt-4o-mini"


@dataclass(frozen=True)
class StoreConfig:
    """Location and polling behaviour of the tip store."""
    path: str
    poll_interval: float = DEFAULT_POLL_INTERVAL

    def __post_init__(self):
        """Validate the store credential is present and polling is sane."""
        if not self.path or not str(self.path).strip():
            raise ConfigurationError("store path is required and cannot be empty")
        if self.poll_interval <= 0:
            raise ConfigurationError("poll_interval must be > 0")


@dataclass(frozen=True)
class GenerationConfig:
    """Settings for the text-generation service."""
    model: str = DEFAULT_MODEL
    temperature: float = 0.7
    max_tokens: int = 200

    def __post_init__(self):
        """Validate generation settings."""
        if not self.model or not self.model.strip():
            raise ConfigurationError("generation model cannot be empty")
        if not 0 <= self.temperature <= 2:
            raise ConfigurationError("temperature must be between 0 and 2")
        if self.max_tokens <= 0:
            raise ConfigurationError("max_tokens must be > 0")


@dataclass(frozen=True)
class TrackerConfig:
    """Complete tip tracker configuration."""
    store: StoreConfig
    timezone: str = DEFAULT_TIMEZONE
    generation: GenerationConfig = field(default_factory=GenerationConfig)
    user_id: Optional[str] = None

    def __post_init__(self):
        """Validate the timezone name resolves."""
        _resolve_timezone(self.timezone)

    @property
    def tz(self) -> ZoneInfo:
        return _resolve_timezone(self.timezone)


def _resolve_timezone(name: str) -> ZoneInfo:
    if not isinstance(name, str) or not name.strip():
        raise ConfigurationError("timezone must be a non-empty string")
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ConfigurationError(f"Unknown timezone: {name}") from e


def load_config(
    path: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None
) -> TrackerConfig:
    """Load and validate tracker configuration.

    Values come from an optional YAML file, then environment overrides.
    Strict validation ensures a missing or invalid store credential is
    reported before any session starts.

    Args:
        path: Path to YAML configuration file (optional)
        environ: Environment mapping (defaults to os.environ)

    Returns:
        Validated TrackerConfig object

    Raises:
        ConfigurationError: If the file is missing, unreadable or invalid
    """
    env = os.environ if environ is None else environ
    raw: Dict[str, Any] = {}
    if path is not None:
        raw = _read_yaml(path)

    config = _parse_config(raw, env)
    return _apply_env_overrides(config, env)


def _read_yaml(path: str) -> Dict[str, Any]:
    config_path = Path(path)
    if not config_path.exists():
        raise ConfigurationError(f"Config file not found: {path}")

    with open(config_path, 'r', encoding='utf-8') as f:
        try:
            raw_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in config file {path}: {e}") from e

    if not raw_config:
        raise ConfigurationError("Configuration file is empty")
    if not isinstance(raw_config, dict):
        raise ConfigurationError("Configuration must be a mapping")
    return raw_config


def _parse_config(raw: Dict[str, Any], env: Mapping[str, str]) -> TrackerConfig:
    allowed_top_keys = {'store', 'timezone', 'generation', 'user_id'}
    unknown_keys = set(raw.keys()) - allowed_top_keys
    if unknown_keys:
        raise ConfigurationError(f"Unknown configuration keys: {unknown_keys}")

    store_data = raw.get('store', {})
    if not isinstance(store_data, dict):
        raise ConfigurationError("'store' must be a dictionary")
    _reject_unknown(store_data, {'path', 'poll_interval'}, "store")

    store_path = store_data.get('path') or env.get(ENV_DB_PATH)
    if not store_path:
        raise ConfigurationError(
            f"Missing store path. Set 'store.path' in the config file or {ENV_DB_PATH}."
        )
    store = StoreConfig(
        path=str(store_path),
        poll_interval=_number(store_data.get('poll_interval', DEFAULT_POLL_INTERVAL),
                              "store.poll_interval")
    )

    generation_data = raw.get('generation', {})
    if not isinstance(generation_data, dict):
        raise ConfigurationError("'generation' must be a dictionary")
    _reject_unknown(generation_data, {'model', 'temperature', 'max_tokens'}, "generation")

    max_tokens = generation_data.get('max_tokens', 200)
    if not isinstance(max_tokens, int) or isinstance(max_tokens, bool):
        raise ConfigurationError("'generation.max_tokens' must be an integer")
    model = generation_data.get('model', DEFAULT_MODEL)
    if not isinstance(model, str):
        raise ConfigurationError("'generation.model' must be a string")

    generation = GenerationConfig(
        model=model,
        temperature=_number(generation_data.get('temperature', 0.7), "generation.temperature"),
        max_tokens=max_tokens
    )

    user_id = raw.get('user_id')
    if user_id is not None and not isinstance(user_id, str):
        raise ConfigurationError("'user_id' must be a string")

    return TrackerConfig(
        store=store,
        timezone=raw.get('timezone', DEFAULT_TIMEZONE),
        generation=generation,
        user_id=user_id
    )


def _apply_env_overrides(config: TrackerConfig, env: Mapping[str, str]) -> TrackerConfig:
    if env.get(ENV_DB_PATH):
        config = replace(config, store=replace(config.store, path=env[ENV_DB_PATH]))
    if env.get(ENV_TIMEZONE):
        config = replace(config, timezone=env[ENV_TIMEZONE])
    if env.get(ENV_USER_ID):
        config = replace(config, user_id=env[ENV_USER_ID])
    return config


def _reject_unknown(data: Dict[str, Any], allowed: set, path: str) -> None:
    unknown_keys = set(data.keys()) - allowed
    if unknown_keys:
        raise ConfigurationError(f"Unknown keys in {path}: {unknown_keys}")


def _number(value: Any, path: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigurationError(f"'{path}' must be a number")
    return float(value)
