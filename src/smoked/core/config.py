"""Smoked Configuration System.

Layered YAML configuration with Pydantic validation.

Config Layer Priority (highest to lowest):
1. Environment variables (SMOKED_ prefix, ``__`` nested delimiter)
2. Unprefixed environment variables (``FEATURE_BGP``, ``RATE_LIMIT``,
   ``FEATURE_PING_COUNT``, ...; see LEGACY_ENV_KEYS)
3. Runtime overrides (in-memory, e.g. CLI flags)
4. System config (~/.smoked/config.yaml or --config)
5. Defaults (defined in Pydantic models)

``rate.timeframe`` accepts seconds or a unit-suffixed duration (``1m``).

The dispatch core never touches Settings directly: it receives
``Settings.lookup`` as its config lookup and ``Settings.feature_enabled``
as the registry's feature predicate.

Usage:
    from smoked.core.config import get_settings

    settings = get_settings()
    settings.lookup("feature.ping.count")  # "5" (default)
    settings.feature_enabled("bgp")        # False (default)
"""

from __future__ import annotations

import os
import re
import threading
from datetime import timedelta
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Type

import yaml
from dotenv import load_dotenv
from pydantic import (
    BaseModel,
    Field,
    PositiveFloat,
    PositiveInt,
    field_validator,
    model_validator,
)
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from smoked.core.exceptions import ConfigurationError


DEFAULT_CONFIG_DIR = Path.home() / ".smoked"

# Unprefixed variable names (dots replaced by underscores) kept working
# for existing deployments. Ranked below SMOKED_* variables.
LEGACY_ENV_KEYS: Dict[str, Tuple[str, ...]] = {
    "RATE_LIMIT": ("rate", "limit"),
    "RATE_TIMEFRAME": ("rate", "timeframe"),
    "CORS_ORIGIN": ("cors", "origin"),
    "FEATURE_MTR": ("feature", "mtr", "enabled"),
    "FEATURE_TRACEROUTE": ("feature", "traceroute", "enabled"),
    "FEATURE_PING": ("feature", "ping", "enabled"),
    "FEATURE_PING_COUNT": ("feature", "ping", "count"),
    "FEATURE_BGP": ("feature", "bgp", "enabled"),
    "FEATURE_FILES": ("feature", "files", "enabled"),
    "FEATURE_FILES_PATH": ("feature", "files", "path"),
}

_DURATION = re.compile(r"(?:\d+(?:\.\d+)?(?:ms|s|m|h))+")
_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ms|s|m|h)")
_DURATION_UNITS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0}


def parse_duration(value: str) -> Optional[timedelta]:
    """Parse a duration such as ``1m``, ``90s`` or ``1h30m``.

    Returns None when ``value`` is not in that form.
    """
    value = value.strip()
    if not _DURATION.fullmatch(value):
        return None
    seconds = sum(
        float(amount) * _DURATION_UNITS[unit] for amount, unit in _DURATION_PART.findall(value)
    )
    return timedelta(seconds=seconds)


# =============================================================================
# Sub-configuration Models (nested sections)
# =============================================================================


class ServerConfig(BaseModel):
    """HTTP listener configuration."""

    host: str = "0.0.0.0"
    port: PositiveInt = 8080


class RateConfig(BaseModel):
    """Per-client rate limit: ``limit`` requests per ``timeframe``."""

    limit: PositiveInt = 30
    timeframe: timedelta = timedelta(minutes=1)

    @field_validator("timeframe", mode="before")
    @classmethod
    def parse_timeframe(cls, v: Any) -> Any:
        """Accept unit-suffixed durations (``1m``, ``30s``) as well."""
        if isinstance(v, str):
            parsed = parse_duration(v)
            if parsed is not None:
                return parsed
        return v

    @field_validator("timeframe")
    @classmethod
    def validate_timeframe(cls, v: timedelta) -> timedelta:
        if v.total_seconds() <= 0:
            raise ValueError("rate.timeframe must be positive")
        return v


class CorsConfig(BaseModel):
    """CORS configuration. No origin means any origin."""

    origin: Optional[str] = None


class FeatureToggle(BaseModel):
    """An on/off feature.

    Accepts a bare boolean as shorthand, so ``feature: {bgp: true}`` and
    ``SMOKED_FEATURE__BGP=true`` both work.
    """

    enabled: bool = False

    @model_validator(mode="before")
    @classmethod
    def coerce_shorthand(cls, data: Any) -> Any:
        if isinstance(data, (bool, str, int)):
            return {"enabled": data}
        return data


class PingFeature(FeatureToggle):
    """Ping feature with its probe count."""

    enabled: bool = True
    count: str = "5"

    @field_validator("count", mode="before")
    @classmethod
    def stringify_count(cls, v: Any) -> str:
        """Allow ``count: 3`` in YAML; template values are strings."""
        if isinstance(v, bool):
            raise ValueError("feature.ping.count must be a number")
        return str(v)


class FilesFeature(FeatureToggle):
    """Static file server feature."""

    path: str = "/data/files"


class FeatureConfig(BaseModel):
    """Feature toggles.

    Common features are enabled by default, extra features are not.
    """

    mtr: FeatureToggle = Field(default_factory=lambda: FeatureToggle(enabled=True))
    traceroute: FeatureToggle = Field(default_factory=lambda: FeatureToggle(enabled=True))
    ping: PingFeature = Field(default_factory=PingFeature)
    bgp: FeatureToggle = Field(default_factory=FeatureToggle)
    files: FilesFeature = Field(default_factory=FilesFeature)


class ExecutorConfig(BaseModel):
    """Process execution limits. None disables the limit."""

    timeout: Optional[PositiveFloat] = None  # seconds
    max_output_bytes: Optional[PositiveInt] = None


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    format: str = "json"

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Validate log level is valid."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v.upper()

    @field_validator("format")
    @classmethod
    def validate_format(cls, v: str) -> str:
        """Validate renderer name."""
        if v.lower() not in {"json", "console"}:
            raise ValueError(f"Invalid log format: {v}. Must be 'json' or 'console'")
        return v.lower()


# =============================================================================
# Main Settings
# =============================================================================


class LegacyEnvSettingsSource(PydanticBaseSettingsSource):
    """Reads the unprefixed names in LEGACY_ENV_KEYS (``FEATURE_BGP=true``)."""

    def get_field_value(self, field: Any, field_name: str) -> Tuple[Any, str, bool]:
        # Values are assembled per key path in __call__.
        return None, field_name, False

    def __call__(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        for env_name, path in LEGACY_ENV_KEYS.items():
            value = os.environ.get(env_name)
            if value is None:
                continue
            node = data
            for part in path[:-1]:
                node = node.setdefault(part, {})
            node[path[-1]] = value
        return data


class Settings(BaseSettings):
    """Main settings class with layered configuration support.

    Settings are read-only once loaded; concurrent readers need no
    locking.
    """

    model_config = SettingsConfigDict(
        env_prefix="SMOKED_",
        env_nested_delimiter="__",
        extra="ignore",
        frozen=True,
    )

    server: ServerConfig = Field(default_factory=ServerConfig)
    rate: RateConfig = Field(default_factory=RateConfig)
    cors: CorsConfig = Field(default_factory=CorsConfig)
    feature: FeatureConfig = Field(default_factory=FeatureConfig)
    executor: ExecutorConfig = Field(default_factory=ExecutorConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: Type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        # Environment overrides file/runtime values passed as init kwargs.
        return (
            env_settings,
            LegacyEnvSettingsSource(settings_cls),
            init_settings,
            dotenv_settings,
            file_secret_settings,
        )

    def lookup(self, key: str) -> str:
        """Resolve a dotted configuration key to a string.

        Missing keys resolve to an empty string, never an error.
        A key naming a feature section resolves to its ``enabled`` flag.

        Args:
            key: Dotted path such as ``feature.ping.count``.

        Returns:
            String value of the key.
        """
        value: Any = self
        for part in key.split("."):
            if isinstance(value, BaseModel):
                if part not in type(value).model_fields:
                    return ""
                value = getattr(value, part)
            elif isinstance(value, dict):
                if part not in value:
                    return ""
                value = value[part]
            else:
                return ""

        if isinstance(value, FeatureToggle):
            value = value.enabled
        if isinstance(value, BaseModel) or value is None:
            return ""
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, timedelta):
            return f"{value.total_seconds():g}s"
        return str(value)

    def feature_enabled(self, name: str) -> bool:
        """Return whether ``feature.<name>`` is enabled (unknown → False)."""
        toggle = getattr(self.feature, name, None)
        return isinstance(toggle, FeatureToggle) and toggle.enabled


# =============================================================================
# Configuration Loading Functions
# =============================================================================


def load_yaml_file(path: Path) -> Dict[str, Any]:
    """Load and parse a YAML file.

    Args:
        path: Path to the YAML file.

    Returns:
        Parsed YAML content as dictionary.

    Raises:
        ConfigurationError: If file cannot be read or parsed.
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            content = yaml.safe_load(f)
    except FileNotFoundError:
        raise ConfigurationError(
            config_path=str(path),
            message=f"Configuration file not found: {path}",
        )
    except yaml.YAMLError as e:
        raise ConfigurationError(
            config_path=str(path),
            message=f"Invalid YAML in {path}: {e}",
        )

    if not content:
        return {}
    if not isinstance(content, dict):
        raise ConfigurationError(
            config_path=str(path),
            expected_type="mapping",
            message=f"Configuration root in {path} must be a mapping",
        )
    return content


def load_system_config(path: Optional[Path] = None) -> Dict[str, Any]:
    """Load system configuration from YAML file.

    Args:
        path: Optional path to config file. Defaults to ~/.smoked/config.yaml.
            An explicit path must exist; the default may be absent.

    Returns:
        System configuration dictionary.

    Raises:
        ConfigurationError: If file cannot be loaded.
    """
    if path is None:
        default = DEFAULT_CONFIG_DIR / "config.yaml"
        if not default.exists():
            return {}
        return load_yaml_file(default)

    return load_yaml_file(Path(path).expanduser())


def merge_configs(*configs: Dict[str, Any]) -> Dict[str, Any]:
    """Deep merge multiple configuration dictionaries.

    Later configs override earlier ones.
    """
    result: Dict[str, Any] = {}

    for config in configs:
        for key, value in config.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = merge_configs(result[key], value)
            else:
                result[key] = value

    return result


def create_settings(
    system_config_path: Optional[Path] = None,
    runtime_overrides: Optional[Dict[str, Any]] = None,
) -> Settings:
    """Create a Settings instance with layered configuration.

    Args:
        system_config_path: Optional path to system config file.
        runtime_overrides: Optional runtime overrides dictionary.

    Returns:
        Configured Settings instance.

    Raises:
        ConfigurationError: If configuration is invalid.
    """
    if system_config_path:
        config_base = Path(system_config_path).expanduser().parent
    else:
        config_base = DEFAULT_CONFIG_DIR

    env_path = config_base / ".env"
    if env_path.exists():
        load_dotenv(env_path)

    merged = load_system_config(system_config_path)
    if runtime_overrides:
        merged = merge_configs(merged, runtime_overrides)

    try:
        return Settings(**merged)
    except Exception as e:
        raise ConfigurationError(
            config_path=str(system_config_path or DEFAULT_CONFIG_DIR / "config.yaml"),
            message=f"Configuration validation failed: {e}",
        ) from e


# =============================================================================
# Singleton Settings Access
# =============================================================================


class _SettingsHolder:
    """Thread-safe singleton holder for Settings instance."""

    _instance: Optional[Settings] = None
    _lock: threading.Lock = threading.Lock()

    @classmethod
    def get(cls, force_reload: bool = False, **kwargs: Any) -> Settings:
        if cls._instance is None or force_reload:
            with cls._lock:
                if cls._instance is None or force_reload:  # pragma: no cover
                    cls._instance = create_settings(**kwargs)
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Reset the singleton (for testing)."""
        with cls._lock:
            cls._instance = None


def get_settings(
    force_reload: bool = False,
    system_config_path: Optional[Path] = None,
    runtime_overrides: Optional[Dict[str, Any]] = None,
) -> Settings:
    """Get the global Settings singleton.

    Settings are loaded once and cached for subsequent calls.

    Args:
        force_reload: If True, reload settings from files.
        system_config_path: Optional path to system config file.
        runtime_overrides: Optional runtime overrides.

    Returns:
        Settings instance.
    """
    return _SettingsHolder.get(
        force_reload=force_reload,
        system_config_path=system_config_path,
        runtime_overrides=runtime_overrides,
    )


def reset_settings() -> None:
    """Reset the settings singleton (for testing)."""
    _SettingsHolder.reset()
