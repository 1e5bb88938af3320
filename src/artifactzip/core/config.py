"""Configuration resolver with 4-level priority.

Priority (highest to lowest):
1. CLI arguments (a plain dict supplied by the host)
2. Environment variables (ARTIFACTZIP_*)
3. Config files (user > system)
4. Defaults
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from artifactzip.core.errors import ConfigError

ALLOWED_LOGGING_LEVELS = frozenset({"quiet", "normal", "verbose", "debug"})
DEFAULT_LOGGING_LEVEL = "normal"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass
class ConfigSource:
    """Represents where a config value came from."""

    value: Any
    source: str  # 'cli' | 'env' | 'user_config' | 'system_config' | 'default'


@dataclass(frozen=True)
class LoggingPolicy:
    """Resolved, immutable logging policy."""

    level_name: str  # quiet | normal | verbose | debug
    emit_info: bool
    emit_debug: bool
    color: bool


def _flatten_keys(data: dict[str, Any], prefix: str = "") -> set[str]:
    keys: set[str] = set()
    for key, value in data.items():
        key_path = f"{prefix}.{key}" if prefix else str(key)
        if isinstance(value, dict):
            keys.update(_flatten_keys(value, key_path))
        else:
            keys.add(key_path)
    return keys


def _as_bool(key: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return bool(value)
    s = str(value).strip().lower()
    if s in _TRUE_VALUES:
        return True
    if s in _FALSE_VALUES:
        return False
    raise ConfigError(f"Config key '{key}' must be a bool, got {value!r}")


class ConfigResolver:
    """Resolve configuration with strict 4-level priority.

    Example:
        resolver = ConfigResolver(
            cli_args={'archive': {'deterministic': True}},
            user_config_path=Path('~/.config/artifactzip/config.yaml'),
        )

        deterministic, source = resolver.resolve('archive.deterministic')
        # deterministic = True, source = 'cli'
    """

    def __init__(
        self,
        cli_args: dict[str, Any] | None = None,
        user_config_path: Path | None = None,
        system_config_path: Path | None = None,
        defaults: dict[str, Any] | None = None,
    ) -> None:
        """Initialize config resolver.

        Args:
            cli_args: Values supplied by the host (highest priority)
            user_config_path: Path to user config file
            system_config_path: Path to system config file
            defaults: Default values (lowest priority)
        """
        self.cli_args = cli_args or {}
        self.user_config_path = user_config_path or Path.home() / ".config/artifactzip/config.yaml"
        self.system_config_path = system_config_path or Path("/etc/artifactzip/config.yaml")
        self.defaults = self._default_config() if defaults is None else defaults

        self._user_config: dict[str, Any] | None = None
        self._system_config: dict[str, Any] | None = None

    def resolve(self, key: str) -> tuple[Any, str]:
        """Resolve config value with priority.

        Args:
            key: Config key (supports dot notation: 'archive.extension')

        Returns:
            (value, source) tuple

        Raises:
            ConfigError: If key not found in any source
        """
        value = self._get_nested(self.cli_args, key)
        if value is not None:
            return value, "cli"

        value = self._from_env(key)
        if value is not None:
            return value, "env"

        value = self._get_nested(self._get_user_config(), key)
        if value is not None:
            return value, "user_config"

        value = self._get_nested(self._get_system_config(), key)
        if value is not None:
            return value, "system_config"

        value = self._get_nested(self.defaults, key)
        if value is not None:
            return value, "default"

        raise ConfigError(f"Config key '{key}' not found in any source")

    def _try_resolve(self, key: str) -> Any | None:
        try:
            value, _src = self.resolve(key)
        except ConfigError as e:
            if "not found in any source" in str(e):
                return None
            raise
        return value

    def resolve_str(self, key: str, default: str) -> str:
        value = self._try_resolve(key)
        if value is None:
            return default
        if not isinstance(value, str) or value.strip() == "":
            raise ConfigError(f"Config key '{key}' must be a non-empty string")
        return value

    def resolve_bool(self, key: str, default: bool) -> bool:
        value = self._try_resolve(key)
        if value is None:
            return default
        return _as_bool(key, value)

    def resolve_int(self, key: str, default: int) -> int:
        value = self._try_resolve(key)
        if value is None:
            return default
        if isinstance(value, bool):
            raise ConfigError(f"Config key '{key}' must be an int")
        try:
            return int(value)
        except (TypeError, ValueError):
            raise ConfigError(f"Config key '{key}' must be an int, got {value!r}") from None

    def resolve_logging_level(self) -> str:
        """Resolve and validate logging.level.

        Allowed values (after normalization):
            quiet | normal | verbose | debug

        Raises:
            ConfigError: If the resolved value is invalid.
        """
        value = self._try_resolve("logging.level")
        if value is None:
            return DEFAULT_LOGGING_LEVEL
        if not isinstance(value, str):
            raise ConfigError(
                f"Config key 'logging.level' must be a string, got {type(value).__name__}"
            )
        norm = value.strip().lower()
        if norm not in ALLOWED_LOGGING_LEVELS:
            allowed = ", ".join(sorted(ALLOWED_LOGGING_LEVELS))
            raise ConfigError(f"Invalid 'logging.level': {value!r}. Allowed values: {allowed}")
        return norm

    def resolve_logging_policy(self) -> LoggingPolicy:
        """Resolve canonical logging policy (side-effect free)."""
        level_name = self.resolve_logging_level()
        return LoggingPolicy(
            level_name=level_name,
            emit_info=level_name != "quiet",
            emit_debug=level_name in ("verbose", "debug"),
            color=self.resolve_bool("logging.color", True),
        )

    def resolve_all(self) -> dict[str, ConfigSource]:
        """Resolve every key found in any source.

        Returns:
            Dict of key -> ConfigSource, sorted by key
        """
        all_keys: set[str] = set()
        all_keys.update(_flatten_keys(self.cli_args))
        all_keys.update(_flatten_keys(self._get_user_config()))
        all_keys.update(_flatten_keys(self._get_system_config()))
        all_keys.update(_flatten_keys(self.defaults))

        result: dict[str, ConfigSource] = {}
        for key in sorted(all_keys):
            try:
                value, source = self.resolve(key)
            except ConfigError:
                continue
            result[key] = ConfigSource(value=value, source=source)
        return result

    def _from_env(self, key: str) -> Any | None:
        """Get value from environment variables.

        Example: archive.staging_suffix -> ARTIFACTZIP_ARCHIVE_STAGING_SUFFIX
        """
        env_key = f"ARTIFACTZIP_{key.upper().replace('.', '_')}"
        return os.environ.get(env_key)

    def _get_user_config(self) -> dict[str, Any]:
        if self._user_config is None:
            self._user_config = self._load_yaml(self.user_config_path)
        return self._user_config

    def _get_system_config(self) -> dict[str, Any]:
        if self._system_config is None:
            self._system_config = self._load_yaml(self.system_config_path)
        return self._system_config

    def _load_yaml(self, path: Path) -> dict[str, Any]:
        if not path.exists():
            return {}

        try:
            with open(path) as f:
                data = yaml.safe_load(f)
                return data if isinstance(data, dict) else {}
        except Exception as e:
            raise ConfigError(f"Failed to load config from {path}: {e}") from e

    def _get_nested(self, data: dict[str, Any], key: str) -> Any | None:
        """Get nested value using dot notation.

        Example:
            data = {'archive': {'extension': 'zip'}}
            _get_nested(data, 'archive.extension') -> 'zip'
        """
        current: Any = data
        for part in key.split("."):
            if not isinstance(current, dict):
                return None
            current = current.get(part)
            if current is None:
                return None
        return current

    @staticmethod
    def _default_config() -> dict[str, Any]:
        """Default configuration."""
        return {
            "archive": {
                "extension": "zip",
                "staging_suffix": ".writing",
                "deterministic": False,
                "chunk_size": 64 * 1024,
            },
            "logging": {
                "level": DEFAULT_LOGGING_LEVEL,
                "color": True,
            },
            "diagnostics": {
                "enabled": False,
                "path": str(Path.home() / ".artifactzip" / "diagnostics.jsonl"),
            },
        }
