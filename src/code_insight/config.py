"""Configuration loading and management for Code Insight.

Configuration sources are merged in priority order:
    1. Defaults (defined in IncrementalConfig)
    2. Global config (~/.code-insight.toml)
    3. Project config (./code-insight.toml)
    4. Explicit config file
    5. Environment variables (CODE_INSIGHT_* prefix)
    6. Keyword overrides

Example:
    >>> config = load_config(workers=4)
    >>> config.workers
    4
    >>> config.cache_ttl_hours is None
    True
"""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal, Optional, Tuple, get_type_hints

from .exceptions import ConfigFileError, InvalidConfigError

Verbosity = Literal["quiet", "normal", "verbose"]

ENV_PREFIX = "CODE_INSIGHT_"
GLOBAL_CONFIG_NAME = ".code-insight.toml"
PROJECT_CONFIG_NAME = "code-insight.toml"


@dataclass(frozen=True)
class IncrementalConfig:
    """Configuration for the incremental analysis engine.

    Attributes:
        Change detection:
            file_extensions: Source suffixes kept from a change set
            default_base_revision: Base revision used when none is given
                (None = parent of HEAD)
            vcs_timeout_seconds: Timeout for each VCS subprocess call

        Caching:
            cache_dir: Cache root, relative to the project root unless absolute
            cache_ttl_hours: Entry lifetime in hours (None = keep until cleared)

        Performance:
            workers: Thread count for batched staleness checks (None = auto)

        Output control:
            verbosity: Logging verbosity level
    """

    file_extensions: Tuple[str, ...] = (".ts", ".tsx", ".js", ".jsx", ".py")
    default_base_revision: Optional[str] = None
    vcs_timeout_seconds: int = 10

    cache_dir: str = ".code-insight-cache"
    cache_ttl_hours: Optional[int] = None

    workers: Optional[int] = None

    verbosity: Verbosity = "normal"

    def __post_init__(self) -> None:
        if not isinstance(self.file_extensions, (list, tuple)):
            raise InvalidConfigError(
                "file_extensions", self.file_extensions, "expected a list of suffixes"
            )
        # Lists from TOML are normalised to a tuple so the config stays hashable
        object.__setattr__(self, "file_extensions", tuple(self.file_extensions))

        for ext in self.file_extensions:
            if not isinstance(ext, str) or not ext.startswith("."):
                raise InvalidConfigError("file_extensions", ext, "extensions must start with '.'")
        _require_int("vcs_timeout_seconds", self.vcs_timeout_seconds, minimum=1)
        if self.cache_ttl_hours is not None:
            _require_int("cache_ttl_hours", self.cache_ttl_hours, minimum=0)
        if self.workers is not None:
            _require_int("workers", self.workers, minimum=1)
        if self.verbosity not in ("quiet", "normal", "verbose"):
            raise InvalidConfigError(
                "verbosity", self.verbosity, "expected quiet, normal or verbose"
            )
        if not isinstance(self.cache_dir, str) or not self.cache_dir:
            raise InvalidConfigError("cache_dir", self.cache_dir, "expected a non-empty path")
        if self.default_base_revision is not None and not isinstance(
            self.default_base_revision, str
        ):
            raise InvalidConfigError(
                "default_base_revision", self.default_base_revision, "expected a revision name"
            )

    @property
    def cache_ttl_seconds(self) -> Optional[int]:
        """Cache TTL in seconds, or None when entries never expire."""
        if self.cache_ttl_hours is None:
            return None
        return self.cache_ttl_hours * 3600

    def cache_path(self, project_root: Path) -> Path:
        """Absolute cache directory for ``project_root``."""
        path = Path(self.cache_dir).expanduser()
        if path.is_absolute():
            return path
        return Path(project_root) / path


def _require_int(key: str, value: Any, minimum: int) -> None:
    # bool is an int subclass
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidConfigError(key, value, f"expected an integer, got {type(value).__name__}")
    if value < minimum:
        raise InvalidConfigError(key, value, f"must be at least {minimum}")


def load_config(config_file: Optional[Path] = None, **overrides: Any) -> IncrementalConfig:
    """Load configuration with auto-discovery and merging.

    Args:
        config_file: Optional explicit config file path
        **overrides: Direct overrides (e.g. from an embedding tool)

    Returns:
        Validated IncrementalConfig instance

    Raises:
        ConfigFileError: If a config file is missing or unparsable
        InvalidConfigError: If a value is invalid or a key is unknown
    """
    merged: dict[str, Any] = {}

    global_config = Path.home() / GLOBAL_CONFIG_NAME
    if global_config.exists():
        merged.update(_load_toml_file(global_config))

    project_config = Path.cwd() / PROJECT_CONFIG_NAME
    if project_config.exists():
        merged.update(_load_toml_file(project_config))

    if config_file is not None:
        if not config_file.exists():
            raise ConfigFileError(config_file, "file not found")
        merged.update(_load_toml_file(config_file))

    merged.update(_load_env_vars())

    if "verbose" in overrides:
        if overrides.pop("verbose"):
            overrides["verbosity"] = "verbose"
    if "quiet" in overrides:
        if overrides.pop("quiet"):
            overrides["verbosity"] = "quiet"

    merged.update(overrides)

    unknown = set(merged) - set(IncrementalConfig.__dataclass_fields__)
    if unknown:
        key = sorted(unknown)[0]
        raise InvalidConfigError(key, merged[key], "unknown configuration key")

    return IncrementalConfig(**merged)


def _load_env_vars() -> dict[str, Any]:
    """Load configuration from CODE_INSIGHT_* environment variables.

    Supported environment variables:
        CODE_INSIGHT_FILE_EXTENSIONS: comma-separated (".py,.ts")
        CODE_INSIGHT_DEFAULT_BASE_REVISION: str
        CODE_INSIGHT_VCS_TIMEOUT_SECONDS: int
        CODE_INSIGHT_CACHE_DIR: str
        CODE_INSIGHT_CACHE_TTL_HOURS: int
        CODE_INSIGHT_WORKERS: int
        CODE_INSIGHT_VERBOSITY: quiet/normal/verbose
    """
    type_hints = get_type_hints(IncrementalConfig)

    result: dict[str, Any] = {}

    for field_name in IncrementalConfig.__dataclass_fields__:
        env_key = f"{ENV_PREFIX}{field_name.upper()}"
        env_value = os.environ.get(env_key)

        if env_value is None:
            continue

        try:
            result[field_name] = _parse_env_value(env_value, type_hints[field_name])
        except ValueError as e:
            raise InvalidConfigError(env_key, env_value, str(e))

    return result


def _parse_env_value(value: str, type_hint: Any) -> Any:
    """Parse an environment variable string to the field's type."""
    args = getattr(type_hint, "__args__", ())
    if type(None) in args:
        non_none_types = [t for t in args if t is not type(None)]
        if non_none_types:
            type_hint = non_none_types[0]

    origin = getattr(type_hint, "__origin__", None)

    if origin is tuple:
        return tuple(part.strip() for part in value.split(",") if part.strip())

    if type_hint is bool:
        lower = value.lower()
        if lower in ("true", "1", "yes", "on"):
            return True
        if lower in ("false", "0", "no", "off"):
            return False
        raise ValueError(f"expected true/false, got '{value}'")

    if type_hint is int:
        return int(value)

    if type_hint is float:
        return float(value)

    return value


def _load_toml_file(path: Path) -> dict:
    """Load a TOML file, accepting an optional [incremental] table."""
    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise ConfigFileError(path, str(e))

    section = data.get("incremental")
    if isinstance(section, dict):
        return dict(section)
    return data
