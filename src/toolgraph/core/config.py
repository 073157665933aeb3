"""Orchestrator configuration.

Values are resolved with priority: explicit argument > environment
variable > YAML config file > default.

Environment Variables:
    TOOLGRAPH_CONFIG: Path to a YAML config file
    TOOLGRAPH_CACHE_TTL_MS: Cache time-to-live in milliseconds
    TOOLGRAPH_CACHE_ENABLED: "true"/"false"
    TOOLGRAPH_DEFAULT_MAX_CONCURRENCY: Bound used when a parallel graph sets none
    TOOLGRAPH_LOG_EVENTS: "true"/"false" - attach the logging event sink

Example config file:
    cache_ttl_ms: 30000
    default_max_concurrency: 4
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, field_validator

ENV_PREFIX = "TOOLGRAPH_"
CONFIG_FILE_ENV = "TOOLGRAPH_CONFIG"


class OrchestratorConfig(BaseModel):
    """Settings for an Orchestrator.

    Attributes:
        cache_ttl_ms: How long a cached output stays valid.
        cache_enabled: Turn output caching on or off.
        default_max_concurrency: Batch size for parallel graphs that
            don't set max_concurrency. None = unbounded.
        log_events: Attach a LoggingEventSink when no sink is injected.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    cache_ttl_ms: int = 60_000
    cache_enabled: bool = True
    default_max_concurrency: int | None = None
    log_events: bool = True

    @field_validator("cache_ttl_ms")
    @classmethod
    def validate_ttl(cls, v: int) -> int:
        """Ensure the TTL is positive."""
        if v <= 0:
            raise ValueError("cache_ttl_ms must be > 0")
        return v

    @field_validator("default_max_concurrency", mode="before")
    @classmethod
    def validate_concurrency(cls, v: Any) -> Any:
        """Treat empty values as unbounded and reject values below 1."""
        if v in (None, "", "none", "None"):
            return None
        if int(v) < 1:
            raise ValueError("default_max_concurrency must be >= 1")
        return v


def _read_config_file(config_file: str | Path | None) -> dict[str, Any]:
    """Load the YAML config file, if one is configured.

    Args:
        config_file: Explicit path, or None to check TOOLGRAPH_CONFIG.

    Returns:
        Parsed mapping (empty if no file is configured).

    Raises:
        FileNotFoundError: If a configured file does not exist.
        ValueError: If the file does not contain a mapping.
    """
    path = config_file or os.environ.get(CONFIG_FILE_ENV)
    if not path:
        return {}

    content = yaml.safe_load(Path(path).read_text()) or {}
    if not isinstance(content, dict):
        raise ValueError(f"Config file {path} must contain a mapping, got {type(content).__name__}")
    return content


def load_config(config_file: str | Path | None = None, **overrides: Any) -> OrchestratorConfig:
    """Build an OrchestratorConfig from arguments, environment and file.

    Args:
        config_file: Optional YAML file path. Defaults to TOOLGRAPH_CONFIG.
        **overrides: Explicit values; None means "not given".

    Returns:
        Validated configuration.

    Raises:
        pydantic.ValidationError: If a resolved value is invalid.
    """
    file_config = _read_config_file(config_file)

    values: dict[str, Any] = {}
    for name in OrchestratorConfig.model_fields:
        if overrides.get(name) is not None:
            values[name] = overrides[name]
            continue
        env_val = os.environ.get(f"{ENV_PREFIX}{name.upper()}")
        if env_val:
            values[name] = env_val
            continue
        if file_config.get(name) is not None:
            values[name] = file_config[name]

    unknown = set(overrides) - set(OrchestratorConfig.model_fields)
    if unknown:
        raise TypeError(f"Unknown config option(s): {', '.join(sorted(unknown))}")

    return OrchestratorConfig(**values)
