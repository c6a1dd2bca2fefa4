"""
statecheck — Configuration System

All configuration is Pydantic-validated and loaded from:
1. a YAML file (optional defaults)
2. Environment variables (overrides), prefixed STATECHECK_

Validators themselves take no configuration; these settings feed the
shared-deadline runner, the fake state source and logging.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# ─── Sub-configs ──────────────────────────────────────────────────


class AwaitConfig(BaseModel):
    # Budget used by await_all() when the caller gives neither timeout nor deadline
    default_timeout_s: float = 30.0
    # Upper bound on validators awaited at once by the runner (0 = unbounded)
    max_concurrency: int = 0

    @field_validator("default_timeout_s")
    @classmethod
    def _non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("default_timeout_s must be >= 0")
        return v


class FakeSourceConfig(BaseModel):
    # Per-watcher buffered updates; the oldest is dropped when full
    watch_queue_size: int = 256


class LoggingConfig(BaseModel):
    level: str = "INFO"
    format: str = "console"  # "console" | "json"


# ─── Root Config ─────────────────────────────────────────────────


class StatecheckConfig(BaseSettings):
    """
    Root configuration. Loads from YAML, overridable by env vars.
    """

    model_config = SettingsConfigDict(
        env_prefix="STATECHECK_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    awaiting: AwaitConfig = Field(default_factory=AwaitConfig)
    fake_source: FakeSourceConfig = Field(default_factory=FakeSourceConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge override into base."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def load_config(
    config_path: str | Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> StatecheckConfig:
    """
    Load configuration from a YAML file, then apply explicit overrides.
    Environment variables take precedence over both for any field they set.
    """
    raw: dict[str, Any] = {}

    if config_path:
        path = Path(config_path)
        if path.exists():
            with open(path) as f:
                raw = yaml.safe_load(f) or {}

    if overrides:
        raw = _deep_merge(raw, overrides)

    # Init kwargs outrank env vars in pydantic-settings, so drop any section
    # the environment sets; the env source then fills it in.
    env = StatecheckConfig()
    for section in StatecheckConfig.model_fields:
        fields = raw.get(section)
        if not isinstance(fields, dict):
            # An empty YAML section (`awaiting:`) loads as None
            raw.pop(section, None)
            continue
        for field in getattr(env, section).model_fields_set:
            fields.pop(field, None)

    return StatecheckConfig(**raw)
