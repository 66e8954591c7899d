"""Typed configuration models for svcreg.

Provides Pydantic validation for svcreg.toml, catching typos, wrong types,
and invalid values when a host starts rather than at first lookup.
"""

from __future__ import annotations

import logging
import tomllib
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

from svcreg.errors import ConfigValidationError

log = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("svcreg.toml")


class RegistryConfig(BaseModel):
    identity: Literal["reference", "type-equivalence"] = "type-equivalence"
    name: str | None = None

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip() or None
        return v


class RuntimeConfig(BaseModel):
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_json: bool = False
    log_dir: str | None = None
    module_levels: dict[str, str] | None = None
    max_log_bytes: int = Field(default=10 * 1024 * 1024, gt=0)


class SvcRegConfig(BaseModel):
    """Root configuration model for svcreg.toml."""

    registry: RegistryConfig = Field(default_factory=RegistryConfig)
    runtime: RuntimeConfig = Field(default_factory=RuntimeConfig)

    model_config = {"extra": "allow"}


def load_config(path: Path | None = None) -> SvcRegConfig:
    """Load and validate svcreg.toml, returning typed SvcRegConfig.

    Missing file or sections are filled with defaults.
    Raises pydantic.ValidationError on invalid values.
    """
    config_path = path or DEFAULT_CONFIG_PATH
    raw: dict[str, Any] = {}

    if config_path.exists():
        with config_path.open("rb") as f:
            try:
                raw = tomllib.load(f)
            except tomllib.TOMLDecodeError as e:
                raise ConfigValidationError(
                    f"Malformed config file: {e}",
                    context={"path": str(config_path)},
                ) from e

    config = SvcRegConfig.model_validate(raw)
    log.debug(
        "config.loaded path=%s identity=%s name=%s log_level=%s",
        config_path,
        config.registry.identity,
        config.registry.name,
        config.runtime.log_level,
    )
    return config
