"""Configuration for tickbars."""

from __future__ import annotations

import logging
import os
import tomllib
from pathlib import Path

from pydantic import BaseModel, Field, field_validator

from tickbars.bars.base import InformationBarParams

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_BYTES = 1 << 20


class IOConfig(BaseModel):
    """Tick file reading settings."""

    chunk_bytes: int = Field(
        default=DEFAULT_CHUNK_BYTES, gt=0, description="Read size for raw binary tick files"
    )

    @field_validator("chunk_bytes")
    @classmethod
    def _whole_elements(cls, value: int) -> int:
        if value % 8:
            raise ValueError(f"chunk_bytes must be a multiple of 8, got {value}")
        return value


class TickbarsConfig(BaseModel):
    """Top-level configuration."""

    imbalance: InformationBarParams = Field(default_factory=InformationBarParams)
    runs: InformationBarParams = Field(default_factory=InformationBarParams)
    io: IOConfig = Field(default_factory=IOConfig)

    @classmethod
    def from_toml(cls, path: Path | str) -> TickbarsConfig:
        """Load configuration from a TOML file."""
        path = Path(path)
        with open(path, "rb") as f:
            data = tomllib.load(f)
        return cls.model_validate(data)

    @classmethod
    def find_and_load(cls, explicit_path: str | None = None) -> TickbarsConfig:
        """Find and load config: explicit path > TICKBARS_CONFIG env > tickbars.toml in cwd.

        Falls back to the built-in defaults if no config file is found.
        """
        if explicit_path:
            logger.info("Loading config from %s", explicit_path)
            return cls.from_toml(explicit_path)
        env_path = os.environ.get("TICKBARS_CONFIG")
        if env_path:
            logger.info("Loading config from TICKBARS_CONFIG=%s", env_path)
            return cls.from_toml(env_path)
        default = Path("tickbars.toml")
        if default.exists():
            logger.info("Loading config from %s", default)
            return cls.from_toml(default)
        return cls()
