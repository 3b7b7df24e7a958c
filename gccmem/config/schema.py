"""Configuration schema using Pydantic."""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GccConfig(BaseModel):
    """GCC engine configuration."""
    db_path: str = "~/.gccmem/gcc.db"
    busy_timeout_ms: int = 5000  # How long a writer waits on a locked database
    cache_max_entries: int = 256  # Cached head snapshots (0 = no caching)
    volatile_fields: list[str] = Field(default_factory=lambda: ["lastUpdated"])
    merge_confidence: Literal["HIGH", "MEDIUM", "LOW"] = "MEDIUM"

    @field_validator("busy_timeout_ms", "cache_max_entries")
    @classmethod
    def validate_non_negative(cls, v: int) -> int:
        """Validate sizes and timeouts are non-negative."""
        if v < 0:
            raise ValueError("Value must be non-negative")
        return v

    @property
    def db_file(self) -> Path:
        """Get expanded database path."""
        if self.db_path == ":memory:":
            return Path(self.db_path)
        return Path(self.db_path).expanduser()


class Config(BaseSettings):
    """Root configuration for gccmem."""
    gcc: GccConfig = Field(default_factory=GccConfig)

    model_config = SettingsConfigDict(
        env_prefix="GCCMEM_",
        env_nested_delimiter="__",
    )
