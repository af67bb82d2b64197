"""Configuration management using pydantic-settings."""

import tomllib
from enum import Enum
from pathlib import Path
from typing import Self

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_STORE = "~/.local/share/docrecon"
DEFAULT_CURRENCY = "CHF"
CONFIG_PATH = Path("~/.config/docrecon/config.toml").expanduser()


class ExtractionProvider(str, Enum):
    """Available extraction providers."""

    CLAUDE_API = "claude-api"
    OLLAMA = "ollama"


class ExtractionConfig(BaseSettings):
    """Extraction provider configuration."""

    provider: ExtractionProvider = ExtractionProvider.CLAUDE_API
    model: str = "claude-sonnet-4-20250514"
    ollama_url: str = "http://localhost:11434"
    reporting_currency: str = DEFAULT_CURRENCY
    timeout: float = 120.0

    @field_validator("reporting_currency")
    @classmethod
    def upper_currency(cls, v: str) -> str:
        return v.strip().upper()


class SchedulerConfig(BaseSettings):
    concurrency: int = 3
    retries: int = 4
    retry_delay: float = 2.5

    @field_validator("concurrency")
    @classmethod
    def positive_concurrency(cls, v: int) -> int:
        if v < 1:
            raise ValueError("concurrency must be at least 1")
        return v

    @field_validator("retries")
    @classmethod
    def non_negative_retries(cls, v: int) -> int:
        if v < 0:
            raise ValueError("retries must not be negative")
        return v


class PathsConfig(BaseSettings):
    store: Path = Path(DEFAULT_STORE)

    @field_validator("store", mode="before")
    @classmethod
    def expand_path(cls, v: str | Path) -> Path:
        return Path(v).expanduser()


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="DOCRECON_")

    paths: PathsConfig = PathsConfig()
    scheduler: SchedulerConfig = SchedulerConfig()
    extraction: ExtractionConfig = ExtractionConfig()

    @model_validator(mode="after")
    def ensure_dirs(self) -> Self:
        self.paths.store.mkdir(parents=True, exist_ok=True)
        return self


def load_settings(config_path: Path | None = None) -> Settings:
    """Load settings from TOML file, falling back to defaults."""
    path = config_path or CONFIG_PATH

    if path.exists():
        with open(path, "rb") as f:
            data = tomllib.load(f)

        paths = PathsConfig(**data.get("paths", {}))
        scheduler = SchedulerConfig(**data.get("scheduler", {}))
        extraction = ExtractionConfig(**data.get("extraction", {}))
        return Settings(paths=paths, scheduler=scheduler, extraction=extraction)

    return Settings()
