"""Core configuration for the strfuzz engine."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from strfuzz.core.types import DEFAULT_COUNT, DEFAULT_PASSES, DEFAULT_SEED_INPUT


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Command-line flags take precedence over every value here.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="STRFUZZ_",
        case_sensitive=False,
    )

    # ── App ──────────────────────────────────────────────────────────────
    app_name: str = "strfuzz"
    app_env: Literal["development", "staging", "production"] = "development"
    log_level: str = "INFO"

    # ── Fuzzing defaults ─────────────────────────────────────────────────
    seed_input: str = DEFAULT_SEED_INPUT
    count: int = Field(default=DEFAULT_COUNT, ge=0)
    passes: int = Field(default=DEFAULT_PASSES, ge=0)
    stop_on_first_failure: bool = True
    mutators: str = ""  # "name:weight,..."; empty selects the default catalog
    random_seed: int | None = None

    # ── Target execution ─────────────────────────────────────────────────
    workdir: str = "."
    timeout_seconds: float | None = Field(default=None, gt=0)
    encoding: str = "utf-8"


@lru_cache
def get_settings() -> Settings:
    """Return cached settings singleton."""
    return Settings()
