"""Configuration management using pydantic-settings."""

import tempfile
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_RULES_PATH = Path(__file__).resolve().parent.parent / "tools" / "rules" / "pqc-rules.yaml"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    database_url: str = Field(default="sqlite+aiosqlite:///./pqcscan.db")

    # Workspaces
    workspace_root: Path = Field(
        default_factory=lambda: Path(tempfile.gettempdir()) / "pqcscan-workspaces"
    )
    git_executable: str = Field(default="git")
    clone_timeout_seconds: int = Field(default=120, ge=1, le=3600)

    # Scheduler
    max_concurrent_jobs: int = Field(default=3, ge=1, le=50)
    scheduler_tick_seconds: float = Field(default=1.0, gt=0, le=60)

    # Analysis tools
    semgrep_executable: str = Field(default="semgrep")
    semgrep_rules: str = Field(default=str(DEFAULT_RULES_PATH))
    bandit_executable: str = Field(default="bandit")
    tool_timeout_seconds: int = Field(default=300, ge=1, le=7200)
    tool_max_output_bytes: int = Field(default=10 * 1024 * 1024, ge=1024)
    pattern_max_file_size: int = Field(default=1024 * 1024, ge=1024)

    # External scanner polling
    http_timeout: int = Field(default=30, ge=1, le=120)
    external_initial_delay: float = Field(default=5.0, ge=0)
    external_poll_interval: float = Field(default=5.0, ge=0)
    external_max_attempts: int = Field(default=120, ge=1, le=10000)

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO"
    )
    log_format: Literal["json", "text"] = Field(default="json")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
