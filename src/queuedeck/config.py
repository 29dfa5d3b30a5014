"""Configuration for queuedeck."""

from pathlib import Path
from typing import Literal

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Project root: 3 levels up from this file (config.py -> queuedeck -> src -> root)
_PROJECT_ROOT = Path(__file__).parent.parent.parent

# Load .env file into os.environ
load_dotenv(_PROJECT_ROOT / ".env")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=str(_PROJECT_ROOT / ".env"),
        env_file_encoding="utf-8",
        env_prefix="QUEUEDECK_",
        extra="ignore",
    )

    # Logging
    debug: bool = False
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # Security
    encryption_key: str = Field(
        default="",
        description="Hex-encoded 32-byte key used to encrypt stored Redis passwords",
    )
    require_encryption_key: bool = Field(
        default=False,
        description="Refuse to start when no encryption key is configured "
        "instead of falling back to the development key",
    )

    # Status probe
    probe_connect_timeout_seconds: float = Field(
        default=3.0, description="Connect/read timeout for throwaway probe connections"
    )

    # Job listings
    latest_max_jobs: int = Field(
        default=100, description="Upper bound reported for the synthetic 'latest' count"
    )
    default_page_size: int = Field(default=50, description="Default job listing window")

    # Fleet rollup
    rollup_top_failed_limit: int = Field(
        default=5, description="Number of queues reported in the top-failed list"
    )
    rollup_queue_timeout_seconds: float | None = Field(
        default=10.0,
        description="Per-queue deadline while building the fleet rollup. "
        "None waits on the client's own timeouts",
    )

    # Queue engine
    bullmq_prefix: str = Field(default="bull", description="BullMQ key prefix")


settings = Settings()
