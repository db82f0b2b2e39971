# ==============================================================================
# Application Configuration
# ==============================================================================
"""
Configuration management using pydantic-settings.

All configuration is loaded from environment variables, with support for
.env files via python-dotenv.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load .env file before any settings are instantiated
load_dotenv()


class SessionSettings(BaseSettings):
    """Session segmentation settings."""

    model_config = SettingsConfigDict(env_prefix="SESSION_")

    gap_threshold: int = Field(
        default=15,
        gt=0,
        description="Idle gap in minutes that starts a new session (inclusive)",
    )


class EngineSettings(BaseSettings):
    """Scatter/gather engine settings.

    The executor decides how per-client groups are processed:
    - serial: in the calling thread, one client after another
    - thread: ThreadPoolExecutor
    - process: ProcessPoolExecutor (groups are pickled to workers)
    """

    model_config = SettingsConfigDict(env_prefix="ENGINE_")

    executor: Literal["serial", "thread", "process"] = Field(
        default="thread",
        description="Executor for per-client work (serial, thread, process)",
    )
    max_workers: Optional[int] = Field(
        default=None, gt=0, description="Worker count (executor default if unset)"
    )
    strict: bool = Field(
        default=False,
        description="Abort the whole batch on the first invalid event or group",
    )
    batch_timeout_seconds: Optional[float] = Field(
        default=None, gt=0, description="Timeout for the whole batch (None for no limit)"
    )
    top_k: int = Field(default=10, ge=0, description="Number of most engaged clients to report")


class InputSettings(BaseSettings):
    """Event input settings."""

    model_config = SettingsConfigDict(env_prefix="INPUT_")

    data_file: Path = Field(default=Path("data/sample.log"), description="Path to the input file")
    format: Literal["elb", "csv"] = Field(
        default="elb", description="Input format (elb access log or pre-parsed csv)"
    )

    @property
    def data_file_path(self) -> Path:
        """Resolve data file to absolute path from project root."""
        if self.data_file.is_absolute():
            return self.data_file
        # Import here to avoid circular imports
        from weblog.utils.paths import get_project_root

        return get_project_root() / self.data_file


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        extra="ignore",
    )

    # Nested settings
    session: SessionSettings = Field(default_factory=SessionSettings)
    engine: EngineSettings = Field(default_factory=EngineSettings)
    input: InputSettings = Field(default_factory=InputSettings)

    # General settings
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Logging level")


@lru_cache
def get_settings() -> Settings:
    """
    Get cached application settings.

    Settings are loaded once and cached for subsequent calls.
    """
    return Settings()
