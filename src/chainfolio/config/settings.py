"""Application settings and configuration."""

from pathlib import Path
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def get_default_data_dir() -> Path:
    """Return the default data directory."""
    return Path.home() / ".chainfolio"


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="CHAINFOLIO_",
        env_file=".env",
        env_file_encoding="utf-8",
    )

    app_name: str = "Chainfolio"
    app_version: str = "0.1.0"

    # Data directory (the status database lives here)
    data_dir: Optional[Path] = None

    # Database URL (derived from data_dir if not set explicitly)
    database_url: Optional[str] = None

    log_level: str = "INFO"

    # Upstream provider
    upstream_provider: Literal["auto", "inch", "stub"] = "auto"
    upstream_base_url: str = "https://api.1inch.dev"
    inch_api_key: Optional[str] = None
    fetch_timeout_seconds: float = Field(default=10.0, gt=0)

    # Job pipeline
    rate_limit_rps: float = Field(default=1.0, gt=0)
    retry_max: int = Field(default=3, ge=0)
    queue_max_size: int = Field(default=0, ge=0)  # 0 = unbounded
    worker_enabled: bool = True  # false for API-only processes
    queued_timeout_seconds: int = Field(default=3600, gt=0)
    non_retryable_status_codes: list[int] = Field(
        default_factory=lambda: [400, 401, 403, 404, 422]
    )

    def get_data_dir(self) -> Path:
        """Get the data directory, creating it if needed."""
        data_dir = self.data_dir or get_default_data_dir()
        data_dir.mkdir(parents=True, exist_ok=True)
        return data_dir

    def get_database_url(self) -> str:
        """Get database URL, deriving from data_dir if not set."""
        if self.database_url:
            return self.database_url
        db_path = self.get_data_dir() / "status.db"
        return f"sqlite:///{db_path}"

    def resolve_provider(self) -> str:
        """Return the concrete provider name ('inch' or 'stub')."""
        if self.upstream_provider != "auto":
            return self.upstream_provider
        return "inch" if self.inch_api_key else "stub"


# Global settings instance (can be replaced at runtime)
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Return the current settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def set_settings(settings: Settings) -> None:
    """Set the global settings instance."""
    global _settings
    _settings = settings


def reset_settings() -> None:
    """Reset settings to force reload."""
    global _settings
    _settings = None
