"""
Application settings and configuration management.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from kickwatch import __version__


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    app_name: str = Field(default="kickwatch")
    app_version: str = Field(default=__version__)
    debug: bool = Field(default=False)
    log_level: str = Field(default="INFO")
    debug_payloads: bool = Field(default=False)  # Log raw Kick API payloads

    # Kick endpoints
    api_base_url: str = Field(default="https://api.kick.com/public/v1/")
    auth_worker_url: str = Field(
        default="https://kick-auth-worker.mikemones2584.workers.dev"
    )
    channel_url_base: str = Field(default="https://kick.com/")

    # OAuth
    oauth_redirect_uri: str = Field(default="http://localhost:3000")
    oauth_issuer: str = Field(default="https://id.kick.com/")
    oauth_token_endpoint: str = Field(default="https://id.kick.com/oauth/token")
    token_expiry_skew_seconds: int = Field(default=60)
    default_token_lifetime_seconds: int = Field(default=7200)

    # Storage
    data_dir: Path = Field(default=Path("./data"))
    cache_dir: Path = Field(default=Path("./cache"))
    credentials_filename: str = Field(default="credentials.json")

    # Monitor timing
    poll_interval_seconds: float = Field(default=60.0)
    alert_duration_seconds: float = Field(default=60.0)
    alert_toggle_seconds: float = Field(default=1.0)
    open_url_spacing_seconds: float = Field(default=0.5)

    # Caches
    web_info_cache_ttl_seconds: float = Field(default=3600.0)
    image_cache_ttl_seconds: float = Field(default=600.0)
    image_cache_max_entries: int = Field(default=50)

    # Performance
    request_timeout: float = Field(default=10.0)

    @field_validator("data_dir", "cache_dir", mode="before")
    @classmethod
    def ensure_path(cls, v: str | Path) -> Path:
        """Ensure directory paths are Path objects."""
        if isinstance(v, str):
            return Path(v)
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level: {v}")
        return v.upper()

    @field_validator("image_cache_max_entries")
    @classmethod
    def validate_cache_size(cls, v: int) -> int:
        """Validate the render cache holds at least one entry."""
        if v < 1:
            raise ValueError("image_cache_max_entries must be at least 1")
        return v

    def create_directories(self) -> None:
        """Create required directories if they don't exist."""
        for directory in [self.data_dir, self.cache_dir]:
            directory.mkdir(parents=True, exist_ok=True)

    @property
    def credentials_path(self) -> Path:
        """Primary location of the persisted credential record."""
        return self.data_dir / self.credentials_filename

    @property
    def credential_candidate_paths(self) -> list[Path]:
        """Locations probed, in order, when loading credentials from disk."""
        paths = [self.credentials_path, Path.cwd() / self.credentials_filename]
        return list(dict.fromkeys(p.resolve() for p in paths))

    @property
    def credential_write_targets(self) -> list[Path]:
        """Locations written on every credential save."""
        return [self.credentials_path.resolve()]

    @property
    def profile_image_dir(self) -> Path:
        """Directory holding downloaded profile images."""
        return self.cache_dir / "images"

    model_config = SettingsConfigDict(
        env_prefix="KICKWATCH_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )


def get_settings() -> Settings:
    """Get application settings."""
    return Settings()


# Global settings instance
settings = get_settings()
