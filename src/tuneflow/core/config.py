"""Configuration management for the TuneFlow uploader."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
    )

    ENV: str = "local"
    SERVICE_NAME: str = "tuneflow-uploader"
    SERVICE_VERSION: str = "0.1.0"

    # Distribution backend
    API_URL: str = "http://localhost:3001"
    REQUEST_TIMEOUT: int = 300  # seconds per HTTP request

    # Upload relay
    DIRECT_UPLOAD_MAX_MB: int = 1  # Files up to this size skip chunking

    # Signed URLs expire after an hour on the backend
    SIGNED_URL_CACHE_SECONDS: int = 45 * 60

    DEPLOYMENT_ID: str = ""
    LOG_LEVEL: str = "INFO"

    @property
    def api_base_url(self) -> str:
        """API_URL without a trailing slash."""
        return self.API_URL.rstrip("/")

    @property
    def direct_upload_max_bytes(self) -> int:
        """Convert DIRECT_UPLOAD_MAX_MB to bytes."""
        return self.DIRECT_UPLOAD_MAX_MB * 1024 * 1024


# Singleton settings instance
settings = Settings()
