"""Application Configuration: environment-driven settings via pydantic-settings.

Invariants:
    - All secrets come from environment variables (never hardcoded)
    - get_settings() is cached (lru_cache): single instance per process
    - bcrypt_rounds bounded 4..16; media_max_bytes strictly positive

Design Decisions:
    - pydantic-settings over raw os.environ: validation, type coercion, .env file support
    - Defaults provided for all non-secret settings: works out-of-the-box with docker-compose
"""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Database
    database_url: str = (
        "postgresql+asyncpg://pixnest:pixnest@db:5432/pixnest"
    )

    @field_validator("database_url", mode="before")
    @classmethod
    def convert_postgres_url(cls, v: str) -> str:
        """Hosting providers hand out postgresql:// but asyncpg needs postgresql+asyncpg://."""
        if isinstance(v, str) and v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v

    database_pool_size: int = 20
    database_max_overflow: int = 10

    # Credentials
    bcrypt_rounds: int = Field(12, ge=4, le=16)

    # Sessions
    session_ttl_seconds: int = Field(7 * 24 * 3600, gt=0)
    session_cookie_name: str = "pixnest_session"
    session_cookie_secure: bool = False

    # Media ingestion
    media_max_bytes: int = Field(10 * 1024 * 1024, gt=0)
    media_allowed_formats: list[str] = ["JPEG", "PNG"]
    media_upload_timeout_seconds: float = 30.0
    media_upload_max_retries: int = Field(2, ge=0)
    media_upload_base_delay_ms: int = 500
    post_folder: str = "pixnest_uploads"
    avatar_folder: str = "profile-images"

    # Cloudinary
    cloudinary_cloud_name: str = "pixnest"
    cloudinary_api_key: str = "placeholder-key"
    cloudinary_api_secret: str = "placeholder-secret"

    # API
    cors_origins: list[str] = ["http://localhost:5173"]

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"

    @property
    def max_request_bytes(self) -> int:
        """Upload ceiling plus room for multipart framing and form fields."""
        return self.media_max_bytes + 1024 * 1024


@lru_cache
def get_settings() -> Settings:
    return Settings()
