"""Application settings and configuration.

This module defines all configuration options for the Pi Canvas service.
Settings are loaded from environment variables with sensible defaults.
"""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_RESOLUTIONS: dict[str, tuple[int, int]] = {
    "1170x2532": (1170, 2532),
    "1290x2796": (1290, 2796),
    "1125x2436": (1125, 2436),
    "750x1334": (750, 1334),
}


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="Pi Canvas", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")

    # Security and authentication
    secret_key: str = Field(alias="SECRET_KEY")
    debug: bool = Field(default=False, alias="DEBUG")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(
        default=60 * 24 * 7,
        alias="ACCESS_TOKEN_EXPIRE_MINUTES",
    )

    # Database configuration
    database_url: str = Field(default="sqlite:///./pi_canvas.db", alias="DATABASE_URL")
    test_database_url: str | None = Field(default=None, alias="TEST_DATABASE_URL")
    use_testing_database: bool = Field(default=False, alias="USE_TEST_DATABASE")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # Digit source
    pi_digits_path: Path = Field(default=Path("data/pi-digits.txt"), alias="PI_DIGITS_PATH")

    # Wallpaper rendering and publishing
    wallpaper_dir: Path = Field(default=Path("var/wallpapers"), alias="WALLPAPER_DIR")
    wallpaper_url_path: str = Field(default="/wallpapers", alias="WALLPAPER_URL_PATH")
    public_base_url: str | None = Field(default=None, alias="PUBLIC_BASE_URL")
    render_resolutions: dict[str, tuple[int, int]] = Field(
        default_factory=lambda: dict(DEFAULT_RESOLUTIONS),
        alias="RENDER_RESOLUTIONS",
    )
    latest_resolution: str = Field(default="1170x2532", alias="LATEST_RESOLUTION")
    render_on_startup: bool = Field(default=True, alias="RENDER_ON_STARTUP")

    # Daily re-render (defaults to 12:25 UTC)
    daily_render_enabled: bool = Field(default=True, alias="DAILY_RENDER_ENABLED")
    daily_render_hour_utc: int = Field(default=12, ge=0, le=23, alias="DAILY_RENDER_HOUR_UTC")
    daily_render_minute_utc: int = Field(
        default=25, ge=0, le=59, alias="DAILY_RENDER_MINUTE_UTC"
    )

    # CORS configuration for web frontend access
    cors_origins: list[str] = Field(default=["*"], alias="CORS_ORIGINS")
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "OPTIONS"],
        alias="CORS_ALLOW_METHODS",
    )
    cors_allow_headers: list[str] = Field(default=["*"], alias="CORS_ALLOW_HEADERS")

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
    )

    @property
    def database_url_sync(self) -> str:
        """Return a sync-compatible database URL for tooling.

        Converts asyncpg URLs to psycopg for synchronous database operations
        like Alembic migrations.
        """
        url = self.effective_database_url
        if url.startswith("postgresql+asyncpg"):
            return url.replace("postgresql+asyncpg", "postgresql+psycopg", 1)
        return url

    @property
    def effective_database_url(self) -> str:
        """Return the database URL respecting testing overrides."""
        if self.use_testing_database and self.test_database_url:
            return self.test_database_url
        return self.database_url


settings = Settings()  # type: ignore[call-arg]
