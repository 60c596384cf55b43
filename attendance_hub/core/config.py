# attendance_hub/core/config.py
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Global application configuration.

    Values are loaded from environment variables (or a local `.env` file)
    at runtime.

    These settings are shared by:
    - the reference backend service (DB connection, accepted bearer tokens)
    - the scanner-side client (backend base URL, token, timeouts)
    - the live check-in flow (activation window, banner delays, camera)
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    APP_NAME: str = "Attendance Hub"
    APP_ENV: str = Field("local", description="Environment name: local/test/dev/stage/prod")
    LOG_LEVEL: str = Field("INFO", description="Root log level applied at startup.")

    DB_URL: str = Field(
        "sqlite+aiosqlite:///./attendance_hub.db",
        description="SQLAlchemy-compatible async database URL",
    )

    # --- Backend API (client side) ---
    API_BASE_URL: str = Field(
        "http://localhost:8000",
        description="Base URL of the attendance backend consumed by the scanner.",
    )
    API_TOKEN: str | None = Field(
        default=None,
        description="Bearer token sent on every backend request.",
    )
    API_TIMEOUT_SECONDS: float = Field(
        default=10.0,
        description="Timeout applied to each backend HTTP request.",
    )

    # --- Backend API (service side) ---
    API_BEARER_TOKENS: str | None = Field(
        default=None,
        description="Comma-separated list of bearer tokens accepted by the service.",
    )

    # --- Live check-in ---
    LIVE_CHECKIN_WINDOW_MINUTES: int = Field(
        default=240,
        description="Default activation window applied when live check-in is enabled.",
    )
    SUCCESS_BANNER_SECONDS: float = Field(
        default=3.0,
        description="Delay after which a success banner is cleared.",
    )
    ERROR_BANNER_SECONDS: float = Field(
        default=5.0,
        description="Delay after which an error banner is cleared.",
    )
    RECENT_SCANS_LIMIT: int = Field(
        default=5,
        description="Number of recently checked-in members kept by a scanner.",
    )
    RECENT_MEETING_DAYS: int = Field(
        default=3,
        description="How far back (in days) meetings are offered for live check-in.",
    )

    # --- Camera ---
    CAMERA_DEVICE_INDEX: int = Field(
        default=0,
        description="OpenCV device index used by the live camera decoder.",
    )
    CAMERA_FRAME_INTERVAL_SECONDS: float = Field(
        default=0.1,
        description="Pause between two sampled camera frames.",
    )

    @property
    def accepted_tokens(self) -> set[str]:
        """
        Parsed set of bearer tokens accepted by the service.
        """
        if not self.API_BEARER_TOKENS:
            return set()
        return {t.strip() for t in self.API_BEARER_TOKENS.split(",") if t.strip()}


@lru_cache()
def get_settings() -> Settings:
    """
    Cached accessor for application settings.

    Using LRU cache ensures settings are read and validated only once,
    while still being easily importable across the app.
    """
    return Settings()
