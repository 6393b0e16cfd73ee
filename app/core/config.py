from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve .env from the project root so it loads regardless of cwd
_BACKEND_ROOT = Path(__file__).resolve().parent.parent.parent
_ENV_FILE = _BACKEND_ROOT / ".env"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=(str(_ENV_FILE), ".env", "../.env"),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    database_url: str = "sqlite+aiosqlite:///./roombooking.db"
    auto_create_tables: bool = True
    store_timeout_seconds: float = 5.0

    # CORS
    cors_origins: str = "http://localhost:3000"

    # Booking rules. All calendar-day, weekend and cutoff arithmetic happens in
    # booking_timezone; stored instants are naive UTC.
    booking_timezone: str = "UTC"
    operating_start_hour: int = 8
    operating_end_hour: int = 26  # exclusive, 26 == 02:00 next day
    booking_cutoff_hour: int = 22  # bookings for day D open at this hour on D-1
    weekday_booking_quota: int = 1
    weekend_booking_quota: int = 2
    slot_length_seconds: int = 59 * 60 + 59
    slot_tolerance_seconds: int = 1

    # Placeholder identity for users created on first booking
    placeholder_user_name: str = "Mock User"
    placeholder_email_domain: str = "example.com"

    # Env
    env: str = "development"

    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


settings = Settings()
