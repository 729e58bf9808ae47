import os
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    ENV: str = os.getenv("ENV", "development")  # development, dev-server, production
    DEBUG: bool = ENV in ["development", "dev-server"]

    # Database settings
    POSTGRES_HOST: str = os.getenv("POSTGRES_HOST", "localhost")
    POSTGRES_USER: str = os.getenv("POSTGRES_USER", "transitadmin")
    POSTGRES_PASSWORD: str = os.getenv("POSTGRES_PASSWORD", "transitpass")
    POSTGRES_DB: str = os.getenv("POSTGRES_DB", "campus_transit_db")
    POSTGRES_PORT: int = int(os.getenv("POSTGRES_PORT", "5432"))
    DATABASE_URL: str = os.getenv("DATABASE_URL", f"postgresql://{POSTGRES_USER}:{POSTGRES_PASSWORD}@{POSTGRES_HOST}:{POSTGRES_PORT}/{POSTGRES_DB}")

    # Database connection pool settings
    DB_POOL_SIZE: int = int(os.getenv("DB_POOL_SIZE", "10"))
    DB_MAX_OVERFLOW: int = int(os.getenv("DB_MAX_OVERFLOW", "20"))
    DB_POOL_TIMEOUT: int = int(os.getenv("DB_POOL_TIMEOUT", "30"))
    DB_POOL_RECYCLE: int = int(os.getenv("DB_POOL_RECYCLE", "3600"))

    # Auth settings
    SECRET_KEY: str = os.getenv("SECRET_KEY", "supersecretkey")
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60*24
    OAUTH2_URL: str = os.getenv("OAUTH2_URL", "")
    X_INTROSPECT_SECRET: str = os.getenv("X_INTROSPECT_SECRET", "")
    TOKEN_CACHE_TTL_SECONDS: int = int(os.getenv("TOKEN_CACHE_TTL_SECONDS", "300"))

    # Booking window (admin scheduling settings)
    BOOKING_WINDOW_ENABLED: bool = os.getenv("BOOKING_WINDOW_ENABLED", "true").lower() == "true"
    BOOKING_WINDOW_DAYS_BEFORE: int = int(os.getenv("BOOKING_WINDOW_DAYS_BEFORE", "1"))
    BOOKING_WINDOW_END_HOUR: int = int(os.getenv("BOOKING_WINDOW_END_HOUR", "19"))

    # Booking engine limits
    SEAT_LABEL_PREFIX: str = os.getenv("SEAT_LABEL_PREFIX", "A")
    CALENDAR_DEFAULT_RANGE_DAYS: int = int(os.getenv("CALENDAR_DEFAULT_RANGE_DAYS", "30"))
    RECONCILE_MAX_RANGE_DAYS: int = int(os.getenv("RECONCILE_MAX_RANGE_DAYS", "62"))
    RECONCILE_DEFAULT_TIMEOUT_SECONDS: float = float(os.getenv("RECONCILE_DEFAULT_TIMEOUT_SECONDS", "10"))

    # API specific settings
    API_PREFIX: str = "/api/v1"
    APP_NAME: str = "Campus Transit Booking"
    APP_VERSION: str = "1.0.0"

    class Config:
        case_sensitive = True
        env_file = None

settings = Settings()
