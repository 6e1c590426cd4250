from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    ENV: str = "dev"
    LOG_LEVEL: str = "INFO"
    BUSINESS_TIMEZONE: str = "Europe/Moscow"

    WORK_START: str = "09:00"
    WORK_END: str = "18:00"
    SESSION_DURATION_MINUTES: int = 60
    BOOKING_HORIZON_DAYS: int = 30
    MIN_LEAD_MINUTES: int = 0

    RESCHEDULE_CUTOFF_HOURS: float = 24
    RESCHEDULE_WARNING_HOURS: float = 48

    BULK_THRESHOLD: int = 2
    BULK_DISCOUNT_PERCENT: int = 10
    CATEGORY_DISCOUNT_PERCENT: int = 10
    MAX_COMBINED_DISCOUNT_PERCENT: int = 20

    STORE_PROVIDER: str = "memory"  # "memory" | "json"
    DATA_DIR: str = "./data"


settings = Settings()
