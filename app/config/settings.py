from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Application
    ENVIRONMENT: str = "development"
    NAME: str = "Accord Notification Engine"
    VERSION: str = "1.0.0"
    JOBS_PREFIX: str = "/jobs"
    WEBHOOK_PREFIX: str = "/webhooks"
    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./accord.db"

    # Redis & Celery
    REDIS_PASSWORD: str = ""
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0

    # Scheduling
    """Calendar-day boundaries used by the daily dedup window are computed in this zone."""
    SERVER_TIMEZONE: str = "UTC"
    DEFAULT_LOCALE: str = "en"
    JOB_BATCH_LIMIT: int = 100

    # Expo push delivery
    EXPO_PUSH_URL: str = "https://exp.host/--/api/v2/push/send"
    EXPO_ACCESS_TOKEN: str = ""
    PUSH_CHANNEL_ID: str = "default"

    # Resend email delivery
    RESEND_API_URL: str = "https://api.resend.com/emails"
    RESEND_API_KEY: str = ""
    EMAIL_FROM: str = "Accord <hello@mail.joinaccord.app>"

    # RevenueCat webhook
    REVENUECAT_WEBHOOK_SECRET: str = ""

    PROVIDER_TIMEOUT_SECONDS: float = 30.0

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
    )


settings = Settings()
