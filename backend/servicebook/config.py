from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # App
    APP_ENV: str = "dev"
    SECRET_KEY: str
    JWT_EXPIRES_MIN: int = 1440
    LOG_LEVEL: str = "INFO"

    # DB (sqlite in dev, any SQLAlchemy URL in prod)
    DB_URL: str = "sqlite:///./servicebook.db"

    # Gmail (may be None in dev: messages are only logged)
    GOOGLE_CLIENT_ID: str | None = None
    GOOGLE_CLIENT_SECRET: str | None = None
    GOOGLE_REFRESH_TOKEN: str | None = None
    EMAIL_FROM: str | None = None

    # Admin recipients: CSV, ";" or newline. Empty -> active admins from the DB.
    ADMIN_EMAIL: str | None = None

    # Shown on receipts and email footers
    BUSINESS_NAME: str = "servicebook"

    # Public link used in emails (password reset)
    PUBLIC_BASE_URL: str = "http://127.0.0.1:8000"

    # Web Push (VAPID). Without keys push delivery is skipped.
    VAPID_PUBLIC_KEY: str | None = None
    VAPID_PRIVATE_KEY: str | None = None
    VAPID_SUBJECT: str = "mailto:admin@example.com"

    # Frontend origins allowed by CORS, CSV
    CORS_ORIGINS: str = "http://localhost:5173"

    def cors_origins(self) -> list[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]


settings = Settings()
