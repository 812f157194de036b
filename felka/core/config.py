from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    ENV: str = "local"
    APP_NAME: str = "FELKA Transportes API"
    # Comma-separated origins for CORS. If empty, uses localhost defaults.
    CORS_ORIGINS: str = ""

    SECRET_KEY: str
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30
    REFRESH_TOKEN_EXPIRE_DAYS: int = 7

    # Default is a volatile in-memory database; point at Postgres in production.
    DATABASE_URL: str = "sqlite+pysqlite:///:memory:"
    AUTO_CREATE_TABLES: bool = True
    SEED_ON_STARTUP: bool = False

    @field_validator("DATABASE_URL", mode="after")
    @classmethod
    def normalize_database_url(cls, v: str) -> str:
        """Hosting providers give postgres://; SQLAlchemy expects postgresql+psycopg2://."""
        if v and v.startswith("postgres://"):
            return "postgresql+psycopg2://" + v[11:]
        return v

    # Cargo scheduling
    TIMEZONE: str = "America/Sao_Paulo"
    CANCELLATION_WINDOW_HOURS: int = 3
    SLOT_HOURS: str = "08:00,09:00,10:00,11:00,12:00,13:00,14:00,15:00,16:00,17:00"
    DEFAULT_SLOT_CAPACITY: int = 5
    DEFAULT_SERVICE_TYPE: str = "loading"

    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False

    REDIS_URL: str = "redis://localhost:6379/0"

    # Notifications. When delivery is disabled e-mails are only logged.
    EMAIL_DELIVERY_ENABLED: bool = False
    SMTP_HOST: str = "localhost"
    SMTP_PORT: int = 25
    SMTP_USERNAME: str = ""
    SMTP_PASSWORD: str = ""
    SMTP_FROM: str = "agendamento@felka.local"

    SENDGRID_API_KEY: str = ""
    SENDGRID_FROM_EMAIL: str = ""

    @property
    def slot_hours(self) -> list[str]:
        return [h.strip() for h in self.SLOT_HOURS.split(",") if h.strip()]


settings = Settings()
