from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    DATABASE_URL: str

    @field_validator("DATABASE_URL", mode="after")
    @classmethod
    def normalize_database_url(cls, v: str) -> str:
        """Hosted Postgres hands out postgres://; SQLAlchemy expects postgresql+psycopg2://."""
        if v and v.startswith("postgres://"):
            return "postgresql+psycopg2://" + v[11:]
        return v

    # Operator session tokens
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 480

    ADMIN_EMAIL: str
    ADMIN_PASSWORD_HASH: str

    # Calendar cache is skipped when this is empty
    REDIS_URL: str = ""
    CALENDAR_CACHE_TTL_SECONDS: int = 5

    KAFKA_BOOTSTRAP_SERVERS: str = "kafka:9092"
    KAFKA_DISPATCH_TOPIC: str = "dispatch_events"
    OUTBOX_POLL_INTERVAL_SECONDS: int = 5

    INTEGRITY_CHECK_INTERVAL_SECONDS: int = 3600
    ENABLE_BACKGROUND_TASKS: bool = True

    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


settings = Settings()
