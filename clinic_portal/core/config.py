# clinic_portal/core/config.py

from typing import Optional
import urllib.parse

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # .env is optional; unknown keys are ignored
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # --- Store ---
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str = "clinic_portal"
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = ""
    # Full async URL; wins over POSTGRES_*, e.g. "sqlite+aiosqlite:///./data/clinic.db"
    DATABASE_URL: Optional[str] = None
    AUTO_CREATE_TABLES: bool = False

    # --- Identity (tokens are issued by the auth service) ---
    JWT_SECRET: str = "change-me"
    JWT_ALGORITHM: str = "HS256"

    # --- Scheduling & booking policy ---
    CLINIC_TIMEZONE: str = "America/Edmonton"
    DEFAULT_GENERATION_DAYS: int = 14
    MAX_GENERATION_DAYS: int = 90
    RELEASE_SLOT_ON_CANCEL: bool = True

    # --- Logging ---
    APP_ENV: str = "production"
    LOG_LEVEL: str = "INFO"
    LOG_REQUESTS: bool = False
    LOG_RESPONSES: bool = False
    MAX_LOG_LENGTH: int = 200
    SLOW_REQUEST_THRESHOLD: float = 2.0

    # Comma-separated, e.g. "http://localhost:3000,https://portal.example.com"
    ALLOWED_CORS_ORIGINS: str = "*"

    def _postgres_uri(self, scheme: str) -> str:
        pwd = urllib.parse.quote_plus(self.POSTGRES_PASSWORD)
        return f"{scheme}://{self.POSTGRES_USER}:{pwd}@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"

    # Async URI for the application engine
    @property
    def async_db_uri(self) -> str:
        return self.DATABASE_URL or self._postgres_uri("postgresql+asyncpg")

    # Sync URI for Alembic
    @property
    def sync_db_uri(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL.replace("+aiosqlite", "").replace("+asyncpg", "")
        return self._postgres_uri("postgresql")

    @property
    def allowed_origins_list(self) -> list[str]:
        return [o.strip() for o in self.ALLOWED_CORS_ORIGINS.split(",") if o.strip()]

    @property
    def is_development(self) -> bool:
        return self.APP_ENV.lower() in ("development", "dev", "local")


settings = Settings()
