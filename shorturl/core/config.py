from typing import Optional

from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    PROJECT_NAME: str = "URL Shortener"
    BASE_URL: str = "http://localhost:8000"
    FRONTEND_URL: str = "http://localhost:3000"

    # Infrastructure Configs (DATABASE_URL wins over the POSTGRES_* parts)
    DATABASE_URL: Optional[str] = None
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = "password"
    POSTGRES_SERVER: str = "localhost"
    POSTGRES_PORT: str = "5432"
    POSTGRES_DB: str = "url_shortener"
    DB_CONNECT_TIMEOUT: int = 5
    DB_STATEMENT_TIMEOUT_MS: int = 5000

    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_TIMEOUT: float = 2.0

    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_LIMIT: int = 100
    RATE_LIMIT_WINDOW: int = 900

    # Shortcode lifecycle
    DEFAULT_VALIDITY_MINUTES: int = 30
    MAX_VALIDITY_MINUTES: int = 60 * 24 * 7
    SHORTCODE_LENGTH: int = 6
    SHORTCODE_MAX_RETRIES: int = 20
    LAZY_EXPIRY_ON_REDIRECT: bool = False

    SWEEPER_ENABLED: bool = True
    SWEEP_INTERVAL_SECONDS: int = 3600

    # Observability sink
    TELEMETRY_URL: Optional[str] = None
    TELEMETRY_PACKAGE: str = "url-shortener-backend"
    TELEMETRY_TIMEOUT: float = 2.0
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_SERVER}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

settings = Settings()
