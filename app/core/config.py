from pathlib import Path
from pydantic import Field
from pydantic_settings import BaseSettings
from dotenv import load_dotenv

# -------------------------------------------------
# Explicitly load .env (CRITICAL)
# -------------------------------------------------

BASE_DIR = Path(__file__).resolve().parent.parent.parent
ENV_PATH = BASE_DIR / ".env"

load_dotenv(dotenv_path=ENV_PATH)


class Settings(BaseSettings):
    DATABASE_URL: str
    SECRET_KEY: str
    ENVIRONMENT: str = "development"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    ALGORITHM: str = "HS256"
    LOG_LEVEL: str = Field(default="INFO", description="Root log level applied on startup")

    # Async engine pool (ignored for SQLite)
    DB_POOL_SIZE: int = Field(default=5, description="Persistent connections per process")
    DB_MAX_OVERFLOW: int = Field(default=10, description="Extra connections under burst")
    DB_POOL_RECYCLE_SECONDS: int = Field(default=1800, description="Recycle connections older than this")

    # Wall clock used for sending windows and "today" (env: NOTIFICATION_TIMEZONE)
    NOTIFICATION_TIMEZONE: str = Field(default="America/Sao_Paulo", description="IANA zone for local day boundaries")

    # Cron loops (env: CRON_ENABLED, CRON_SCAN_INTERVAL_MINUTES, CRON_QUEUE_INTERVAL_SECONDS)
    CRON_ENABLED: bool = Field(default=True, description="Start scanner and queue loops on startup")
    CRON_SCAN_INTERVAL_MINUTES: float = Field(default=60.0, description="Invoice scan interval in minutes")
    CRON_QUEUE_INTERVAL_SECONDS: float = Field(default=60.0, description="Queue drain interval in seconds")

    # Queue processor throttling
    NOTIFICATION_BATCH_SIZE: int = Field(default=1, description="Queued entries picked per drain cycle")
    NOTIFICATION_MIN_DELAY_SECONDS: float = Field(default=15.0, description="Lower bound of the per-message delay")
    NOTIFICATION_MAX_DELAY_SECONDS: float = Field(default=30.0, description="Upper bound of the per-message delay")
    NOTIFICATION_FOLLOW_UP_PAUSE_SECONDS: float = Field(default=2.0, description="Pause between text and payment attachment")

    # WhatsApp via Evolution API. Optional; leave empty to disable sending.
    EVOLUTION_API_URL: str = Field(default="", description="Base URL of the Evolution API server")
    EVOLUTION_API_KEY: str = Field(default="", description="Global apikey header for the Evolution API")
    EVOLUTION_TIMEOUT_SECONDS: float = Field(default=30.0, description="HTTP timeout per provider call")
    WHATSAPP_DEFAULT_COUNTRY_CODE: str = Field(default="55", description="Prefixed to national 10/11 digit numbers")

    class Config:
        extra = "ignore"
        env_file = str(ENV_PATH)
        env_file_encoding = "utf-8"


settings = Settings()
