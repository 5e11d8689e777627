from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.orm import declarative_base

from app.core.config import settings


def get_database_url():
    """asyncpg takes ssl=require (not libpq's sslmode) for remote Postgres outside development."""
    db_url = settings.DATABASE_URL
    if "postgresql" in db_url and "ssl" not in db_url and settings.ENVIRONMENT != "development":
        separator = "&" if "?" in db_url else "?"
        return f"{db_url}{separator}ssl=require"
    return db_url


def get_engine_kwargs(db_url: str) -> dict:
    engine_kwargs = {"echo": settings.ENVIRONMENT == "development"}
    if not db_url.startswith("sqlite"):
        # Cron loops and API requests share this pool.
        engine_kwargs.update(
            {
                "pool_pre_ping": True,
                "pool_size": settings.DB_POOL_SIZE,
                "max_overflow": settings.DB_MAX_OVERFLOW,
                "pool_recycle": settings.DB_POOL_RECYCLE_SECONDS,
            }
        )
    return engine_kwargs


DATABASE_URL = get_database_url()
engine = create_async_engine(DATABASE_URL, **get_engine_kwargs(DATABASE_URL))
async_session_maker = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)
Base = declarative_base()


def get_async_session_maker_instance():
    """Session factory used by the scanner and the queue processor outside request scope."""
    return async_session_maker
