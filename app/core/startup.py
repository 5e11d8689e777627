"""
Startup utilities for the application.
"""
import logging

from sqlalchemy.exc import OperationalError, ProgrammingError

from app.core.database import Base, engine
from app.models import NotificationConfig, NotificationLog

logger = logging.getLogger(__name__)


async def ensure_notification_tables() -> None:
    """
    Create notification_configs / notification_logs if missing.
    Only these two tables belong to this service; the rest come from the school system's migrations.
    """
    try:
        async with engine.begin() as conn:
            await conn.run_sync(
                Base.metadata.create_all,
                tables=[NotificationConfig.__table__, NotificationLog.__table__],
                checkfirst=True,
            )
        logger.info("Notification tables ready")
    except (OperationalError, ProgrammingError) as e:
        logger.warning(
            f"Database error while ensuring notification tables. Error: {e}. "
            f"Please ensure database is accessible and run 'alembic upgrade head'."
        )
    except Exception as e:
        logger.error(f"Unexpected error while ensuring notification tables: {e}", exc_info=True)
