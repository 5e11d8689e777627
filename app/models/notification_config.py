"""Per-school settings for the debt-collection notifications."""
import uuid

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String, Uuid

from app.core.database import Base
from app.core.utils import utcnow

DEFAULT_WINDOW_START = "08:00"
DEFAULT_WINDOW_END = "18:00"


class NotificationConfig(Base):
    __tablename__ = "notification_configs"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    school_id = Column(Uuid, ForeignKey("schools.id"), nullable=False, unique=True, index=True)
    is_active = Column(Boolean, default=False, nullable=False)  # off until the school opts in
    window_start = Column(String(5), default=DEFAULT_WINDOW_START, nullable=False)  # HH:MM local
    window_end = Column(String(5), default=DEFAULT_WINDOW_END, nullable=False)
    enable_reminder = Column(Boolean, default=True, nullable=False)
    enable_due_today = Column(Boolean, default=True, nullable=False)
    enable_overdue = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
