"""Queue item and audit record for WhatsApp billing notifications."""
import uuid

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text, Uuid

from app.core.database import Base
from app.core.utils import utcnow
from app.models.enums import NotificationCategory, NotificationStatus


class NotificationLog(Base):
    """
    One notification work item. Doubles as the audit trail.
    student_name / tutor_name / target_phone are a snapshot taken at enqueue time.
    """
    __tablename__ = "notification_logs"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    school_id = Column(Uuid, ForeignKey("schools.id"), nullable=False, index=True)
    invoice_id = Column(Uuid, ForeignKey("invoices.id"), nullable=False, index=True)
    student_name = Column(String, nullable=False)
    tutor_name = Column(String, nullable=False)
    target_phone = Column(String(32), nullable=False)
    category = Column(String(20), default=NotificationCategory.new_invoice.value, nullable=False)
    status = Column(String(20), default=NotificationStatus.queued.value, nullable=False, index=True)
    scheduled_for = Column(DateTime, default=utcnow, nullable=False)
    sent_at = Column(DateTime, nullable=True)
    attempts = Column(Integer, default=0, nullable=False)
    error_message = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)
