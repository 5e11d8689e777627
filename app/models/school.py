import uuid

from sqlalchemy import Column, DateTime, String, Uuid

from app.core.database import Base
from app.core.utils import utcnow
from app.models.enums import WhatsAppStatus


class School(Base):
    """Tenant. Owned by the school-management side; read here for name and WhatsApp status."""
    __tablename__ = "schools"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String, nullable=False)
    whatsapp_status = Column(String(20), default=WhatsAppStatus.disconnected.value, nullable=False)
    whatsapp_instance_name = Column(String, nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
