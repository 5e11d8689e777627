import uuid

from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, String, Uuid
from sqlalchemy.orm import relationship

from app.core.database import Base
from app.core.utils import utcnow
from app.models.enums import InvoiceStatus, PaymentGateway


class Invoice(Base):
    __tablename__ = "invoices"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    school_id = Column(Uuid, ForeignKey("schools.id"), nullable=False, index=True)
    student_id = Column(Uuid, ForeignKey("students.id"), nullable=False, index=True)
    tutor_id = Column(Uuid, ForeignKey("tutors.id"), nullable=True)
    description = Column(String, nullable=False)
    value = Column(Integer, nullable=False)  # cents
    due_date = Column(Date, nullable=False, index=True)
    status = Column(String(20), default=InvoiceStatus.pending.value, nullable=False, index=True)
    gateway = Column(String(20), default=PaymentGateway.mercadopago.value, nullable=False)
    pix_code = Column(String, nullable=True)  # mercadopago copia-e-cola
    boleto_url = Column(String, nullable=True)  # cora PDF
    boleto_barcode = Column(String, nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    student = relationship("Student", lazy="selectin")
    tutor = relationship("Tutor", lazy="selectin")
