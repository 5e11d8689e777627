"""Read-only access to school invoices for the notification pipeline."""
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterable, Optional
from uuid import UUID

from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.eligibility import OVERDUE_WINDOW_DAYS, REMINDER_LEAD_DAYS
from app.models.enums import InvoiceStatus
from app.models.invoice import Invoice

DEFAULT_STUDENT_NAME = "Aluno"


@dataclass(frozen=True)
class PayerContact:
    payer_name: str
    phone: str
    student_name: str


def candidate_due_ranges(reference: date) -> list[tuple[date, date]]:
    """Due-date slices worth loading for `reference`: the overdue..today span and the reminder day."""
    reminder_day = reference + timedelta(days=REMINDER_LEAD_DAYS)
    return [
        (reference - timedelta(days=OVERDUE_WINDOW_DAYS), reference),
        (reminder_day, reminder_day),
    ]


async def find_pending_invoices_in_range(
    db: AsyncSession,
    school_id: UUID,
    date_ranges: Iterable[tuple[date, date]],
) -> list[Invoice]:
    """Pending invoices of one school whose due date falls in any of the inclusive ranges."""
    conditions = [and_(Invoice.due_date >= start, Invoice.due_date <= end) for start, end in date_ranges]
    if not conditions:
        return []
    result = await db.execute(
        select(Invoice)
        .where(
            Invoice.school_id == school_id,
            Invoice.status == InvoiceStatus.pending.value,
            or_(*conditions),
        )
        .order_by(Invoice.due_date, Invoice.id)
    )
    return list(result.scalars().all())


def resolve_payer_contact(invoice: Invoice) -> Optional[PayerContact]:
    """Tutor is the payer; falls back to the student's own number. None when no phone is known."""
    student_name = (invoice.student.full_name if invoice.student else None) or DEFAULT_STUDENT_NAME
    for person in (invoice.tutor, invoice.student):
        if person is None:
            continue
        phone = (person.phone_number or "").strip()
        if person.full_name and phone:
            return PayerContact(payer_name=person.full_name, phone=phone, student_name=student_name)
    return None
