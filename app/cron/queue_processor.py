"""
Cron job: drain queued WhatsApp notifications one small batch at a time.

queued -> processing -> sent | failed. A randomized 15-30s pause precedes every
message to stay under the provider's anti-abuse limits. Failed entries are not
retried here; see notification_queue.retry_all_failed.
"""
import asyncio
import logging
import random
import re
from datetime import datetime
from typing import Awaitable, Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.config import settings
from app.core.database import get_async_session_maker_instance
from app.core.errors import (
    ChannelDisconnectedError,
    InvoiceAlreadyResolvedError,
    InvoiceNotFoundError,
    NotificationError,
    WhatsAppError,
    friendly_error_message,
)
from app.core.events import NOTIFICATION_UPDATED, EventBus, event_bus, notification_payload
from app.core.message_templates import MessageContext, RandomTemplateProvider, TemplateProvider
from app.core.notification_queue import fetch_due_batch, transition
from app.core.utils import first_name, format_br_date, format_brl_cents, utcnow
from app.core.whatsapp_client import MessagingChannel, get_whatsapp_client
from app.models.enums import InvoiceStatus, NotificationStatus, PaymentGateway, WhatsAppStatus
from app.models.invoice import Invoice
from app.models.notification_log import NotificationLog
from app.models.school import School

logger = logging.getLogger(__name__)

DEFAULT_SCHOOL_NAME = "Escola"
RESOLVED_INVOICE_STATUSES = (InvoiceStatus.paid.value, InvoiceStatus.canceled.value)


class QueueProcessor:
    """Owns its in-flight guard, so several processors (e.g. one per shard) can coexist."""

    def __init__(
        self,
        session_maker: Optional[async_sessionmaker] = None,
        messenger: Optional[MessagingChannel] = None,
        templates: Optional[TemplateProvider] = None,
        events: Optional[EventBus] = None,
        batch_size: Optional[int] = None,
        min_delay: Optional[float] = None,
        max_delay: Optional[float] = None,
        follow_up_pause: Optional[float] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        rng: Optional[random.Random] = None,
    ):
        self.session_maker = session_maker or get_async_session_maker_instance()
        self.messenger = messenger or get_whatsapp_client()
        self.templates = templates or RandomTemplateProvider()
        self.events = events or event_bus
        self.batch_size = max(1, batch_size or settings.NOTIFICATION_BATCH_SIZE)
        self.min_delay = settings.NOTIFICATION_MIN_DELAY_SECONDS if min_delay is None else min_delay
        self.max_delay = settings.NOTIFICATION_MAX_DELAY_SECONDS if max_delay is None else max_delay
        self.follow_up_pause = (
            settings.NOTIFICATION_FOLLOW_UP_PAUSE_SECONDS if follow_up_pause is None else follow_up_pause
        )
        self.sleep = sleep
        self.rng = rng or random.Random()
        self._lock = asyncio.Lock()

    @property
    def is_processing(self) -> bool:
        return self._lock.locked()

    async def drain(self, now: Optional[datetime] = None) -> int:
        """Process one batch. Returns how many entries were handled; 0 if a drain is already running."""
        if self._lock.locked():
            logger.debug("Queue: drain already in flight, skipping")
            return 0
        async with self._lock:
            try:
                return await self._drain(now)
            except Exception as e:
                logger.exception("Queue: drain failed: %s", e)
                return 0

    async def _drain(self, now: Optional[datetime]) -> int:
        async with self.session_maker() as session:
            batch = await fetch_due_batch(session, self.batch_size, now or utcnow())
            if batch:
                logger.info("Queue: processing batch of %s", len(batch))
            for entry in batch:
                await self._process_entry(session, entry)
            return len(batch)

    async def _process_entry(self, session: AsyncSession, entry: NotificationLog) -> None:
        transition(entry, NotificationStatus.processing)
        await session.commit()
        self.events.emit(NOTIFICATION_UPDATED, notification_payload(entry))

        try:
            delay = self.rng.uniform(self.min_delay, self.max_delay)
            logger.info("Queue: waiting %.0fs before sending to %s", delay, entry.tutor_name)
            await self.sleep(delay)

            await self._deliver(session, entry)

            transition(entry, NotificationStatus.sent)
            entry.sent_at = utcnow()
            entry.error_message = None
            logger.info("Queue: sent %s notification to %s", entry.category, entry.tutor_name)
        except Exception as e:
            message = friendly_error_message(e)
            logger.error("Queue: failed to notify %s: %s", entry.tutor_name, message)
            transition(entry, NotificationStatus.failed)
            entry.error_message = message
            entry.attempts = (entry.attempts or 0) + 1

        try:
            await session.commit()
        except Exception as e:
            # Entry stays in processing; nothing reclaims it automatically.
            await session.rollback()
            logger.exception("Queue: could not persist outcome for notification: %s", e)
            return
        self.events.emit(NOTIFICATION_UPDATED, notification_payload(entry))

    async def _deliver(self, session: AsyncSession, entry: NotificationLog) -> None:
        school = await session.get(School, entry.school_id)
        if school is None:
            raise NotificationError(f"School {entry.school_id} not found.")
        await self._ensure_channel(school)

        invoice = await session.get(Invoice, entry.invoice_id)
        if invoice is None:
            raise InvoiceNotFoundError(entry.invoice_id)
        if invoice.status in RESOLVED_INVOICE_STATUSES:
            raise InvoiceAlreadyResolvedError(invoice.status)

        text = self.templates.render(
            entry.category,
            MessageContext(
                school=school.name or DEFAULT_SCHOOL_NAME,
                name=first_name(entry.tutor_name),
                description=invoice.description,
                amount=format_brl_cents(invoice.value),
                due_date=format_br_date(invoice.due_date),
            ),
        )
        await self.messenger.send_text(entry.school_id, entry.target_phone, text)
        await self.sleep(self.follow_up_pause)
        await self._send_payment_details(entry, invoice)

    async def _ensure_channel(self, school: School) -> None:
        """Trust a cached 'connected'; otherwise ask the provider once before giving up."""
        if school.whatsapp_status == WhatsAppStatus.connected.value:
            return
        logger.warning(
            "Queue: school %s WhatsApp cached as %s; checking provider", school.id, school.whatsapp_status
        )
        if not await self.messenger.is_channel_connected(school.id):
            raise ChannelDisconnectedError()
        school.whatsapp_status = WhatsAppStatus.connected.value
        logger.info("Queue: school %s WhatsApp is online, continuing", school.id)

    async def _send_payment_details(self, entry: NotificationLog, invoice: Invoice) -> None:
        phone = entry.target_phone
        if invoice.gateway == PaymentGateway.cora.value and invoice.boleto_url:
            safe_name = re.sub(r"[^a-zA-Z0-9]", "_", first_name(entry.student_name)) or "Aluno"
            filename = f"Boleto_{safe_name}.pdf"
            try:
                await self.messenger.send_file(
                    entry.school_id, phone, invoice.boleto_url, filename, "📄 Segue o seu boleto."
                )
            except WhatsAppError as e:
                logger.warning("Queue: boleto PDF send failed (%s); sending link instead", e)
                await self.messenger.send_text(entry.school_id, phone, f"📄 Baixe aqui: {invoice.boleto_url}")
            if invoice.boleto_barcode:
                await self.messenger.send_text(entry.school_id, phone, invoice.boleto_barcode)
        elif invoice.gateway == PaymentGateway.mercadopago.value and invoice.pix_code:
            await self.messenger.send_text(entry.school_id, phone, "💠 Pix Copia e Cola:")
            await self.messenger.send_text(entry.school_id, phone, invoice.pix_code)
