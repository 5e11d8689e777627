"""
Run the invoice scan and the notification queue in the background (non-blocking).
Started on app startup; cancelled on shutdown.
Both loops keep a fixed cadence: the time a run took is subtracted from the next wait.
A drain that outlasts its interval is followed immediately by the next one.
"""
import asyncio
import logging
import time
from typing import Awaitable, Callable

from app.core.config import settings
from app.cron.invoice_scanner import scan_and_queue_invoices
from app.cron.queue_processor import QueueProcessor

logger = logging.getLogger(__name__)

STARTUP_DELAY_SECONDS = 10.0

Sleep = Callable[[float], Awaitable[None]]
Clock = Callable[[], float]


def next_delay(interval_seconds: float, elapsed_seconds: float) -> float:
    """Wait that puts the next run one interval after the previous run started."""
    return max(0.0, interval_seconds - elapsed_seconds)


async def _run_every(
    name: str,
    interval_seconds: float,
    job: Callable[[], Awaitable[object]],
    sleep: Sleep,
    clock: Clock,
) -> None:
    # Small delay so app is fully up before first run
    await sleep(STARTUP_DELAY_SECONDS)
    while True:
        started = clock()
        try:
            await job()
            await sleep(next_delay(interval_seconds, clock() - started))
        except asyncio.CancelledError:
            logger.info("%s cron cancelled", name)
            break
        except Exception as e:
            logger.exception("%s cron loop error: %s", name, e)
            await sleep(next_delay(interval_seconds, clock() - started))


async def run_invoice_scan_cron_loop(sleep: Sleep = asyncio.sleep, clock: Clock = time.monotonic) -> None:
    """Scan after a short delay, then every CRON_SCAN_INTERVAL_MINUTES (minimum 1 minute)."""
    interval_minutes = getattr(settings, "CRON_SCAN_INTERVAL_MINUTES", 60.0)
    interval_seconds = max(60.0, interval_minutes * 60)
    logger.info("Invoice scan cron started (interval=%.1f minutes)", interval_minutes)
    await _run_every("Invoice scan", interval_seconds, scan_and_queue_invoices, sleep, clock)


async def run_notification_queue_cron_loop(
    processor: QueueProcessor,
    sleep: Sleep = asyncio.sleep,
    clock: Clock = time.monotonic,
) -> None:
    """Drain one batch every CRON_QUEUE_INTERVAL_SECONDS (minimum 5s), measured start to start."""
    interval_seconds = max(5.0, getattr(settings, "CRON_QUEUE_INTERVAL_SECONDS", 60.0))
    logger.info("Notification queue cron started (interval=%.0f seconds)", interval_seconds)
    await _run_every("Notification queue", interval_seconds, processor.drain, sleep, clock)
