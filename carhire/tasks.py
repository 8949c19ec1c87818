"""Celery background tasks."""

import asyncio
import logging
from datetime import datetime, timedelta

from celery import shared_task

from carhire.config import settings
from carhire.database import engine, get_db_context, utcnow
from carhire.services.booking_service import booking_service

logger = logging.getLogger(__name__)


def run_async(coro):
    """Run async function in sync context."""
    return asyncio.run(coro)


# ==================== BOOKING TASKS ====================


@shared_task(bind=True, max_retries=3)
def expire_unpaid_bookings(self):
    """Cancel bookings left in awaiting_payment past the payment window.

    Runs every 15 minutes. Safe to run concurrently on several workers.
    """
    if settings.pending_payment_ttl_hours <= 0:
        return {"status": "disabled", "expired": 0}

    try:
        cutoff = utcnow() - timedelta(hours=settings.pending_payment_ttl_hours)
        expired = run_async(_expire_unpaid_bookings(cutoff))
        return {"status": "success", "expired": expired}
    except Exception as exc:
        logger.exception("Expiry sweep failed")
        raise self.retry(exc=exc, countdown=300)


async def _expire_unpaid_bookings(cutoff: datetime) -> int:
    """Async implementation of the expiry sweep."""
    async with get_db_context() as db:
        expired = await booking_service.expire_unpaid_bookings(db, cutoff)
        await db.commit()
    # Pooled connections are bound to this event loop
    await engine.dispose()
    return expired
