"""Celery worker configuration.

Runs periodic maintenance for the booking engine:
- Expiring bookings that were never paid
"""

from celery import Celery
from celery.schedules import crontab

from carhire.config import settings

# Create Celery app
celery_app = Celery(
    "carhire_tasks",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=["carhire.tasks"],
)

beat_schedule = {}
if settings.pending_payment_ttl_hours > 0:
    beat_schedule["expire-unpaid-bookings"] = {
        "task": "carhire.tasks.expire_unpaid_bookings",
        "schedule": crontab(minute="*/15"),
    }

# Celery configuration
celery_app.conf.update(
    # Task settings
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,

    # Task execution settings
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    task_time_limit=300,  # 5 minutes max
    task_soft_time_limit=240,

    # Worker settings
    worker_prefetch_multiplier=1,

    # Result backend settings
    result_expires=3600,

    # Retry settings
    task_default_retry_delay=60,
    task_max_retries=3,

    beat_schedule=beat_schedule,
)


if __name__ == "__main__":
    celery_app.start()
