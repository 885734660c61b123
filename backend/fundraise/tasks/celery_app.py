"""
Celery application configuration for background tasks.

This module configures the Celery application that periodically re-seeds
the known wallets, so a store that lost its data recovers without a deploy.
"""
import os
from celery import Celery
from celery.schedules import crontab

from ..utils.config import settings
from ..utils.logger import get_logger

logger = get_logger("celery")

# Configure Celery application
celery_app = Celery(
    "startup_wallet_service",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=["fundraise.tasks.tasks"]
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_time_limit=600,
    worker_prefetch_multiplier=1,
    task_acks_late=True,
)

# Allow overriding configuration from environment variables
celery_app.conf.update(
    {k.lower(): v for k, v in os.environ.items() if k.startswith("CELERY_")}
)

# Configure scheduled tasks
celery_app.conf.beat_schedule = {
    # Daily re-seed at 3:00 AM UTC
    'seed-known-wallets': {
        'task': 'seed_known_wallets',
        'schedule': crontab(hour=3, minute=0),
        'options': {'expires': 3600}
    },
}

logger.info("Celery application configured successfully")
