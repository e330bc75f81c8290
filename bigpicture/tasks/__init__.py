"""Celery tasks for Big Picture Auction.

This module configures Celery and registers the periodic movie stats update.
"""

from celery import Celery
from celery.schedules import crontab

from bigpicture.config import get_settings
from bigpicture.config.logging import configure_logging

settings = get_settings()
configure_logging(settings.log_level)

batch_config = settings.load_defaults_config().get("batch", {})

# Create Celery application
celery_app = Celery(
    "bigpicture",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=["bigpicture.tasks.movie_stats"],
)

# Celery configuration
celery_app.conf.update(
    # Serialization
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    # Timezone
    timezone="UTC",
    enable_utc=True,
    # Task behavior
    task_track_started=True,
    task_time_limit=int(settings.batch_timeout_seconds) + 300,
    task_soft_time_limit=int(settings.batch_timeout_seconds) + 240,
    # Result expiration
    result_expires=86400,  # 1 day
    # Worker settings
    worker_prefetch_multiplier=1,
    worker_concurrency=1,
)

# Beat schedule for periodic tasks
celery_app.conf.beat_schedule = {
    # Movie stats - once a day
    "update-movie-stats": {
        "task": "bigpicture.tasks.movie_stats.update_all_movie_stats",
        "schedule": crontab(
            hour=batch_config.get("schedule_hour_utc", 9),
            minute=batch_config.get("schedule_minute", 0),
        ),
        "options": {"expires": 82800},  # Expire before next run
    },
}
