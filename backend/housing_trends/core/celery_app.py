"""
Celery configuration for notification emails and the scheduler tick
"""
from celery import Celery
from housing_trends.core.config import settings

# Create Celery instance
celery_app = Celery(
    "housing_trends",
    broker=settings.REDIS_URL,
    backend=settings.REDIS_URL,
    include=["housing_trends.modules.notifications.tasks"]
)

# Configure Celery
celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_time_limit=30 * 60,  # 30 minutes
    task_soft_time_limit=25 * 60,  # 25 minutes
    worker_prefetch_multiplier=1,
    worker_max_tasks_per_child=1000,
    # Retry configuration
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    # Beat schedule: the external trigger for the notification scheduler
    beat_schedule={
        "run-notification-tick": {
            "task": "housing_trends.modules.notifications.tasks.run_notification_tick",
            "schedule": settings.NOTIFICATION_TICK_INTERVAL_SECONDS,  # Hourly by default
        },
    },
)
