"""
Celery tasks for notification emails and scheduler ticks
"""
import asyncio
import logging
import smtplib
from datetime import datetime, timezone
from typing import Any, Dict
from celery import Task
from sqlalchemy.orm import Session

from housing_trends.core.celery_app import celery_app
from housing_trends.core.database import SessionLocal
from housing_trends.db.models import Notification as DBNotification, User as DBUser
from housing_trends.models.notification import PriceAlertData
from housing_trends.modules.notifications.email_utils import send_email

logger = logging.getLogger(__name__)


class DatabaseTask(Task):
    """Base task class that provides database session management"""

    def __call__(self, *args, **kwargs):
        with SessionLocal() as db:
            try:
                return self.run(db, *args, **kwargs)
            except Exception as e:
                db.rollback()
                logger.error(f"Task {self.name} failed: {str(e)}")
                raise

    def run(self, db: Session, *args, **kwargs):
        """Override this method in subclasses"""
        raise NotImplementedError


@celery_app.task(bind=True, base=DatabaseTask, max_retries=5)
def send_notification_email(self, db: Session, notification_id: str) -> Dict[str, Any]:
    """
    Email one inbox notification to its recipient and mark it sent
    """
    notification = db.get(DBNotification, notification_id)
    if notification is None:
        logger.warning(f"Notification {notification_id} no longer exists, not sending")
        return {"notification_id": notification_id, "status": "missing"}

    if notification.sent:
        return {"notification_id": notification_id, "status": "already_sent"}

    user = db.get(DBUser, notification.user_id)
    if user is None or not user.is_active or not user.email:
        logger.warning(f"No active recipient for notification {notification_id}")
        return {"notification_id": notification_id, "status": "no_recipient"}

    try:
        send_email(user.email, notification.subject, notification.content)
    except (smtplib.SMTPException, OSError) as e:
        logger.error(f"Sending notification {notification_id} failed: {e}")
        # Retry with exponential backoff
        raise self.retry(exc=e, countdown=60 * (2 ** self.request.retries))

    notification.sent = True
    notification.sent_at = datetime.now(timezone.utc)
    db.commit()

    logger.info(f"Notification {notification_id} emailed to user {notification.user_id}")
    return {"notification_id": notification_id, "status": "sent"}


@celery_app.task
def run_notification_tick() -> Dict[str, Any]:
    """
    Periodic task that runs one notification scheduler tick
    """
    from housing_trends.modules.notifications.factory import build_scheduler

    report = asyncio.run(build_scheduler().run_tick(datetime.now(timezone.utc)))
    return {
        "started_at": report.started_at.isoformat(),
        "due": report.due_count,
        "fired": len(report.fired),
        "failed": len(report.failed),
        "skipped": len(report.skipped),
    }


@celery_app.task
def send_price_alert(user_id: str, fips_code: str, price_data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Store and email a county price alert, e.g. after new data is loaded
    """
    from housing_trends.modules.notifications.factory import build_alert_service

    notification = asyncio.run(
        build_alert_service().send_price_alert(user_id, fips_code, PriceAlertData(**price_data))
    )
    if notification is None:
        return {"user_id": user_id, "status": "unknown_county"}
    return {"user_id": user_id, "notification_id": notification.id, "status": "queued"}


@celery_app.task
def send_welcome_notification(user_id: str) -> Dict[str, Any]:
    """
    Welcome a newly registered user
    """
    from housing_trends.modules.notifications.factory import build_alert_service

    notification = asyncio.run(build_alert_service().send_welcome(user_id))
    if notification is None:
        return {"user_id": user_id, "status": "unknown_user"}
    return {"user_id": user_id, "notification_id": notification.id, "status": "queued"}
