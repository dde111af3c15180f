from fastapi import APIRouter, Depends, Header, Query, HTTPException, status
from typing import List, Optional
from datetime import datetime, timezone
import hmac
from housing_trends.api.dependencies import get_alert_service, get_notification_service, get_scheduler
from housing_trends.core.auth import get_current_user_id
from housing_trends.core.config import settings
from housing_trends.core.exceptions import NotificationNotFoundError
from housing_trends.models.notification import Notification, NotificationStats, TickReport
from housing_trends.modules.notifications.alerts import AlertService
from housing_trends.modules.notifications.scheduler import NotificationScheduler
from housing_trends.modules.notifications.service import NotificationService
import logging

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/", response_model=List[Notification])
async def list_notifications(
    unread_only: bool = Query(False),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    user_id: str = Depends(get_current_user_id),
    notification_service: NotificationService = Depends(get_notification_service)
):
    """Get the caller's notifications, newest first."""
    try:
        return await notification_service.get_user_notifications(user_id, unread_only, limit, offset)

    except Exception as e:
        logger.error(f"Failed to get notifications: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to retrieve notifications"
        )


@router.get("/stats", response_model=NotificationStats)
async def get_notification_stats(
    user_id: str = Depends(get_current_user_id),
    notification_service: NotificationService = Depends(get_notification_service)
):
    try:
        return await notification_service.get_notification_stats(user_id)

    except Exception as e:
        logger.error(f"Failed to get notification stats: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to retrieve notification stats"
        )


@router.put("/read-all")
async def mark_all_notifications_read(
    user_id: str = Depends(get_current_user_id),
    notification_service: NotificationService = Depends(get_notification_service)
):
    try:
        updated = await notification_service.mark_all_as_read(user_id)
        return {"message": "All notifications marked as read", "updated": updated}

    except Exception as e:
        logger.error(f"Failed to mark notifications as read: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update notifications"
        )


@router.post("/test", response_model=Notification, status_code=status.HTTP_201_CREATED)
async def send_test_notification(
    user_id: str = Depends(get_current_user_id),
    alert_service: AlertService = Depends(get_alert_service)
):
    """Send the caller a test notification through the normal delivery path."""
    try:
        return await alert_service.send_test(user_id)

    except Exception as e:
        logger.error(f"Failed to send test notification: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to send test notification"
        )


@router.post("/tick", response_model=TickReport)
async def trigger_tick(
    x_scheduler_token: Optional[str] = Header(None, alias="X-Scheduler-Token"),
    scheduler: NotificationScheduler = Depends(get_scheduler)
):
    """
    Run one notification scheduler tick.

    Used by external cron-style triggers. When SCHEDULER_TRIGGER_TOKEN is set
    the request must carry it in the X-Scheduler-Token header.
    """
    expected = settings.SCHEDULER_TRIGGER_TOKEN
    if expected and not hmac.compare_digest(x_scheduler_token or "", expected):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid scheduler token"
        )

    try:
        return await scheduler.run_tick(datetime.now(timezone.utc))

    except Exception as e:
        logger.error(f"Notification tick failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Notification tick failed"
        )


@router.get("/{notification_id}", response_model=Notification)
async def get_notification(
    notification_id: str,
    user_id: str = Depends(get_current_user_id),
    notification_service: NotificationService = Depends(get_notification_service)
):
    try:
        return await notification_service.get_notification(notification_id, user_id)

    except NotificationNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except Exception as e:
        logger.error(f"Failed to get notification {notification_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to retrieve notification"
        )


@router.put("/{notification_id}/read", response_model=Notification)
async def mark_notification_read(
    notification_id: str,
    user_id: str = Depends(get_current_user_id),
    notification_service: NotificationService = Depends(get_notification_service)
):
    try:
        return await notification_service.mark_as_read(notification_id, user_id)

    except NotificationNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except Exception as e:
        logger.error(f"Failed to mark notification {notification_id} as read: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update notification"
        )


@router.delete("/{notification_id}")
async def delete_notification(
    notification_id: str,
    user_id: str = Depends(get_current_user_id),
    notification_service: NotificationService = Depends(get_notification_service)
):
    try:
        await notification_service.delete_notification(notification_id, user_id)
        return {"message": "Notification deleted successfully"}

    except NotificationNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except Exception as e:
        logger.error(f"Failed to delete notification {notification_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to delete notification"
        )
