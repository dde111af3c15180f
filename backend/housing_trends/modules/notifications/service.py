from typing import List, Optional, Dict, Any
from datetime import datetime, timezone
from sqlalchemy import select, update, func, and_, desc
from housing_trends.core.database import SessionLocal
from housing_trends.core.exceptions import NotificationNotFoundError
from housing_trends.db.models import Notification as DBNotification
from housing_trends.models.notification import Notification, NotificationStats, NotificationType
from housing_trends.modules.notifications.cadence import as_utc
import logging

logger = logging.getLogger(__name__)


class NotificationService:
    """Service for the per-user notification inbox"""

    def __init__(self, session_factory=SessionLocal):
        self.session_factory = session_factory

    async def create_notification(
        self,
        user_id: str,
        type: NotificationType,
        subject: str,
        content: str,
        metadata: Optional[Dict[str, Any]] = None
    ) -> Notification:
        """Create an unread, unsent inbox entry"""
        return self.add_notification(user_id, type, subject, content, metadata)

    def add_notification(
        self,
        user_id: str,
        type: NotificationType,
        subject: str,
        content: str,
        metadata: Optional[Dict[str, Any]] = None
    ) -> Notification:
        """Blocking form of create_notification, for callers running in a worker thread"""
        db_notification = DBNotification(
            user_id=user_id,
            type=NotificationType(type).value,
            subject=subject,
            content=content,
            extra=metadata or {},
            read=False,
            sent=False,
            created_at=datetime.now(timezone.utc)
        )

        with self.session_factory() as db:
            try:
                db.add(db_notification)
                db.commit()
                db.refresh(db_notification)
            except Exception as e:
                db.rollback()
                logger.error(f"Failed to create notification for user {user_id}: {e}")
                raise

            logger.info(f"Notification {db_notification.id} created for user {user_id}")
            return self._to_model(db_notification)

    async def get_user_notifications(
        self,
        user_id: str,
        unread_only: bool = False,
        limit: int = 50,
        offset: int = 0
    ) -> List[Notification]:
        stmt = select(DBNotification).where(DBNotification.user_id == user_id)
        if unread_only:
            stmt = stmt.where(DBNotification.read.is_(False))
        stmt = (
            stmt.order_by(desc(DBNotification.created_at), desc(DBNotification.id))
            .offset(offset)
            .limit(limit)
        )

        with self.session_factory() as db:
            return [self._to_model(n) for n in db.execute(stmt).scalars().all()]

    def _owned(self, db, notification_id: str, user_id: str) -> DBNotification:
        db_notification = db.execute(
            select(DBNotification).where(
                and_(DBNotification.id == notification_id, DBNotification.user_id == user_id)
            )
        ).scalar_one_or_none()
        if db_notification is None:
            raise NotificationNotFoundError(notification_id)
        return db_notification

    async def get_notification(self, notification_id: str, user_id: str) -> Notification:
        with self.session_factory() as db:
            return self._to_model(self._owned(db, notification_id, user_id))

    async def mark_as_read(self, notification_id: str, user_id: str) -> Notification:
        with self.session_factory() as db:
            db_notification = self._owned(db, notification_id, user_id)
            if not db_notification.read:
                db_notification.read = True
                db_notification.read_at = datetime.now(timezone.utc)
                db.commit()
                db.refresh(db_notification)
            return self._to_model(db_notification)

    async def mark_all_as_read(self, user_id: str) -> int:
        """Mark every unread notification as read, returning how many changed"""
        stmt = (
            update(DBNotification)
            .where(DBNotification.user_id == user_id, DBNotification.read.is_(False))
            .values(read=True, read_at=datetime.now(timezone.utc))
        )
        with self.session_factory() as db:
            result = db.execute(stmt)
            db.commit()
            return result.rowcount

    async def delete_notification(self, notification_id: str, user_id: str) -> None:
        with self.session_factory() as db:
            db_notification = self._owned(db, notification_id, user_id)
            db.delete(db_notification)
            db.commit()

    async def get_notification_stats(self, user_id: str) -> NotificationStats:
        with self.session_factory() as db:
            total = db.execute(
                select(func.count(DBNotification.id)).where(DBNotification.user_id == user_id)
            ).scalar_one()
            unread = db.execute(
                select(func.count(DBNotification.id)).where(
                    DBNotification.user_id == user_id, DBNotification.read.is_(False)
                )
            ).scalar_one()
            by_type_rows = db.execute(
                select(DBNotification.type, func.count(DBNotification.id))
                .where(DBNotification.user_id == user_id)
                .group_by(DBNotification.type)
            ).all()

        return NotificationStats(
            total=total,
            unread=unread,
            by_type={type_: count for type_, count in by_type_rows}
        )

    @staticmethod
    def _to_model(db_notification: DBNotification) -> Notification:
        return Notification(
            id=db_notification.id,
            user_id=db_notification.user_id,
            type=NotificationType(db_notification.type),
            subject=db_notification.subject,
            content=db_notification.content,
            metadata=db_notification.extra or {},
            read=bool(db_notification.read),
            read_at=as_utc(db_notification.read_at),
            sent=bool(db_notification.sent),
            sent_at=as_utc(db_notification.sent_at),
            created_at=as_utc(db_notification.created_at)
        )
