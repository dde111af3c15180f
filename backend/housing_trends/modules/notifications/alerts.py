"""
One-off notifications that are not tied to a saved search: county price
alerts, welcome messages and test notifications.
"""
from typing import Optional
import asyncio
from housing_trends.core.database import SessionLocal
from housing_trends.db.models import User as DBUser
from housing_trends.models.notification import (
    Notification, NotificationMessage, NotificationType, PriceAlertData
)
from housing_trends.models.records import County
from housing_trends.modules.notifications.delivery import QueuedNotificationDelivery
from housing_trends.modules.search.repository import RecordRepository
import logging

logger = logging.getLogger(__name__)

WELCOME_SUBJECT = "Welcome to Housing Trends Dashboard!"


def _money(value: Optional[float]) -> str:
    return f"${value:,.0f}" if value is not None else "N/A"


def _percent(value: Optional[float]) -> str:
    return f"{value}%" if value is not None else "N/A"


def build_price_alert(user_id: str, county: County, price_data: PriceAlertData) -> NotificationMessage:
    place = f"{county.name}, {county.state or county.state_code}"
    body = "\n".join([
        f"Housing market alert for {place}:",
        "",
        f"Current median home price: {_money(price_data.median_home_price)}",
        f"Change from last year: {_percent(price_data.price_change_yoy)}",
        "",
        f"Current median rent: {_money(price_data.median_rent)}",
        f"Change from last year: {_percent(price_data.rent_change_yoy)}",
        "",
        "View more details on your dashboard.",
    ])
    return NotificationMessage(
        recipient_id=user_id,
        subject=f"Price Alert: {place}",
        body=body,
        metadata={
            "county_fips": county.fips_code,
            "price_data": price_data.model_dump(),
        },
        type=NotificationType.PRICE_ALERT
    )


def build_welcome(user_id: str, name: Optional[str] = None) -> NotificationMessage:
    body = "\n".join([
        f"Welcome {name or 'there'}!",
        "",
        "We're excited to have you on board. Here's what you can do:",
        "- Search for housing and rent data across US counties",
        "- Save your favorite searches and get notified of changes",
        "- Track market trends over time",
        "",
        "Get started by exploring the dashboard!",
    ])
    return NotificationMessage(
        recipient_id=user_id,
        subject=WELCOME_SUBJECT,
        body=body,
        type=NotificationType.WELCOME
    )


class AlertService:
    """Sends notifications that do not come from the scheduler"""

    def __init__(
        self,
        records: RecordRepository,
        delivery: QueuedNotificationDelivery,
        session_factory=SessionLocal
    ):
        self.records = records
        self.delivery = delivery
        self.session_factory = session_factory

    async def send_price_alert(
        self,
        user_id: str,
        fips_code: str,
        price_data: PriceAlertData
    ) -> Optional[Notification]:
        """Alert a user about one county; returns None for an unknown county"""
        county = await asyncio.to_thread(self.records.get_county, fips_code)
        if county is None:
            logger.warning(f"Price alert for unknown county {fips_code} dropped")
            return None

        return await self.delivery.send(build_price_alert(user_id, county, price_data))

    async def send_welcome(self, user_id: str) -> Optional[Notification]:
        """Welcome a registered user; returns None when the user is unknown"""
        found, name = await asyncio.to_thread(self._lookup_user, user_id)
        if not found:
            logger.warning(f"Welcome notification for unknown user {user_id} dropped")
            return None

        return await self.delivery.send(build_welcome(user_id, name))

    async def send_test(self, user_id: str) -> Notification:
        message = NotificationMessage(
            recipient_id=user_id,
            subject="Test Notification",
            body="This is a test notification to verify the system is working correctly.",
            metadata={"test": True},
            type=NotificationType.SYSTEM
        )
        return await self.delivery.send(message)

    def _lookup_user(self, user_id: str):
        with self.session_factory() as db:
            user = db.get(DBUser, user_id)
            if user is None:
                return False, None
            return True, user.name
