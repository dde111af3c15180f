"""
Tests for notification Celery tasks and email rendering
"""
import smtplib
import pytest
from datetime import datetime, timezone
from unittest.mock import patch, MagicMock

from housing_trends.db.models import Notification as DBNotification, User as DBUser
from housing_trends.models.notification import PriceAlertData, TickReport
from housing_trends.modules.notifications.email_utils import render_email_html, send_email
from housing_trends.modules.notifications.tasks import (
    run_notification_tick, send_notification_email, send_price_alert, send_welcome_notification
)


@pytest.fixture
def notification_row(test_db_session):
    test_db_session.add(DBUser(id="user-1", email="renter@example.com", name="Renter"))
    notification = DBNotification(
        id="n1",
        user_id="user-1",
        type="market_update",
        subject="Market Update: CA rentals",
        content="Rents: 5 records, average 1,920.00.",
        extra={},
        created_at=datetime(2024, 6, 1, tzinfo=timezone.utc)
    )
    test_db_session.add(notification)
    test_db_session.commit()
    return notification


class TestSendNotificationEmail:

    def test_sends_and_marks_sent(self, test_db_session, notification_row):
        with patch("housing_trends.modules.notifications.tasks.send_email") as mock_send:
            result = send_notification_email.run(test_db_session, "n1")

        assert result["status"] == "sent"
        mock_send.assert_called_once_with(
            "renter@example.com", "Market Update: CA rentals", "Rents: 5 records, average 1,920.00."
        )
        test_db_session.refresh(notification_row)
        assert notification_row.sent is True
        assert notification_row.sent_at is not None

    def test_already_sent_is_not_resent(self, test_db_session, notification_row):
        notification_row.sent = True
        test_db_session.commit()

        with patch("housing_trends.modules.notifications.tasks.send_email") as mock_send:
            result = send_notification_email.run(test_db_session, "n1")

        assert result["status"] == "already_sent"
        mock_send.assert_not_called()

    def test_missing_notification(self, test_db_session):
        result = send_notification_email.run(test_db_session, "missing")

        assert result["status"] == "missing"

    def test_unknown_recipient(self, test_db_session):
        test_db_session.add(DBNotification(
            id="n2", user_id="nobody", type="welcome", subject="Welcome",
            content="Hello", created_at=datetime(2024, 6, 1, tzinfo=timezone.utc)
        ))
        test_db_session.commit()

        with patch("housing_trends.modules.notifications.tasks.send_email") as mock_send:
            result = send_notification_email.run(test_db_session, "n2")

        assert result["status"] == "no_recipient"
        mock_send.assert_not_called()

    def test_smtp_error_is_retried(self, test_db_session, notification_row):
        error = smtplib.SMTPServerDisconnected("gone")

        with patch("housing_trends.modules.notifications.tasks.send_email", side_effect=error), \
                patch.object(send_notification_email, "retry", side_effect=RuntimeError("retry")) as mock_retry:
            with pytest.raises(RuntimeError):
                send_notification_email.run(test_db_session, "n1")

        assert mock_retry.call_args.kwargs["exc"] is error
        assert mock_retry.call_args.kwargs["countdown"] == 60
        test_db_session.refresh(notification_row)
        assert notification_row.sent is False


class TestRunNotificationTick:

    def test_runs_one_scheduler_tick(self):
        started = datetime(2024, 6, 1, tzinfo=timezone.utc)
        scheduler = MagicMock()

        async def run_tick(now):
            return TickReport(started_at=started, due_count=0)

        scheduler.run_tick = run_tick

        with patch("housing_trends.modules.notifications.factory.build_scheduler", return_value=scheduler):
            result = run_notification_tick.run()

        assert result["due"] == 0
        assert result["fired"] == 0
        assert result["started_at"] == started.isoformat()


class TestAlertTasks:

    def alert_service(self, notification):
        service = MagicMock()
        service.calls = []

        async def send_price_alert(user_id, fips_code, price_data):
            service.calls.append((user_id, fips_code, price_data))
            return notification

        async def send_welcome(user_id):
            service.calls.append((user_id,))
            return notification

        service.send_price_alert = send_price_alert
        service.send_welcome = send_welcome
        return service

    def test_price_alert_is_queued(self):
        notification = MagicMock(id="n9")
        service = self.alert_service(notification)

        with patch("housing_trends.modules.notifications.factory.build_alert_service", return_value=service):
            result = send_price_alert.run("user-1", "06037", {"median_rent": 1200, "rent_change_yoy": 3.5})

        assert result == {"user_id": "user-1", "notification_id": "n9", "status": "queued"}
        user_id, fips_code, price_data = service.calls[0]
        assert fips_code == "06037"
        assert price_data == PriceAlertData(median_rent=1200, rent_change_yoy=3.5)

    def test_price_alert_for_unknown_county(self):
        service = self.alert_service(None)

        with patch("housing_trends.modules.notifications.factory.build_alert_service", return_value=service):
            result = send_price_alert.run("user-1", "99999", {})

        assert result["status"] == "unknown_county"

    def test_welcome_for_unknown_user(self):
        service = self.alert_service(None)

        with patch("housing_trends.modules.notifications.factory.build_alert_service", return_value=service):
            result = send_welcome_notification.run("nobody")

        assert result == {"user_id": "nobody", "status": "unknown_user"}


class TestEmail:

    def test_html_is_escaped(self):
        html = render_email_html("Update <b>", "Rents & prices\nSecond line")

        assert "Update &lt;b&gt;" in html
        assert "<p>Rents &amp; prices</p>" in html
        assert "<p>Second line</p>" in html

    def test_send_email_uses_smtp(self):
        with patch("housing_trends.modules.notifications.email_utils.smtplib.SMTP") as mock_smtp:
            server = mock_smtp.return_value.__enter__.return_value

            send_email("renter@example.com", "Subject", "Body")

        server.sendmail.assert_called_once()
        args = server.sendmail.call_args.args
        assert args[1] == ["renter@example.com"]
        assert "Subject: Subject" in args[2]
