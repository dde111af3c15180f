"""
SMTP helpers used by the notification email task.
"""
import html
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from housing_trends.core.config import settings


def render_email_html(subject: str, content: str) -> str:
    paragraphs = "".join(
        f"<p>{html.escape(line)}</p>" for line in content.splitlines() if line.strip()
    )
    dashboard_url = html.escape(settings.FRONTEND_URL)
    return (
        "<html><body>"
        f"<h2>{html.escape(subject)}</h2>"
        f"{paragraphs}"
        f"<p><a href=\"{dashboard_url}\">Open your dashboard</a></p>"
        "<p style=\"color:#888\">You can change notification settings on any saved search.</p>"
        "</body></html>"
    )


def send_email(to_email: str, subject: str, content: str) -> None:
    """Send a plain text + HTML email; SMTP errors propagate to the caller"""
    msg = MIMEMultipart("alternative")
    msg["Subject"] = subject
    msg["From"] = settings.EMAIL_FROM
    msg["To"] = to_email
    msg.attach(MIMEText(content, "plain"))
    msg.attach(MIMEText(render_email_html(subject, content), "html"))

    with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT) as server:
        if settings.SMTP_USE_TLS:
            server.starttls()
        if settings.SMTP_USER and settings.SMTP_PASSWORD:
            server.login(settings.SMTP_USER, settings.SMTP_PASSWORD)
        server.sendmail(settings.EMAIL_FROM, [to_email], msg.as_string())
