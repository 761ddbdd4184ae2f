"""Email sender service - sends downtime and recovery notices via SMTP."""
import asyncio
import logging
import smtplib
import ssl
from dataclasses import dataclass, field
from datetime import datetime
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import List, Optional, Tuple

from ..models import Endpoint, Incident
from ..utils.time_utils import utcnow
from .store import NotificationSettings

logger = logging.getLogger(__name__)

SMTP_TIMEOUT_SECONDS = 30
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S UTC"


@dataclass
class EmailConfig:
    """SMTP configuration for sending emails."""
    host: str
    port: int
    username: str
    password: str
    use_tls: bool = True
    from_address: str = ""
    recipients: List[str] = field(default_factory=list)

    @classmethod
    def from_settings(cls, settings: NotificationSettings) -> "EmailConfig":
        return cls(
            host=settings.smtp_host,
            port=settings.smtp_port,
            username=settings.smtp_username,
            password=settings.smtp_password,
            use_tls=settings.smtp_use_tls,
            from_address=settings.smtp_from,
            recipients=list(settings.smtp_recipients),
        )

    @property
    def sender(self) -> str:
        return self.from_address or f"Status Monitor <{self.username}>"

    def is_complete(self) -> bool:
        """Host, port and user configured and at least one recipient."""
        return bool(self.host and self.port and self.username and self.recipients)


def _fmt(value: Optional[datetime]) -> str:
    return value.strftime(TIMESTAMP_FORMAT) if value else "-"


def build_downtime_email(
    endpoint: Endpoint,
    incident: Incident,
    details: Optional[str] = None,
) -> Tuple[str, str]:
    """Subject and plain-text body for an api_down notice."""
    subject = f"ALERT: {endpoint.name} is DOWN"
    lines = [
        "API Downtime Alert",
        "=" * 40,
        "",
        "An API endpoint you're monitoring has gone down:",
        "",
        f"API Name: {endpoint.name}",
        f"URL: {endpoint.url}",
        f"Incident ID: #{incident.id}",
        f"Started At: {_fmt(incident.started_at)}",
        f"Status: {incident.status}",
    ]
    if details:
        lines.append(f"Details: {details}")
    lines += [
        "",
        "Action Required: Please investigate the issue.",
        "The system will continue to monitor and will notify you when the service recovers.",
        "",
        "--",
        "This is an automated alert from Status Monitor",
        f"Timestamp: {_fmt(utcnow())}",
    ]
    return subject, "\n".join(lines)


def build_recovery_email(
    endpoint: Endpoint,
    incident: Incident,
    downtime_minutes: Optional[int],
    details: Optional[str] = None,
) -> Tuple[str, str]:
    """Subject and plain-text body for an api_up notice."""
    subject = f"RESOLVED: {endpoint.name} is back online"
    lines = [
        "API Recovery Notice",
        "=" * 40,
        "",
        "Good news! The API endpoint has recovered:",
        "",
        f"API Name: {endpoint.name}",
        f"URL: {endpoint.url}",
        f"Incident ID: #{incident.id}",
        f"Started At: {_fmt(incident.started_at)}",
        f"Resolved At: {_fmt(incident.resolved_at)}",
    ]
    # Downtime is only known once the incident carries a resolved_at
    if incident.resolved_at is not None and downtime_minutes is not None:
        lines.append(f"Downtime Duration: {downtime_minutes} minute(s)")
    if details:
        lines.append(f"Details: {details}")
    lines += [
        "",
        "The service is now responding normally. The incident has been automatically resolved.",
        "",
        "--",
        "This is an automated notification from Status Monitor",
        f"Timestamp: {_fmt(utcnow())}",
    ]
    return subject, "\n".join(lines)


class EmailSenderService:
    """Service for sending email notices via SMTP.

    smtplib is blocking, so every SMTP conversation runs in a worker thread
    and never stalls the event loop driving the probes.
    """

    async def send_email(self, config: EmailConfig, subject: str, body: str) -> bool:
        """Send an email. Returns True on success, False on any failure."""
        if not config.is_complete():
            logger.debug("Email not configured - missing SMTP host/port/user or recipients")
            return False

        logger.info(f"Sending email to {len(config.recipients)} recipient(s): {subject}")
        try:
            await asyncio.to_thread(self._send_sync, config, subject, body)
            logger.info(f"Email sent successfully: {subject}")
            return True
        except smtplib.SMTPAuthenticationError as e:
            logger.error(f"SMTP authentication failed for user '{config.username}': {e}")
        except smtplib.SMTPConnectError as e:
            logger.error(f"Failed to connect to SMTP server {config.host}:{config.port}: {e}")
        except smtplib.SMTPRecipientsRefused as e:
            logger.error(f"Recipients refused by server: {e}")
        except smtplib.SMTPException as e:
            logger.error(f"SMTP error: {type(e).__name__}: {e}")
        except (ConnectionRefusedError, TimeoutError) as e:
            logger.error(f"Could not reach {config.host}:{config.port}: {e}")
        except Exception as e:
            logger.error(f"Unexpected error sending email: {type(e).__name__}: {e}")
        return False

    async def test_connection(self, config: EmailConfig) -> dict:
        """Open and authenticate an SMTP session without sending anything."""
        if not config.is_complete():
            return {
                "success": False,
                "message": "Email transporter not configured",
                "recipients": config.recipients,
            }
        try:
            await asyncio.to_thread(self._verify_sync, config)
            return {
                "success": True,
                "message": "Email configuration is valid",
                "recipients": config.recipients,
            }
        except Exception as e:
            return {"success": False, "message": str(e), "recipients": config.recipients}

    def _open(self, config: EmailConfig) -> smtplib.SMTP:
        server = smtplib.SMTP(config.host, config.port, timeout=SMTP_TIMEOUT_SECONDS)
        try:
            if config.use_tls:
                server.starttls(context=ssl.create_default_context())
            if config.username and config.password:
                server.login(config.username, config.password)
        except Exception:
            server.close()
            raise
        return server

    def _send_sync(self, config: EmailConfig, subject: str, body: str) -> None:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = config.sender
        msg["To"] = ", ".join(config.recipients)
        msg.attach(MIMEText(body, "plain"))

        with self._open(config) as server:
            server.sendmail(config.from_address or config.username, config.recipients, msg.as_string())

    def _verify_sync(self, config: EmailConfig) -> None:
        with self._open(config) as server:
            server.noop()


# Global instance
email_sender_service = EmailSenderService()
