import logging
import smtplib
from datetime import date
from dataclasses import dataclass, field
from email.message import EmailMessage
from typing import List, Optional, Protocol, Tuple

from lending.borrow_records import BorrowRecordStore
from lending.config import Settings, settings
from lending.users import User

logger = logging.getLogger(__name__)

REMINDER_SUBJECT = "Library Notification"


class NotificationError(Exception):
    pass


class EmailServer(Protocol):
    def send_email(self, to: str, subject: str, body: str) -> None:
        ...


class SmtpEmailServer:
    """Sends mail through the SMTP server configured in Settings (STARTTLS + login)."""

    def __init__(self, config: Optional[Settings] = None) -> None:
        self.config = config or settings

    def send_email(self, to: str, subject: str, body: str) -> None:
        message = EmailMessage()
        message["From"] = self.config.smtp_from_email
        message["To"] = to
        message["Subject"] = subject
        message.set_content(body)

        with smtplib.SMTP(self.config.smtp_host, self.config.smtp_port, timeout=self.config.smtp_timeout) as smtp:
            smtp.starttls()
            if self.config.smtp_username and self.config.smtp_password:
                smtp.login(self.config.smtp_username, self.config.smtp_password)
            smtp.send_message(message)


@dataclass
class RecordingEmailServer:
    """Keeps messages in memory instead of sending them."""

    sent: List[Tuple[str, str, str]] = field(default_factory=list)

    def send_email(self, to: str, subject: str, body: str) -> None:
        self.sent.append((to, subject, body))


class EmailNotifier:
    def __init__(self, server: Optional[EmailServer], email_domain: Optional[str] = None) -> None:
        self.server = server
        self.email_domain = email_domain or settings.email_domain

    def address_for(self, user: User) -> str:
        return f"{user.username}@{self.email_domain}"

    def notify(self, user: Optional[User], message: str) -> bool:
        """Email ``message`` to the user. Returns False if it was skipped.

        Raises NotificationError when the transport fails.
        """
        if self.server is None:
            logger.warning("Email server not available. Notification not sent.")
            return False
        if user is None or not user.username:
            logger.warning("Invalid user data. Notification not sent.")
            return False

        address = self.address_for(user)
        try:
            self.server.send_email(address, REMINDER_SUBJECT, message)
        except (smtplib.SMTPException, OSError) as e:
            logger.error("Failed to send email to %s: %s", address, e)
            raise NotificationError("Failed to send email notification") from e
        logger.info("Email notification sent to: %s", address)
        return True


def overdue_reminder_text(overdue_count: int) -> str:
    noun = "item" if overdue_count == 1 else "items"
    return f"You have {overdue_count} overdue {noun}. Please return them to avoid further fines."


@dataclass(frozen=True)
class ReminderSummary:
    sent: int = 0
    failed: int = 0


def send_overdue_reminders(store: BorrowRecordStore, notifier: EmailNotifier,
                           today: Optional[date] = None) -> ReminderSummary:
    """Send one reminder per user holding overdue items.

    A transport failure for one user is logged and counted, and the remaining
    users are still reminded.
    """
    sent = failed = 0
    for entry in store.users_with_overdue_books(today):
        user = User(id=entry.user_id, username=entry.username)
        try:
            if notifier.notify(user, overdue_reminder_text(entry.overdue_count)):
                sent += 1
        except NotificationError as e:
            logger.error("Overdue reminder for %s failed: %s", entry.username, e)
            failed += 1
    logger.info("Sent %d overdue reminders, %d failed", sent, failed)
    return ReminderSummary(sent=sent, failed=failed)


def default_email_server(config: Optional[Settings] = None) -> EmailServer:
    config = config or settings
    if config.enable_email_notifications:
        return SmtpEmailServer(config)
    return RecordingEmailServer()
