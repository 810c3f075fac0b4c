"""
Outbound email for booking events.

Both public methods return a success flag and never raise: a mail
outage must not leak into a booking that has already committed.
"""

import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from pathlib import Path
from typing import Any, Mapping

from jinja2 import Environment, FileSystemLoader, TemplateError, select_autoescape

from eventify.domain.exceptions import DependencyError
from eventify.infrastructure import settings

logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).parent / "templates"


class EmailNotificationDispatcher:
    """Renders booking emails with jinja2 and delivers them over SMTP."""

    def __init__(
        self,
        host: str | None = None,
        port: int | None = None,
        username: str | None = None,
        password: str | None = None,
        use_tls: bool | None = None,
        sender: str | None = None,
    ):
        self.host = host if host is not None else settings.SMTP_HOST
        self.port = port if port is not None else settings.SMTP_PORT
        self.username = username if username is not None else settings.SMTP_USERNAME
        self.password = password if password is not None else settings.SMTP_PASSWORD
        self.use_tls = use_tls if use_tls is not None else settings.SMTP_USE_TLS
        self.sender = sender or settings.EMAIL_FROM
        self.templates = Environment(
            loader=FileSystemLoader(str(TEMPLATE_DIR)),
            autoescape=select_autoescape(["html"]),
        )

    def send_ticket_booking_email(self, to_email: str, booking, event, user) -> bool:
        context = {
            "title": "Ticket booking confirmation",
            "user_name": user.user_name,
            "booking_id": booking.id,
            "event_title": event.title,
            "ticket_type": booking.ticket_type,
            "quantity": booking.quantity,
            "total_price": f"{booking.total_price:.2f}",
            "booking_status": booking.booking_status.value,
            "payment_status": booking.payment_status.value,
        }
        return self._send(
            to_email,
            subject=f"Your tickets for {event.title}",
            template="ticket_booked.html",
            context=context,
        )

    def send_booking_status_update_email(
        self,
        to_email: str,
        booking,
        event,
        user,
        updates: Mapping[str, Any],
        updated_by_name: str,
    ) -> bool:
        context = {
            "title": "Booking status updated",
            "user_name": user.user_name,
            "booking_id": booking.id,
            "event_title": event.title,
            "updated_by": updated_by_name,
            **updates,
        }
        return self._send(
            to_email,
            subject=f"Booking update for {event.title}",
            template="booking_status_updated.html",
            context=context,
        )

    def _send(self, to_email: str, subject: str, template: str, context: dict) -> bool:
        try:
            html = self.templates.get_template(template).render(**context)
            self._deliver(to_email, subject, html)
        except DependencyError as exc:
            logger.warning("Email '%s' to %s not sent: %s", subject, to_email, exc)
            return False
        except TemplateError:
            logger.exception("Could not render email template %s", template)
            return False

        logger.info("Email '%s' sent to %s", subject, to_email)
        return True

    def _deliver(self, to_email: str, subject: str, html: str) -> None:
        if not self.host:
            raise DependencyError("SMTP is not configured")

        message = MIMEMultipart("alternative")
        message["Subject"] = subject
        message["From"] = f"EVENTIFY <{self.sender}>"
        message["To"] = to_email
        message.attach(MIMEText(html, "html"))

        try:
            with smtplib.SMTP(self.host, self.port, timeout=10) as server:
                if self.use_tls:
                    server.starttls()
                if self.username and self.password:
                    server.login(self.username, self.password)
                server.send_message(message)
        except (smtplib.SMTPException, OSError) as exc:
            raise DependencyError(f"SMTP delivery failed: {exc}") from exc
