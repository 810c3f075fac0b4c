from decimal import Decimal
from types import SimpleNamespace

import pytest

from eventify.domain.state_machine import BookingStatus, PaymentStatus
from eventify.infrastructure.notifications import email_dispatcher
from eventify.infrastructure.notifications.email_dispatcher import EmailNotificationDispatcher


class FakeSMTP:
    instances = []

    def __init__(self, host, port, timeout=None):
        self.host = host
        self.port = port
        self.messages = []
        self.started_tls = False
        self.logged_in = None
        FakeSMTP.instances.append(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def starttls(self):
        self.started_tls = True

    def login(self, username, password):
        self.logged_in = (username, password)

    def send_message(self, message):
        self.messages.append(message)


@pytest.fixture
def booking_bundle():
    booking = SimpleNamespace(
        id="b-1",
        ticket_type="VIP",
        quantity=2,
        total_price=Decimal("500.00"),
        booking_status=BookingStatus.PENDING,
        payment_status=PaymentStatus.PENDING,
    )
    event = SimpleNamespace(title="Sunidhi Live")
    user = SimpleNamespace(user_name="Asha", email="asha@example.com")
    return booking, event, user


@pytest.fixture
def fake_smtp(monkeypatch):
    FakeSMTP.instances = []
    monkeypatch.setattr(email_dispatcher.smtplib, "SMTP", FakeSMTP)
    return FakeSMTP


def _dispatcher(**overrides):
    options = {
        "host": "smtp.example.com",
        "port": 2525,
        "username": "mailer",
        "password": "secret",
        "use_tls": True,
        "sender": "no-reply@eventify.test",
    }
    options.update(overrides)
    return EmailNotificationDispatcher(**options)


def test_ticket_booking_email_is_rendered_and_sent(fake_smtp, booking_bundle):
    booking, event, user = booking_bundle

    assert _dispatcher().send_ticket_booking_email(user.email, booking, event, user)

    smtp = fake_smtp.instances[0]
    assert smtp.started_tls
    assert smtp.logged_in == ("mailer", "secret")
    message = smtp.messages[0]
    assert message["To"] == "asha@example.com"
    assert "Sunidhi Live" in message["Subject"]
    html = message.get_payload()[0].get_payload(decode=True).decode()
    assert "500.00" in html
    assert "VIP" in html


def test_status_update_email_includes_transition(fake_smtp, booking_bundle):
    booking, event, user = booking_bundle
    updates = {
        "booking_status": "CONFIRMED",
        "payment_status": "PAID",
        "previous_booking_status": "PENDING",
        "previous_payment_status": "PENDING",
        "reason": "Payment received",
        "notes": None,
    }

    sent = _dispatcher(use_tls=False).send_booking_status_update_email(
        user.email, booking, event, user, updates, "Admin"
    )

    assert sent
    smtp = fake_smtp.instances[0]
    assert not smtp.started_tls
    html = smtp.messages[0].get_payload()[0].get_payload(decode=True).decode()
    assert "CONFIRMED" in html
    assert "Payment received" in html
    assert "Admin" in html


def test_unconfigured_smtp_returns_false(fake_smtp, booking_bundle):
    booking, event, user = booking_bundle

    assert not _dispatcher(host="").send_ticket_booking_email(user.email, booking, event, user)
    assert fake_smtp.instances == []


def test_delivery_failure_returns_false(monkeypatch, booking_bundle):
    booking, event, user = booking_bundle

    def refuse(*args, **kwargs):
        raise ConnectionRefusedError("connection refused")

    monkeypatch.setattr(email_dispatcher.smtplib, "SMTP", refuse)

    assert not _dispatcher().send_ticket_booking_email(user.email, booking, event, user)
