import os
import tempfile

# The application module builds its engine at import time.
os.environ["DATABASE_URL"] = "sqlite:///" + os.path.join(
    tempfile.gettempdir(), "eventify-import.db"
)

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from eventify.api.routes.routes import get_db, get_inventory_policy, get_notifier
from eventify.domain.inventory import EventStatus, InventoryPolicy
from eventify.infrastructure.db.session import Base, create_db_engine
from eventify.infrastructure.repositories.event_repository import AccountRepository, EventRepository
from eventify.main import app


class RecordingNotifier:
    """Stands in for the email dispatcher; remembers every call."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent = []

    def send_ticket_booking_email(self, to_email, booking, event, user):
        self.sent.append(("ticket_booked", to_email, booking.id))
        if self.fail:
            raise RuntimeError("SMTP is down")
        return True

    def send_booking_status_update_email(
        self, to_email, booking, event, user, updates, updated_by_name
    ):
        self.sent.append(
            ("status_updated", to_email, booking.id, dict(updates), updated_by_name)
        )
        if self.fail:
            raise RuntimeError("SMTP is down")
        return True


@pytest.fixture
def engine(tmp_path):
    engine = create_db_engine(f"sqlite:///{tmp_path / 'eventify.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(
        bind=engine,
        autoflush=False,
        autocommit=False,
        expire_on_commit=False,
    )


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def user(db):
    user = AccountRepository(db).create_user(user_name="Asha", email="asha@example.com")
    db.commit()
    return user


@pytest.fixture
def other_user(db):
    user = AccountRepository(db).create_user(user_name="Ravi", email="ravi@example.com")
    db.commit()
    return user


@pytest.fixture
def organizer(db):
    organizer = AccountRepository(db).create_organizer(
        user_name="Soundwave", email="events@soundwave.example.com"
    )
    db.commit()
    return organizer


@pytest.fixture
def make_event(db, organizer):
    def _make(
        status: EventStatus = EventStatus.PUBLISHED,
        quantity: int = 10,
        sold: int = 0,
        price: Decimal = Decimal("250.00"),
        title: str = "E1",
    ):
        event = EventRepository(db).create_event(
            title=title,
            ticket_types=[
                {"name": "VIP", "price": price, "quantity": quantity},
                {"name": "General", "price": Decimal("100.00"), "quantity": 100},
            ],
            organizer_id=organizer.id,
            status=status,
        )
        for ticket in event.ticket_types:
            if ticket.name == "VIP":
                ticket.sold = sold
        db.commit()
        return event

    return _make


@pytest.fixture
def client(session_factory, notifier):
    def override_get_db():
        session = session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notifier] = lambda: notifier
    app.dependency_overrides[get_inventory_policy] = lambda: InventoryPolicy()
    # Not used as a context manager: startup would wait on the import-time engine.
    yield TestClient(app)
    app.dependency_overrides.clear()
