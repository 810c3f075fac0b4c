# eventify/infrastructure/repositories/event_repository.py

from sqlalchemy.orm import Session, selectinload
from sqlalchemy import select

from eventify.infrastructure.db.models import Event, Organizer, TicketType, User
from eventify.domain.inventory import EventStatus


class EventRepository:

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, event_id: str) -> Event | None:
        stmt = (
            select(Event)
            .where(Event.id == event_id)
            .options(selectinload(Event.ticket_types))
        )
        return self.db.execute(stmt).scalar_one_or_none()

    def lock(self, event_id: str) -> Event | None:
        stmt = (
            select(Event)
            .where(Event.id == event_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return self.db.execute(stmt).scalar_one_or_none()

    def create_event(
        self,
        title: str,
        ticket_types: list[dict],
        organizer_id: str | None = None,
        status: EventStatus = EventStatus.DRAFT,
    ) -> Event:
        event = Event(
            title=title,
            organizer_id=organizer_id,
            status=status,
            status_log=[],
        )
        for item in ticket_types:
            event.ticket_types.append(
                TicketType(
                    name=item["name"],
                    price=item["price"],
                    quantity=item["quantity"],
                    sold=0,
                )
            )
        self.db.add(event)
        self.db.flush()
        return event


class AccountRepository:

    def __init__(self, db: Session):
        self.db = db

    def get_user(self, user_id: str) -> User | None:
        return self.db.get(User, user_id)

    def get_organizer(self, organizer_id: str) -> Organizer | None:
        return self.db.get(Organizer, organizer_id)

    def get_account(self, account_id: str) -> User | Organizer | None:
        return self.get_user(account_id) or self.get_organizer(account_id)

    def create_user(self, user_name: str, email: str) -> User:
        user = User(user_name=user_name, email=email)
        self.db.add(user)
        self.db.flush()
        return user

    def create_organizer(self, user_name: str, email: str) -> Organizer:
        organizer = Organizer(user_name=user_name, email=email)
        self.db.add(organizer)
        self.db.flush()
        return organizer
