from sqlalchemy import select

from eventify.domain.inventory import EventStatus
from eventify.infrastructure.db.models import Event, Organizer, User
from eventify.infrastructure.db.session import Base, SessionLocal, engine
from eventify.infrastructure.repositories.event_repository import AccountRepository, EventRepository


def seed_accounts(db) -> dict[str, str]:
    accounts = AccountRepository(db)
    ids = {}

    user = db.execute(select(User).where(User.email == "asha@example.com")).scalar_one_or_none()
    if not user:
        user = accounts.create_user(user_name="Asha Verma", email="asha@example.com")
    ids["user"] = user.id

    organizer = db.execute(
        select(Organizer).where(Organizer.email == "events@soundwave.example.com")
    ).scalar_one_or_none()
    if not organizer:
        organizer = accounts.create_organizer(
            user_name="Soundwave Productions",
            email="events@soundwave.example.com",
        )
    ids["organizer"] = organizer.id
    return ids


def seed_events(db, organizer_id: str) -> None:
    event_defs = [
        {
            "title": "Sunidhi Chauhan Live Concert",
            "status": EventStatus.PUBLISHED,
            "ticket_types": [
                {"name": "Regular", "price": 1800, "quantity": 400},
                {"name": "VIP", "price": 4500, "quantity": 120},
            ],
        },
        {
            "title": "Holi Festival 2026",
            "status": EventStatus.DRAFT,
            "ticket_types": [
                {"name": "General", "price": 1200, "quantity": 700},
                {"name": "Premium", "price": 2800, "quantity": 180},
            ],
        },
    ]

    events = EventRepository(db)
    for item in event_defs:
        existing = db.execute(
            select(Event).where(Event.title == item["title"])
        ).scalar_one_or_none()
        if existing:
            continue
        events.create_event(
            title=item["title"],
            ticket_types=item["ticket_types"],
            organizer_id=organizer_id,
            status=item["status"],
        )


def main() -> None:
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        ids = seed_accounts(db)
        seed_events(db, ids["organizer"])
        db.commit()
        print(
            "Seed complete: user %s, organizer %s, Sunidhi concert (PUBLISHED), Holi festival (DRAFT)."
            % (ids["user"], ids["organizer"])
        )
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    main()
