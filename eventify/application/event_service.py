import logging
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy.orm import Session

from eventify.application.transaction import run_in_transaction
from eventify.domain.exceptions import EventifyError, NotFoundError, ValidationError
from eventify.domain.inventory import EventAction, normalize_ticket_name
from eventify.infrastructure.db.models import Event
from eventify.infrastructure.repositories.event_repository import AccountRepository, EventRepository

logger = logging.getLogger(__name__)


class EventService:
    """Event setup and lifecycle. Bookings are only accepted while PUBLISHED."""

    def __init__(self, db: Session):
        self.db = db
        self.event_repository = EventRepository(db)
        self.account_repository = AccountRepository(db)

    def create_event(
        self,
        title: str,
        ticket_types: list[dict],
        organizer_id: str | None = None,
    ) -> Event:
        try:
            cleaned = self._validate_ticket_types(ticket_types)
            if not title or not title.strip():
                raise ValidationError("Event title is required")
            if organizer_id and not self.account_repository.get_organizer(organizer_id):
                raise NotFoundError("Organizer", organizer_id)
        except EventifyError:
            self.db.rollback()
            raise

        event = run_in_transaction(
            self.db,
            lambda: self.event_repository.create_event(
                title=title.strip(),
                ticket_types=cleaned,
                organizer_id=organizer_id,
            ),
            operation="Event creation",
        )
        logger.info(
            "Event %s created with %s ticket types (organizer_id=%s)",
            event.id,
            len(cleaned),
            organizer_id,
        )
        return event

    def update_event_status(
        self,
        event_id: str,
        action: str | EventAction,
        actor_id: str,
    ) -> Event:
        try:
            event_action = EventAction(action)
        except ValueError as exc:
            raise ValidationError(
                f"Invalid action '{action}'. Use: {', '.join(a.value for a in EventAction)}"
            ) from exc

        def work() -> Event:
            event = self.event_repository.lock(event_id)
            if not event:
                raise NotFoundError("Event", event_id)

            target = event_action.target_status
            if event.status == target:
                raise ValidationError(f"Event is already {target.value}")

            previous = event.status
            event.status = target
            # JSON columns are only flushed on reassignment
            event.status_log = [
                *(event.status_log or []),
                {
                    "action": event_action.value,
                    "from": previous.value,
                    "to": target.value,
                    "changedBy": actor_id,
                    "changedAt": datetime.now(timezone.utc).isoformat(),
                },
            ]
            self.db.flush()
            return event

        event = run_in_transaction(self.db, work, operation="Event status update")
        logger.info(
            "Event %s moved to %s by %s",
            event.id,
            event.status.value,
            actor_id,
        )
        return event

    @staticmethod
    def _validate_ticket_types(ticket_types: list[dict]) -> list[dict]:
        if not ticket_types:
            raise ValidationError("At least one ticket type is required")

        seen: set[str] = set()
        cleaned = []
        for item in ticket_types:
            name = (item.get("name") or "").strip()
            if not name:
                raise ValidationError("Ticket type name is required")
            key = normalize_ticket_name(name)
            if key in seen:
                raise ValidationError(f"Duplicate ticket type '{name}'")
            seen.add(key)

            price = Decimal(str(item.get("price", 0)))
            quantity = item.get("quantity", 0)
            if price < 0:
                raise ValidationError("Ticket price cannot be negative")
            if not isinstance(quantity, int) or quantity < 0:
                raise ValidationError("Ticket quantity must be a non-negative integer")

            cleaned.append({"name": name, "price": price, "quantity": quantity})
        return cleaned
