# eventify/domain/inventory.py

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Iterable, Protocol, TypeVar

from eventify.domain.exceptions import ValidationError
from eventify.domain.state_machine import BookingStatus


class EventStatus(str, Enum):
    DRAFT = "DRAFT"
    PUBLISHED = "PUBLISHED"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"


class EventAction(str, Enum):
    PUBLISH = "PUBLISH"
    CANCEL = "CANCEL"
    COMPLETE = "COMPLETE"

    @property
    def target_status(self) -> EventStatus:
        return {
            EventAction.PUBLISH: EventStatus.PUBLISHED,
            EventAction.CANCEL: EventStatus.CANCELLED,
            EventAction.COMPLETE: EventStatus.COMPLETED,
        }[self]


class ActorRole(str, Enum):
    USER = "USER"
    ORGANIZER = "ORGANIZER"
    SUPERADMIN = "SUPERADMIN"


class ReservationPoint(str, Enum):
    BOOKING = "BOOKING"
    CONFIRMATION = "CONFIRMATION"


class TicketTypeLike(Protocol):
    name: str
    quantity: int
    sold: int


T = TypeVar("T", bound=TicketTypeLike)


@dataclass(frozen=True)
class InventoryPolicy:
    """
    Decides when a booking touches the sold counter.

    A booking is counted at most once: either when it is created
    (BOOKING) or on its first move into CONFIRMED (CONFIRMATION).
    """

    reservation_point: ReservationPoint = ReservationPoint.BOOKING
    restock_on_cancel: bool = False

    @property
    def reserves_on_create(self) -> bool:
        return self.reservation_point == ReservationPoint.BOOKING

    def should_reserve(
        self,
        previous: BookingStatus,
        new: BookingStatus,
        already_reserved: bool,
    ) -> bool:
        return (
            previous != BookingStatus.CONFIRMED
            and new == BookingStatus.CONFIRMED
            and not already_reserved
        )

    def should_release(
        self,
        previous: BookingStatus,
        new: BookingStatus,
        already_reserved: bool,
    ) -> bool:
        if not self.restock_on_cancel or not already_reserved:
            return False
        released = {BookingStatus.CANCELLED, BookingStatus.REFUNDED}
        return previous not in released and new in released


def normalize_ticket_name(name: str) -> str:
    return name.strip().lower()


def find_ticket_type(ticket_types: Iterable[T], name: str) -> T | None:
    """Case-insensitive, whitespace-trimmed lookup by ticket type name."""
    wanted = normalize_ticket_name(name)
    for ticket in ticket_types:
        if normalize_ticket_name(ticket.name) == wanted:
            return ticket
    return None


def remaining_quantity(ticket: TicketTypeLike) -> int:
    return ticket.quantity - (ticket.sold or 0)


def compute_total_price(price: Decimal, quantity: int) -> Decimal:
    if quantity < 1:
        raise ValidationError("Quantity must be a positive integer")
    return Decimal(price) * quantity


def ledger_is_consistent(ticket: TicketTypeLike) -> bool:
    return 0 <= (ticket.sold or 0) <= ticket.quantity
