# eventify/infrastructure/repositories/booked_events_repository.py

import logging

from sqlalchemy.orm import Session
from sqlalchemy import select, update

from eventify.infrastructure.db.models import BookedEventEntry, Booking
from eventify.domain.inventory import ActorRole

logger = logging.getLogger(__name__)


class BookedEventsRepository:
    """
    Membership lists ("my bookings") for users and organizers.
    Every write to a Booking is followed by propagate_status in the
    same transaction.
    """

    def __init__(self, db: Session):
        self.db = db

    def append(
        self,
        booking: Booking,
        holder_type: ActorRole,
        holder_id: str,
    ) -> BookedEventEntry:
        entry = BookedEventEntry(
            holder_type=holder_type.value,
            holder_id=holder_id,
            booking_id=booking.id,
            event_id=booking.event_id,
            user_id=booking.user_id,
            ticket_type=booking.ticket_type,
            quantity=booking.quantity,
            total_price=booking.total_price,
            booking_status=booking.booking_status,
        )
        self.db.add(entry)
        self.db.flush()
        return entry

    def propagate_status(self, booking: Booking) -> int:
        stmt = (
            update(BookedEventEntry)
            .where(BookedEventEntry.booking_id == booking.id)
            .values(booking_status=booking.booking_status)
            .execution_options(synchronize_session="fetch")
        )
        result = self.db.execute(stmt)

        if result.rowcount == 0:
            logger.warning("No membership entries found for booking %s", booking.id)
        return result.rowcount

    def list_for_holder(
        self,
        holder_type: ActorRole,
        holder_id: str,
    ) -> list[BookedEventEntry]:
        stmt = (
            select(BookedEventEntry)
            .where(BookedEventEntry.holder_type == holder_type.value)
            .where(BookedEventEntry.holder_id == holder_id)
            .order_by(BookedEventEntry.booked_at.desc())
        )
        return list(self.db.execute(stmt).scalars().all())

    def list_for_booking(self, booking_id: str) -> list[BookedEventEntry]:
        stmt = select(BookedEventEntry).where(BookedEventEntry.booking_id == booking_id)
        return list(self.db.execute(stmt).scalars().all())
