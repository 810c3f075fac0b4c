# eventify/infrastructure/repositories/booking_repository.py

import time
from decimal import Decimal

from sqlalchemy.orm import Session, selectinload
from sqlalchemy import func, select

from eventify.infrastructure.db.models import Booking, BookingStatusLog
from eventify.domain.exceptions import NotFoundError
from eventify.domain.state_machine import BookingStatus, PaymentStatus


class BookingRepository:

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(
        self,
        booking_id: str,
    ) -> Booking | None:

        stmt = select(Booking).where(Booking.id == booking_id)
        return self.db.execute(stmt).scalar_one_or_none()

    def lock(self, booking_id: str) -> Booking:
        stmt = (
            select(Booking)
            .where(Booking.id == booking_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        booking = self.db.execute(stmt).scalar_one_or_none()

        if not booking:
            raise NotFoundError("Booking", booking_id)

        return booking

    def list_all(self) -> list[Booking]:
        stmt = (
            select(Booking)
            .options(selectinload(Booking.event))
            .order_by(Booking.created_at.desc())
        )
        return list(self.db.execute(stmt).scalars().all())

    def create_booking(
        self,
        user_id: str,
        event_id: str,
        ticket_type: str,
        quantity: int,
        total_price: Decimal,
    ) -> Booking:

        booking = Booking(
            user_id=user_id,
            event_id=event_id,
            ticket_type=ticket_type,
            quantity=quantity,
            total_price=total_price,
            booking_status=BookingStatus.PENDING,
            payment_status=PaymentStatus.PENDING,
            inventory_reserved=False,
            meta={
                "mockPaymentId": f"mock_{int(time.time() * 1000)}",
                "mockPaymentGateway": "SimulatedPay",
            },
        )

        self.db.add(booking)
        self.db.flush()
        return booking

    def append_status_log(
        self,
        booking: Booking,
        previous_booking_status: BookingStatus,
        previous_payment_status: PaymentStatus,
        changed_by: str,
        reason: str | None = None,
        notes: str | None = None,
    ) -> BookingStatusLog:
        count_stmt = select(func.count(BookingStatusLog.id)).where(
            BookingStatusLog.booking_id == booking.id
        )
        sequence = (self.db.execute(count_stmt).scalar_one() or 0) + 1

        entry = BookingStatusLog(
            booking_id=booking.id,
            sequence=sequence,
            booking_status_from=previous_booking_status,
            booking_status_to=booking.booking_status,
            payment_status_from=previous_payment_status,
            payment_status_to=booking.payment_status,
            reason=reason,
            notes=notes,
            changed_by=changed_by,
        )
        self.db.add(entry)
        self.db.flush()
        return entry

    def get_status_log(self, booking_id: str) -> list[BookingStatusLog]:
        stmt = (
            select(BookingStatusLog)
            .where(BookingStatusLog.booking_id == booking_id)
            .order_by(BookingStatusLog.sequence)
        )
        return list(self.db.execute(stmt).scalars().all())
