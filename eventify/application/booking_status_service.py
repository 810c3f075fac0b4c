import logging

from eventify.application.booking_service import BookingWorkflow
from eventify.application.transaction import run_in_transaction
from eventify.domain.exceptions import EventifyError, ValidationError
from eventify.domain.state_machine import (
    BookingStatus,
    PaymentStatus,
    parse_booking_status,
    parse_payment_status,
)
from eventify.infrastructure.db.models import Booking

logger = logging.getLogger(__name__)


class BookingStatusService(BookingWorkflow):
    """
    Administrative booking/payment status changes.

    One call runs as one transaction: the booking row, the conditional
    ledger side effect, one status log entry and the membership sync
    commit together or not at all. The purchaser is emailed afterwards.
    """

    def update_status(
        self,
        booking_id: str,
        actor_id: str,
        booking_status: str | BookingStatus | None = None,
        payment_status: str | PaymentStatus | None = None,
        reason: str | None = None,
        notes: str | None = None,
        actor_name: str | None = None,
    ) -> Booking:
        try:
            new_booking_status = parse_booking_status(booking_status)
            new_payment_status = parse_payment_status(payment_status)
            if new_booking_status is None and new_payment_status is None:
                raise ValidationError("Provide bookingStatus or paymentStatus")
        except EventifyError:
            self.db.rollback()
            raise

        def work() -> tuple[Booking, BookingStatus, PaymentStatus]:
            booking = self._lock_booking(booking_id)
            previous_booking_status, previous_payment_status = self._apply_status(
                booking,
                new_booking_status,
                new_payment_status,
                actor_id=actor_id,
                reason=reason,
                notes=notes,
            )
            return booking, previous_booking_status, previous_payment_status

        booking, previous_booking_status, previous_payment_status = run_in_transaction(
            self.db, work, operation="Booking status update"
        )

        logger.info(
            "Booking %s updated by %s: booking %s -> %s, payment %s -> %s",
            booking.id,
            actor_id,
            previous_booking_status.value,
            booking.booking_status.value,
            previous_payment_status.value,
            booking.payment_status.value,
        )

        self._send_status_update_email(
            booking,
            previous_booking_status,
            previous_payment_status,
            reason=reason,
            notes=notes,
            updated_by_name=actor_name or "Eventify",
        )
        return booking
