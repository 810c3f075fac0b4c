import logging
from typing import Any, Callable

from sqlalchemy.orm import Session

from eventify.application.transaction import run_in_transaction
from eventify.domain.exceptions import (
    InsufficientInventoryError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from eventify.domain.inventory import (
    ActorRole,
    EventStatus,
    InventoryPolicy,
    compute_total_price,
    remaining_quantity,
)
from eventify.domain.state_machine import (
    BookingStateMachine,
    BookingStatus,
    PaymentStatus,
)
from eventify.infrastructure import settings
from eventify.infrastructure.db.models import Booking, Event, TicketType
from eventify.infrastructure.repositories.booked_events_repository import BookedEventsRepository
from eventify.infrastructure.repositories.booking_repository import BookingRepository
from eventify.infrastructure.repositories.event_repository import AccountRepository, EventRepository
from eventify.infrastructure.repositories.inventory_ledger import InventoryLedger

logger = logging.getLogger(__name__)

Scheduler = Callable[..., Any]


def run_now(task: Callable[..., Any], *args: Any) -> None:
    task(*args)


class BookingWorkflow:
    """Shared wiring for the booking coordinators."""

    def __init__(
        self,
        db: Session,
        notifier=None,
        schedule: Scheduler = run_now,
        policy: InventoryPolicy | None = None,
    ):
        self.db = db
        self.notifier = notifier
        self.schedule = schedule
        self.policy = policy or settings.default_inventory_policy()
        self.booking_repository = BookingRepository(db)
        self.event_repository = EventRepository(db)
        self.account_repository = AccountRepository(db)
        self.booked_events = BookedEventsRepository(db)
        self.ledger = InventoryLedger(db)

    def _lock_booking(self, booking_id: str) -> Booking:
        return self.booking_repository.lock(booking_id)

    def _apply_status(
        self,
        booking: Booking,
        new_booking_status: BookingStatus | None,
        new_payment_status: PaymentStatus | None,
        actor_id: str,
        reason: str | None,
        notes: str | None,
    ) -> tuple[BookingStatus, PaymentStatus]:
        """
        Move a locked booking to its new statuses inside the caller's
        transaction: ledger side effects, audit entry and membership sync.
        """
        previous_booking_status = booking.booking_status
        previous_payment_status = booking.payment_status
        target = new_booking_status or previous_booking_status

        BookingStateMachine.validate_update(previous_booking_status, target)

        if self.policy.should_reserve(
            previous_booking_status, target, booking.inventory_reserved
        ):
            ticket = self.ledger.find_exact(booking.event_id, booking.ticket_type)
            self.ledger.reserve(ticket, booking.quantity)
            booking.inventory_reserved = True
        elif self.policy.should_release(
            previous_booking_status, target, booking.inventory_reserved
        ):
            ticket = self.ledger.find_exact(booking.event_id, booking.ticket_type)
            self.ledger.release(ticket, booking.quantity)
            booking.inventory_reserved = False

        booking.booking_status = target
        if new_payment_status:
            booking.payment_status = new_payment_status

        self.booking_repository.append_status_log(
            booking,
            previous_booking_status=previous_booking_status,
            previous_payment_status=previous_payment_status,
            changed_by=actor_id,
            reason=reason,
            notes=notes,
        )
        self.booked_events.propagate_status(booking)

        if settings.LEDGER_INVARIANT_CHECKS:
            self.ledger.check_invariant(booking.event_id)

        return previous_booking_status, previous_payment_status

    def _notify(self, send: Callable[..., bool], *args: Any) -> None:
        """Hand a notification to the scheduler; failures are logged, never raised."""
        if self.notifier is None:
            return

        def _deliver() -> None:
            try:
                delivered = send(*args)
            except Exception:
                logger.exception("Notification %s raised", getattr(send, "__name__", send))
                return
            if not delivered:
                logger.warning("Notification %s was not delivered", getattr(send, "__name__", send))

        try:
            self.schedule(_deliver)
        except Exception:
            logger.exception("Could not schedule notification")

    def _send_status_update_email(
        self,
        booking: Booking,
        previous_booking_status: BookingStatus,
        previous_payment_status: PaymentStatus,
        reason: str | None,
        notes: str | None,
        updated_by_name: str,
    ) -> None:
        if self.notifier is None:
            return
        user = self.account_repository.get_account(booking.user_id)
        event = self.event_repository.get_by_id(booking.event_id)
        if not user or not event:
            logger.warning("Skipping status email for booking %s: recipient unknown", booking.id)
            return

        updates = {
            "booking_status": booking.booking_status.value,
            "payment_status": booking.payment_status.value,
            "previous_booking_status": previous_booking_status.value,
            "previous_payment_status": previous_payment_status.value,
            "reason": reason,
            "notes": notes,
        }
        self._notify(
            self.notifier.send_booking_status_update_email,
            user.email,
            booking,
            event,
            user,
            updates,
            updated_by_name,
        )


class BookingService(BookingWorkflow):
    """Application service coordinating booking workflow."""

    def create_booking(
        self,
        user_id: str,
        event_id: str,
        ticket_type: str,
        quantity: int,
    ) -> Booking:
        # Read-only unit: ends before the write transaction opens.
        event, ticket = run_in_transaction(
            self.db,
            lambda: self._validate_request(event_id, ticket_type, quantity),
            operation="Ticket booking validation",
        )

        total_price = compute_total_price(ticket.price, quantity)
        ticket_name = ticket.name

        def work() -> Booking:
            locked_event = self.event_repository.get_by_id(event_id)
            if not locked_event or locked_event.status != EventStatus.PUBLISHED:
                raise NotFoundError("Event", event_id, "Event not available")
            locked_ticket = self.ledger.find(event_id, ticket_name, lock=True)

            booking = self.booking_repository.create_booking(
                user_id=user_id,
                event_id=event_id,
                ticket_type=ticket_name,
                quantity=quantity,
                total_price=total_price,
            )

            if self.policy.reserves_on_create:
                self.ledger.reserve(locked_ticket, quantity)
                booking.inventory_reserved = True

            self.booked_events.append(booking, ActorRole.USER, user_id)
            if locked_event.organizer_id:
                self.booked_events.append(
                    booking, ActorRole.ORGANIZER, locked_event.organizer_id
                )

            if settings.LEDGER_INVARIANT_CHECKS:
                self.ledger.check_invariant(event_id)
            return booking

        try:
            booking = run_in_transaction(self.db, work, operation="Ticket booking")
        except InsufficientInventoryError as exc:
            logger.info(
                "Booking rejected for event %s (%s x %s): %s",
                event_id,
                quantity,
                ticket_name,
                exc,
            )
            raise

        logger.info(
            "Booking %s created for user %s (event_id=%s, %s x %s, total=%s)",
            booking.id,
            user_id,
            event_id,
            quantity,
            ticket_name,
            total_price,
        )

        if self.notifier is not None:
            purchaser = self.account_repository.get_account(user_id)
            if purchaser:
                self._notify(
                    self.notifier.send_ticket_booking_email,
                    purchaser.email,
                    booking,
                    event,
                    purchaser,
                )
        return booking

    def cancel_booking(
        self,
        booking_id: str,
        actor_id: str,
        actor_role: ActorRole = ActorRole.USER,
        actor_name: str | None = None,
    ) -> Booking:
        """
        Self-service cancel: booking becomes CANCELLED, payment becomes
        REFUNDED when it was PAID and PENDING otherwise. Runs as one
        transaction with the membership sync.
        """
        reason = (
            "Cancelled by purchaser"
            if actor_role == ActorRole.USER
            else f"Cancelled by {actor_role.value.lower()}"
        )

        def work() -> tuple[Booking, BookingStatus, PaymentStatus]:
            booking = self._lock_booking(booking_id)
            if actor_role == ActorRole.USER and booking.user_id != actor_id:
                raise UnauthorizedError("You can only cancel your own bookings")

            new_payment_status = (
                PaymentStatus.REFUNDED
                if booking.payment_status == PaymentStatus.PAID
                else PaymentStatus.PENDING
            )
            if booking.booking_status == BookingStatus.CANCELLED:
                BookingStateMachine.validate_transition(
                    booking.booking_status, BookingStatus.CANCELLED
                )
            previous = self._apply_status(
                booking,
                BookingStatus.CANCELLED,
                new_payment_status,
                actor_id=actor_id,
                reason=reason,
                notes=None,
            )
            return booking, previous[0], previous[1]

        booking, previous_booking_status, previous_payment_status = run_in_transaction(
            self.db, work, operation="Booking cancellation"
        )
        logger.info(
            "Booking %s cancelled by %s (%s/%s -> %s/%s)",
            booking.id,
            actor_id,
            previous_booking_status.value,
            previous_payment_status.value,
            booking.booking_status.value,
            booking.payment_status.value,
        )

        self._send_status_update_email(
            booking,
            previous_booking_status,
            previous_payment_status,
            reason=reason,
            notes=None,
            updated_by_name=actor_name or "Eventify",
        )
        return booking

    def _validate_request(
        self,
        event_id: str,
        ticket_type: str,
        quantity: int,
    ) -> tuple[Event, TicketType]:
        if not event_id or not ticket_type or not ticket_type.strip():
            raise ValidationError("Invalid input")
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
            raise ValidationError("Quantity must be a positive integer")

        event = self.event_repository.get_by_id(event_id)
        if not event or event.status != EventStatus.PUBLISHED:
            raise NotFoundError("Event", event_id, "Event not available")

        ticket = self.ledger.find(event_id, ticket_type)
        remaining = remaining_quantity(ticket)
        if remaining < quantity:
            raise InsufficientInventoryError(requested=quantity, remaining=remaining)

        return event, ticket
