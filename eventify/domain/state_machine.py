# eventify/domain/state_machine.py

from enum import Enum
from typing import Dict, Set

from eventify.domain.exceptions import (
    InvalidStateTransitionError,
    InvalidStatusValueError,
)


class BookingStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"
    REFUNDED = "REFUNDED"


class PaymentStatus(str, Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    FAILED = "FAILED"
    REFUNDED = "REFUNDED"


class BookingStateMachine:
    """
    Central lifecycle controller for booking transitions.
    Defines the legal state transitions.

    Payment status is an independent enum and is not checked here.
    """

    _ALLOWED_TRANSITIONS: Dict[BookingStatus, Set[BookingStatus]] = {
        BookingStatus.PENDING: {
            BookingStatus.CONFIRMED,
            BookingStatus.CANCELLED,
        },
        BookingStatus.CONFIRMED: {
            BookingStatus.CANCELLED,
            BookingStatus.REFUNDED,
        },
        BookingStatus.CANCELLED: {
            BookingStatus.REFUNDED,
        },
        BookingStatus.REFUNDED: set(),
    }

    @classmethod
    def can_transition(
        cls,
        from_status: BookingStatus,
        to_status: BookingStatus,
    ) -> bool:
        """
        Returns True if transition is allowed.
        """
        cls._ensure_valid_status(from_status)
        cls._ensure_valid_status(to_status)

        return to_status in cls._ALLOWED_TRANSITIONS.get(from_status, set())

    @classmethod
    def validate_transition(
        cls,
        from_status: BookingStatus,
        to_status: BookingStatus,
    ) -> None:
        """
        Raises InvalidStateTransitionError if transition is illegal.
        """
        if not cls.can_transition(from_status, to_status):
            raise InvalidStateTransitionError(
                from_state=from_status.value,
                to_state=to_status.value,
            )

    @classmethod
    def validate_update(
        cls,
        from_status: BookingStatus,
        to_status: BookingStatus,
    ) -> None:
        """
        Like validate_transition, but re-stating the current status is a no-op.
        """
        if from_status == to_status:
            cls._ensure_valid_status(from_status)
            return
        cls.validate_transition(from_status, to_status)

    @classmethod
    def is_terminal(cls, status: BookingStatus) -> bool:
        """
        Returns True if the state is terminal (no further transitions allowed).
        """
        cls._ensure_valid_status(status)
        return len(cls._ALLOWED_TRANSITIONS.get(status, set())) == 0

    @classmethod
    def get_allowed_transitions(
        cls, status: BookingStatus
    ) -> Set[BookingStatus]:
        """
        Returns allowed next states from current state.
        """
        cls._ensure_valid_status(status)
        return cls._ALLOWED_TRANSITIONS.get(status, set())

    @staticmethod
    def _ensure_valid_status(status: BookingStatus) -> None:
        if not isinstance(status, BookingStatus):
            raise TypeError(
                f"Expected BookingStatus, got {type(status)}"
            )


def parse_booking_status(value: str | BookingStatus | None) -> BookingStatus | None:
    if value is None or isinstance(value, BookingStatus):
        return value
    try:
        return BookingStatus(value)
    except ValueError as exc:
        raise InvalidStatusValueError(
            "booking status", value, [s.value for s in BookingStatus]
        ) from exc


def parse_payment_status(value: str | PaymentStatus | None) -> PaymentStatus | None:
    if value is None or isinstance(value, PaymentStatus):
        return value
    try:
        return PaymentStatus(value)
    except ValueError as exc:
        raise InvalidStatusValueError(
            "payment status", value, [s.value for s in PaymentStatus]
        ) from exc
