

class EventifyError(Exception):
    """
    Base exception for all domain-level errors
    inside the Eventify booking service.
    """


class ValidationError(EventifyError):
    """Raised when input is malformed before any write happens."""


class InvalidStatusValueError(ValidationError):
    """Raised when a status value is outside its enum."""

    def __init__(self, field: str, value: object, allowed: list[str]):
        self.field = field
        self.value = value
        self.allowed = allowed
        super().__init__(
            f"Invalid {field} '{value}'. Use: {', '.join(allowed)}"
        )


class NotFoundError(EventifyError):
    """Raised when an event, booking or account does not exist."""

    def __init__(self, resource: str, resource_id: str, message: str | None = None):
        self.resource = resource
        self.resource_id = resource_id
        super().__init__(message or f"{resource} not found")


class InvalidTicketTypeError(NotFoundError):
    """Raised when the event has no ticket type with the requested name."""

    def __init__(self, event_id: str, ticket_type: str):
        super().__init__("Ticket type", ticket_type, "Ticket type not found")
        self.event_id = event_id


class InsufficientInventoryError(EventifyError):
    """Raised when the requested quantity exceeds remaining stock."""

    def __init__(self, requested: int, remaining: int):
        self.requested = requested
        self.remaining = max(remaining, 0)
        super().__init__(f"Only {self.remaining} tickets left")


class InvalidStateTransitionError(EventifyError):
    """
    Raised when an illegal booking state transition is attempted.
    """

    def __init__(self, from_state: str, to_state: str):
        self.from_state = from_state
        self.to_state = to_state

        message = (
            f"Illegal state transition attempted: "
            f"{from_state} -> {to_state}"
        )
        super().__init__(message)


class UnauthorizedError(EventifyError):
    """Raised on a role or ownership mismatch."""


class TransactionConflictError(EventifyError):
    """Raised when a transaction keeps losing to concurrent writers."""

    def __init__(self, operation: str, attempts: int):
        self.operation = operation
        self.attempts = attempts
        super().__init__(
            f"{operation} conflicted with a concurrent update after {attempts} attempts"
        )


class LedgerInvariantError(EventifyError):
    """Raised when a ticket type would end up outside 0 <= sold <= quantity."""

    def __init__(self, ticket_type: str, sold: int, quantity: int):
        self.ticket_type = ticket_type
        self.sold = sold
        self.quantity = quantity
        super().__init__(
            f"Inventory ledger violated for '{ticket_type}': sold={sold}, quantity={quantity}"
        )


class DependencyError(EventifyError):
    """Raised by outbound collaborators (mail). Never fatal to a booking."""
