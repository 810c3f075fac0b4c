# eventify/infrastructure/repositories/inventory_ledger.py

import logging

from sqlalchemy.orm import Session
from sqlalchemy import select, update

from eventify.infrastructure.db.models import TicketType
from eventify.domain.exceptions import (
    InsufficientInventoryError,
    InvalidTicketTypeError,
    LedgerInvariantError,
)
from eventify.domain.inventory import (
    find_ticket_type,
    ledger_is_consistent,
    remaining_quantity,
)

logger = logging.getLogger(__name__)


class InventoryLedger:
    """
    Per-event, per-ticket-type counters.
    The only code path allowed to write TicketType.sold.
    """

    def __init__(self, db: Session):
        self.db = db

    def list_ticket_types(self, event_id: str, lock: bool = False) -> list[TicketType]:
        stmt = select(TicketType).where(TicketType.event_id == event_id)
        if lock:
            # SELECT ... FOR UPDATE
            stmt = stmt.with_for_update()
        return list(self.db.execute(stmt).scalars().all())

    def find(self, event_id: str, name: str, lock: bool = False) -> TicketType:
        ticket = find_ticket_type(self.list_ticket_types(event_id, lock=lock), name)
        if not ticket:
            raise InvalidTicketTypeError(event_id, name)
        return ticket

    def find_exact(self, event_id: str, name: str) -> TicketType:
        stmt = (
            select(TicketType)
            .where(TicketType.event_id == event_id)
            .where(TicketType.name == name)
            .with_for_update()
        )
        ticket = self.db.execute(stmt).scalars().first()
        if not ticket:
            raise InvalidTicketTypeError(event_id, name)
        return ticket

    def reserve(self, ticket: TicketType, quantity: int) -> None:
        """
        Atomic increment-with-ceiling:
        UPDATE ... SET sold = sold + :qty WHERE sold + :qty <= quantity
        """
        stmt = (
            update(TicketType)
            .where(TicketType.id == ticket.id)
            .where(TicketType.sold + quantity <= TicketType.quantity)
            .values(sold=TicketType.sold + quantity)
            .execution_options(synchronize_session=False)
        )
        result = self.db.execute(stmt)
        self.db.expire(ticket, ["sold"])

        if result.rowcount != 1:
            raise InsufficientInventoryError(
                requested=quantity,
                remaining=remaining_quantity(ticket),
            )

        logger.info(
            "Reserved %s x %s (event_id=%s, sold=%s/%s)",
            quantity,
            ticket.name,
            ticket.event_id,
            ticket.sold,
            ticket.quantity,
        )

    def release(self, ticket: TicketType, quantity: int) -> None:
        stmt = (
            update(TicketType)
            .where(TicketType.id == ticket.id)
            .where(TicketType.sold >= quantity)
            .values(sold=TicketType.sold - quantity)
            .execution_options(synchronize_session=False)
        )
        result = self.db.execute(stmt)
        self.db.expire(ticket, ["sold"])

        if result.rowcount != 1:
            raise LedgerInvariantError(ticket.name, ticket.sold - quantity, ticket.quantity)

        logger.info(
            "Released %s x %s (event_id=%s, sold=%s/%s)",
            quantity,
            ticket.name,
            ticket.event_id,
            ticket.sold,
            ticket.quantity,
        )

    def check_invariant(self, event_id: str) -> None:
        """Raises LedgerInvariantError unless every ticket type has 0 <= sold <= quantity."""
        self.db.flush()
        for ticket in self.list_ticket_types(event_id):
            self.db.refresh(ticket)
            if not ledger_is_consistent(ticket):
                raise LedgerInvariantError(ticket.name, ticket.sold, ticket.quantity)
