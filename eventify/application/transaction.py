import logging
import random
import time
from typing import Callable, TypeVar

from sqlalchemy.exc import OperationalError, TimeoutError as SQLAlchemyTimeoutError
from sqlalchemy.orm import Session

from eventify.domain.exceptions import TransactionConflictError
from eventify.infrastructure import settings

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _is_conflict(exc: Exception) -> bool:
    # Lock timeouts, deadlocks and serialization failures all surface here.
    return isinstance(exc, (OperationalError, SQLAlchemyTimeoutError))


def _backoff(attempt: int, base_delay: float) -> float:
    delay = min(base_delay * (2 ** (attempt - 1)), 2.0)
    return delay * (0.5 + random.random() * 0.5)


def run_in_transaction(
    db: Session,
    work: Callable[[], T],
    operation: str,
    max_attempts: int | None = None,
    base_delay: float | None = None,
) -> T:
    """
    Run ``work`` and commit it as one transaction.

    Conflicting writers cause a rollback and a retry with jittered
    exponential backoff; once attempts run out the conflict surfaces as
    TransactionConflictError. Any other error rolls back and propagates.
    """
    attempts = max_attempts or settings.BOOKING_TX_MAX_ATTEMPTS
    delay = base_delay if base_delay is not None else settings.BOOKING_TX_RETRY_DELAY

    for attempt in range(1, attempts + 1):
        try:
            result = work()
            db.commit()
        except Exception as exc:
            db.rollback()
            if not _is_conflict(exc):
                raise
            if attempt == attempts:
                logger.exception(
                    "%s failed after %s attempts due to concurrent writes.",
                    operation,
                    attempts,
                )
                raise TransactionConflictError(operation, attempts) from exc

            wait = _backoff(attempt, delay)
            logger.warning(
                "%s conflicted (attempt %s/%s). Retrying in %.2f seconds...",
                operation,
                attempt,
                attempts,
                wait,
            )
            time.sleep(wait)
            continue

        if attempt > 1:
            logger.info("%s succeeded on attempt %s", operation, attempt)
        return result

    raise TransactionConflictError(operation, attempts)
