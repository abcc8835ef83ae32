import logging
import time
from typing import Callable, TypeVar

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Query, Session
from sqlalchemy.orm.exc import StaleDataError

from app.config import settings
from app.services.errors import ConcurrencyConflict

logger = logging.getLogger(__name__)

T = TypeVar("T")

# deadlocks / lock timeouts, version counter mismatches, and unique ticket or
# sale-per-order collisions all mean "someone else committed first"
RETRYABLE_ERRORS = (OperationalError, StaleDataError, IntegrityError)


def lock_for_update(query: Query) -> Query:
    """
    Row-level lock for read-modify-write on shared rows (stock, ticket counter).

    SQLite ignores SELECT ... FOR UPDATE; the version counters on the locked
    tables still turn a lost update into a StaleDataError there.
    populate_existing() makes sure we see the committed row, not a stale
    identity-map copy.
    """
    return query.with_for_update().populate_existing()


def run_in_transaction(
    db: Session,
    op: Callable[[], T],
    *,
    attempts: int | None = None,
    backoff_base: float | None = None,
) -> T:
    """
    Run op() and commit as a single unit of work.

    Any exception rolls the whole unit back. Concurrency-related failures are
    retried with exponential backoff; op() must therefore re-read everything
    it depends on. Business errors propagate untouched after the rollback.
    """
    attempts = attempts or settings.TX_RETRY_ATTEMPTS
    backoff_base = settings.TX_RETRY_BACKOFF if backoff_base is None else backoff_base

    for attempt in range(attempts):
        try:
            result = op()
            db.commit()
            return result
        except RETRYABLE_ERRORS as exc:
            db.rollback()
            if attempt >= attempts - 1:
                logger.error("Transaction failed after %d attempts: %s", attempts, exc.__class__.__name__)
                raise ConcurrencyConflict(attempts) from exc
            delay = backoff_base * (2 ** attempt)
            logger.warning(
                "Transaction conflict (%s), retrying in %.2fs (attempt %d/%d)",
                exc.__class__.__name__, delay, attempt + 1, attempts,
            )
            time.sleep(delay)
        except Exception:
            db.rollback()
            raise
    raise ConcurrencyConflict(attempts)
