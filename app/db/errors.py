"""Translation of storage driver failures into application errors."""

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError
from sqlalchemy.orm import Session

from app.core.exceptions import ConflictError, TransientIOError

logger = logging.getLogger(__name__)


@contextmanager
def storage_errors(db: Session, operation: str) -> Iterator[None]:
    """Roll back and re-raise driver errors of a write as AppErrors.

    Integrity violations mean another client won a race on the same row;
    connection, timeout and other driver failures are transient and the caller
    is expected to retry explicitly.
    """
    try:
        yield
    except IntegrityError as exc:
        db.rollback()
        logger.warning("Integrity error during %s: %s", operation, exc.orig)
        raise ConflictError(operation=operation) from exc
    except (OperationalError, DBAPIError) as exc:
        db.rollback()
        logger.warning("Storage failure during %s: %s", operation, exc)
        raise TransientIOError(operation=operation) from exc
