# app/shared/sequences.py
import logging
import time
from datetime import date
from typing import Callable, Optional, TypeVar

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session

from app.shared.database.models import DocumentSequence

logger = logging.getLogger(__name__)

T = TypeVar("T")

INVOICE_PREFIX = "INV"
EXPENSE_PREFIX = "EXP"


class DocumentSequenceError(Exception):
    """Raised when a document number cannot be allocated."""


def format_document_number(prefix: str, day: date, sequence: int, pad: int = 4) -> str:
    """
    Build a human-readable document number, e.g. INV-20250131-0007
    """
    if sequence < 1:
        raise DocumentSequenceError("sequence must be >= 1")
    return f"{prefix}-{day:%Y%m%d}-{sequence:0{pad}d}"


def reserve_sequence(db: Session, document_type: str, day: date) -> int:
    """
    Atomically reserve the next sequence number for (document_type, day).

    The counter row is bumped with a single UPDATE ... SET next_number = next_number + 1,
    so two writers never read the same value. The first writer of the day
    creates the row; a concurrent creator that loses the unique constraint
    race gets an IntegrityError on flush and is retried by run_with_retry,
    which then takes the UPDATE path. Runs inside the caller's transaction.
    """
    if not document_type:
        raise DocumentSequenceError("document_type is required")

    stmt = (
        update(DocumentSequence)
        .where(
            DocumentSequence.document_type == document_type,
            DocumentSequence.sequence_date == day,
        )
        .values(next_number=DocumentSequence.next_number + 1)
    )

    result = db.execute(stmt)
    if result.rowcount:
        return _current_number(db, document_type, day) - 1

    db.add(DocumentSequence(document_type=document_type, sequence_date=day, next_number=2))
    db.flush()
    return 1


def _current_number(db: Session, document_type: str, day: date) -> int:
    return db.query(DocumentSequence.next_number).filter(
        DocumentSequence.document_type == document_type,
        DocumentSequence.sequence_date == day,
    ).scalar()


def next_document_number(
    db: Session,
    document_type: str,
    prefix: str,
    day: Optional[date] = None,
) -> str:
    """
    Reserve and format the next number for a document type, e.g. invoices
    """
    day = day or date.today()
    sequence = reserve_sequence(db, document_type, day)
    return format_document_number(prefix, day, sequence)


def run_with_retry(
    operation: Callable[[], T],
    db: Session,
    attempts: int = 3,
    backoff_base: float = 0.05,
) -> T:
    """
    Run a write operation, rolling back and retrying on unique-constraint or
    lock conflicts. The operation must rebuild its state on every call.
    """
    for attempt in range(attempts):
        try:
            return operation()
        except (IntegrityError, OperationalError) as exc:
            db.rollback()
            if attempt >= attempts - 1:
                raise
            logger.warning(
                f"Write conflict on attempt {attempt + 1}/{attempts}, retrying: {exc.__class__.__name__}"
            )
            time.sleep(backoff_base * (2 ** attempt))
    raise DocumentSequenceError("retry attempts must be >= 1")
