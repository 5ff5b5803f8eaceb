from datetime import date

import pytest
from sqlalchemy.exc import IntegrityError

from app.shared.sequences import (
    DocumentSequenceError, format_document_number, next_document_number, reserve_sequence,
    run_with_retry
)


def test_format_document_number_pads_to_four_digits():
    assert format_document_number("INV", date(2025, 1, 31), 7) == "INV-20250131-0007"
    assert format_document_number("EXP", date(2025, 12, 1), 12345) == "EXP-20251201-12345"


def test_format_rejects_non_positive_sequence():
    with pytest.raises(DocumentSequenceError):
        format_document_number("INV", date(2025, 1, 31), 0)


def test_reserve_sequence_is_monotonic_per_day_and_type(db):
    day = date(2025, 3, 14)
    assert [reserve_sequence(db, "invoice", day) for _ in range(3)] == [1, 2, 3]
    assert reserve_sequence(db, "expense", day) == 1
    assert reserve_sequence(db, "invoice", date(2025, 3, 15)) == 1
    assert reserve_sequence(db, "invoice", day) == 4


def test_next_document_number(db):
    day = date(2025, 3, 14)
    first = next_document_number(db, "invoice", "INV", day)
    second = next_document_number(db, "invoice", "INV", day)
    assert first == "INV-20250314-0001"
    assert second == "INV-20250314-0002"


def test_run_with_retry_retries_conflicts(db):
    calls = []

    def flaky():
        calls.append(1)
        if len(calls) < 3:
            raise IntegrityError("INSERT", {}, Exception("duplicate"))
        return "ok"

    assert run_with_retry(flaky, db, attempts=3, backoff_base=0) == "ok"
    assert len(calls) == 3


def test_run_with_retry_gives_up(db):
    def always_conflicts():
        raise IntegrityError("INSERT", {}, Exception("duplicate"))

    with pytest.raises(IntegrityError):
        run_with_retry(always_conflicts, db, attempts=2, backoff_base=0)
