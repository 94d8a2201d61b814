"""
Unit of work for multi-step operations.

Services wrap every state change that touches more than one row (draft save,
order deletion, transitions with side effects) in ``unit_of_work`` so that a
failure part-way through rolls the whole thing back instead of leaving
half-applied changes behind.
"""
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.orm import Session


@contextmanager
def unit_of_work(db: Session) -> Iterator[Session]:
    """
    Commit on success, roll back on any exception.

    Usage:
        with unit_of_work(db):
            order.status = "in_progress"
            record_audit(db, ...)
    """
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
