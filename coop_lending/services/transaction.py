"""Unit-of-work helper: one commit per operation, full rollback on failure"""

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.orm import Session


@contextmanager
def atomic(db: Session) -> Iterator[Session]:
    """Commit when the block succeeds, roll back and re-raise on any error"""
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
