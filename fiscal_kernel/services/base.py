"""
BaseService -- abstract base for all kernel services.

Responsibility:
    Common constructor and session-handling contract for every writing
    service in the kernel.  Services receive a SQLAlchemy ``Session`` and use
    ``session.flush()`` -- never ``session.commit()``.

Invariants enforced:
    Transaction boundaries: services flush within the caller's transaction
    and never commit or roll back themselves.  ``fiscal_services`` (or the
    test harness) owns commit/rollback, which is what makes the finalize
    sequence atomic.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from fiscal_kernel.db.base import Base
from fiscal_kernel.domain.clock import Clock, SystemClock

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """
    Abstract base class for kernel services.

    Args:
        session: SQLAlchemy session for database operations.
        clock: Time source; defaults to SystemClock.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        self.session = session
        self._clock = clock or SystemClock()
