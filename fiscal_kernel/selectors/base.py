"""
Module: fiscal_kernel.selectors.base
Responsibility: Abstract base class for read-only query selectors.
Architecture position: Kernel > Selectors.  May import from db/, models/ and
    domain DTOs.  Selectors NEVER create, modify, or delete data.

Invariants enforced:
    - Read-only access: no session.add(), delete(), commit() or flush().
    - DTO return convention: selectors return frozen dataclasses, never ORM
      instances.
    - Session ownership: the caller owns the session and its transaction.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from fiscal_kernel.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseSelector(ABC, Generic[ModelType]):
    """Accepts a Session from the caller and performs read-only queries."""

    def __init__(self, session: Session):
        self.session = session
