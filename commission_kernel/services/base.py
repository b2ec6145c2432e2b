"""
BaseService -- abstract base for kernel services that write.

Responsibility:
    Common constructor and session-handling contract.  Concrete services
    receive a SQLAlchemy ``Session`` and flush within the caller's
    transaction; they never commit or roll back.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.

Failure modes:
    - A subclass that calls ``session.commit()`` breaks the all-or-nothing
      ledger replacement the synchronizer builds on top of it.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from commission_kernel.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """
    Abstract base class for kernel services.

    Contract:
        Accepts a ``Session`` from the caller and persists changes within the
        active transaction.

    Non-goals:
        - Does NOT manage transaction lifecycle (commit/rollback).
        - Does NOT provide read-side DTO queries; those belong in
          ``commission_kernel/selectors/``.
    """

    def __init__(self, session: Session):
        self.session = session
