"""
BaseService -- abstract base for all write-side services.

Services receive a SQLAlchemy ``Session`` and an organization scope from the
caller and persist via ``session.flush()`` only.  The caller owns commit and
rollback, so a multi-step operation (post + close, reconcile + audit) is
atomic as a whole.
"""

from abc import ABC
from typing import Generic, TypeVar
from uuid import UUID

from sqlalchemy.orm import Session

from ledger_kernel.db.base import Base
from ledger_kernel.domain.clock import Clock, SystemClock

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """
    Contract:
        Flush within the caller's transaction; never commit or roll back.
        Every query is filtered by ``organization_id``.
    """

    def __init__(
        self,
        session: Session,
        organization_id: UUID,
        clock: Clock | None = None,
    ):
        self.session = session
        self.organization_id = organization_id
        self.clock = clock or SystemClock()
