"""
Module: ledger_kernel.selectors.base
Responsibility: Abstract base class for read-only query selectors.

Selectors never call session.add(), flush(), commit() or delete().  They
derive every balance from journal lines; there are no stored balances.
"""

from abc import ABC
from typing import Generic, TypeVar
from uuid import UUID

from sqlalchemy.orm import Session

from ledger_kernel.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseSelector(ABC, Generic[ModelType]):
    """Read-only access to one organization's ledger data."""

    def __init__(self, session: Session, organization_id: UUID):
        self.session = session
        self.organization_id = organization_id
