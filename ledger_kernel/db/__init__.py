"""Database layer - engine, base classes and immutability listeners."""

from ledger_kernel.db.base import UUID, Base, OrganizationScoped, TrackedBase, UUIDString
from ledger_kernel.db.engine import create_tables, get_engine, get_session, session_scope

__all__ = [
    "get_engine",
    "get_session",
    "session_scope",
    "create_tables",
    "Base",
    "OrganizationScoped",
    "TrackedBase",
    "UUIDString",
    "UUID",
]
