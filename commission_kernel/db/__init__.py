"""Database layer - engine and base classes."""

from commission_kernel.db.base import UUID, Base, UUIDString
from commission_kernel.db.engine import (
    create_tables,
    get_engine,
    get_session,
    init_engine_from_url,
    session_scope,
)

__all__ = [
    "get_engine",
    "get_session",
    "init_engine_from_url",
    "session_scope",
    "create_tables",
    "Base",
    "UUIDString",
    "UUID",
]
