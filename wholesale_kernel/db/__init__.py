"""Database layer - engine, base classes and column types."""

from wholesale_kernel.db.base import AuditedBase, Base, DecimalString, UTCDateTime
from wholesale_kernel.db.engine import create_tables, get_engine, get_session

__all__ = [
    "get_engine",
    "get_session",
    "create_tables",
    "Base",
    "AuditedBase",
    "DecimalString",
    "UTCDateTime",
]
