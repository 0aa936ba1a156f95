"""
Module: wholesale_kernel.db.base
Responsibility: Declarative base classes for all SQLAlchemy ORM models.  Provides
    the integer identity convention, exact decimal and UTC timestamp column
    types, and the AuditedBase mixin for the last-edited audit pair.
Architecture position: Kernel > DB.  This is the lowest-level import target
    within the kernel.  ALL model files import from here.  This module MUST NOT
    import from domain/ or from wholesale_modules.

Invariants enforced:
    - Integer primary keys: every row gets a store-generated, positive,
      autoincrement id.  That id is what repositories hand to
      ``Entity.set_id`` after the first flush.
    - Decimal exactness: Python Decimal is stored as its canonical string via
      DecimalString, so a value read back is digit-for-digit the value
      written.  NEVER use float for monetary amounts.
    - Timezone awareness: UTCDateTime normalizes to UTC on write and
      re-attaches UTC on read, including on backends (SQLite) that drop the
      offset.

Failure modes:
    - ValueError from UTCDateTime when a naive datetime is bound.
    - decimal.InvalidOperation if a stored amount column was edited to a
      non-numeric string outside the application.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import ClassVar

from sqlalchemy import BigInteger, DateTime, Integer, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


class DecimalString(TypeDecorator):
    """
    Decimal type stored as String(40) for exact, portable round-trips.

    Guarantees:
        - process_bind_param: Decimal -> str on INSERT/UPDATE.
        - process_result_value: str -> Decimal on SELECT.
        - cache_ok=True enables SQLAlchemy statement caching.
    """

    impl = String(40)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None:
            return str(value)
        return None

    def process_result_value(self, value, dialect):
        if value is not None:
            return Decimal(value)
        return None


class UTCDateTime(TypeDecorator):
    """
    Timezone-aware datetime normalized to UTC.

    Contract:
        Only timezone-aware datetimes may be bound.  Loaded values are
        always timezone-aware UTC.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            raise ValueError(f"Naive datetime cannot be stored: {value!r}")
        return value.astimezone(timezone.utc)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


# BIGINT on PostgreSQL; SQLite only autoincrements INTEGER PRIMARY KEY.
IdentityInteger = BigInteger().with_variant(Integer, "sqlite")


class Base(DeclarativeBase):
    """
    Declarative base for all SQLAlchemy models.

    Guarantees:
        - id is a store-generated positive integer.
        - Decimal maps to DecimalString -- exact.
        - datetime maps to UTCDateTime -- always timezone-aware.
    """

    type_annotation_map: ClassVar[dict] = {
        Decimal: DecimalString(),
        datetime: UTCDateTime(),
        int: Integer,
    }

    id: Mapped[int] = mapped_column(
        IdentityInteger,
        primary_key=True,
        autoincrement=True,
    )


class AuditedBase(Base):
    """
    Abstract base carrying the entity audit pair.

    Contract:
        ``last_edited_by`` / ``last_edited_when`` mirror the entity's audit
        fields and are copied on every save.  ``created_at`` is set by the
        database on INSERT and never changes.
    """

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        server_default=func.now(),
        nullable=False,
    )

    last_edited_by: Mapped[int] = mapped_column(nullable=False)

    last_edited_when: Mapped[datetime] = mapped_column(nullable=False)
