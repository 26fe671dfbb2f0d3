"""
Module: review_kernel.db.base
Responsibility: Declarative base class for all SQLAlchemy ORM models.  Provides
    the integer primary key convention and the type annotation map for
    consistent column types.
Architecture position: Kernel > DB.  This is the lowest-level import target
    within the kernel.  ALL model files import from here.  This module MUST NOT
    import from models/, services/, selectors/, domain/, or outer layers.

Invariants enforced:
    - Integer primary keys: every model gets an autoincrementing ``id``.
      Batch assignments are returned in ascending id order and messages
      with equal timestamps tie-break on id, so ids must be monotonic
      insertion keys, not random UUIDs.
    - Timestamps: type_annotation_map maps ``datetime`` to UTCDateTime, so
      every timestamp is stored in UTC and loaded timezone-aware.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import ClassVar

from sqlalchemy import BigInteger, Date, Integer, Numeric
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from review_kernel.db.types import UTCDateTime

# BIGINT on PostgreSQL; INTEGER on SQLite so the rowid alias autoincrements.
PrimaryKeyInteger = BigInteger().with_variant(Integer(), "sqlite")


class Base(DeclarativeBase):
    """
    Declarative base for all SQLAlchemy models.

    Contract:
        Every ORM model in the system inherits from Base.  Base provides an
        integer primary key and a type_annotation_map that enforces
        consistent column types across the entire schema.

    Guarantees:
        - id is a monotonically increasing integer assigned by the store.
        - datetime maps to UTCDateTime -- always timezone-aware.
        - int maps to BIGINT (INTEGER on SQLite).
    """

    type_annotation_map: ClassVar[dict] = {
        Decimal: Numeric(12, 2),
        datetime: UTCDateTime(),
        date: Date(),
        int: PrimaryKeyInteger,
    }

    id: Mapped[int] = mapped_column(
        PrimaryKeyInteger,
        primary_key=True,
        autoincrement=True,
    )
