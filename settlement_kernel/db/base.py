"""
Module: settlement_kernel.db.base
Responsibility: Declarative bases shared by every settlement ORM model.
Architecture position: Kernel > DB.  Bottom of the import graph; nothing in
    here may import services, domain code or settlement_modules.

Conventions every table inherits:
    - ``id`` is a uuid4 stored as a 36-character string, so SQLite and
      PostgreSQL round-trip the same value.
    - ``Decimal`` annotations become Numeric(38, 9).  Amounts are never
      stored as float.
    - ``TrackedBase`` adds who/when columns; actors are free-text names such
      as ``"system-auto"``.
"""

from datetime import datetime
from decimal import Decimal
from typing import ClassVar
from uuid import UUID, uuid4

from sqlalchemy import BigInteger, DateTime, Numeric, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator

ACTOR_LENGTH = 100


class UUIDString(TypeDecorator):
    """UUID <-> String(36)."""

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return None if value is None else str(value)

    def process_result_value(self, value, dialect):
        return None if value is None else UUID(value)


class Base(DeclarativeBase):
    type_annotation_map: ClassVar[dict] = {
        Decimal: Numeric(38, 9),
        datetime: DateTime(timezone=True),
        UUID: UUIDString(),
        int: BigInteger,
    }

    id: Mapped[UUID] = mapped_column(UUIDString(), primary_key=True, default=uuid4)


class TrackedBase(Base):
    """
    Abstract base for settlement documents.

    ``created_at``/``created_by`` are written once on insert.  The database
    refreshes ``updated_at`` on every UPDATE; services set ``updated_by``
    whenever they change a balance or status.
    """

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(),
        onupdate=func.now(),
    )
    created_by: Mapped[str] = mapped_column(String(ACTOR_LENGTH))
    updated_by: Mapped[str | None] = mapped_column(String(ACTOR_LENGTH))
