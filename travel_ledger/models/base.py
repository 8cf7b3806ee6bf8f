from datetime import datetime
from decimal import Decimal
from enum import Enum as PyEnum
from typing import Type

from sqlalchemy import Enum, Numeric
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all database models."""
    pass


class TimestampMixin:
    """Mixin for created_at and updated_at timestamps."""
    created_at: Mapped[datetime] = mapped_column(default=datetime.utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False
    )


def enum_column(enum_cls: Type[PyEnum]) -> Enum:
    """String-backed enum column that stores member values, not names."""
    return Enum(
        enum_cls,
        native_enum=False,
        length=32,
        values_callable=lambda members: [member.value for member in members],
        validate_strings=True,
    )


def money_column(**kwargs) -> Mapped[Decimal]:
    """Monetary column persisted with two decimal places."""
    kwargs.setdefault("nullable", False)
    kwargs.setdefault("default", Decimal("0.00"))
    return mapped_column(Numeric(18, 2), **kwargs)
