"""SQLAlchemy declarative base for the seating engine."""

from datetime import datetime
from typing import Optional
from uuid import uuid4

from sqlalchemy import MetaData, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from core.utils_datetime import get_current_datetime


# Naming convention for constraints
NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


def generate_id() -> str:
    """Generate a string UUID primary key."""
    return str(uuid4())


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    metadata = MetaData(naming_convention=NAMING_CONVENTION)


class UUIDPrimaryKeyMixin:
    """Mixin for a string UUID primary key."""

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=generate_id,
    )


class TimestampMixin:
    """
    Mixin for adding timestamp columns to models.

    Timestamps are restaurant-local wall-clock times. Services pass
    created_at explicitly from their clock; the defaults cover direct inserts.
    """

    created_at: Mapped[datetime] = mapped_column(
        default=get_current_datetime,
        nullable=False,
        index=True,
    )

    updated_at: Mapped[Optional[datetime]] = mapped_column(
        default=get_current_datetime,
        onupdate=get_current_datetime,
        nullable=True,
    )
