"""
Base SQLAlchemy models and common utilities for the Production Timeline Tracker.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, MetaData
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from ptt.utils.dates import utcnow

# Naming convention for constraints and indexes
# This keeps generated constraint names stable across databases
convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

metadata = MetaData(naming_convention=convention)


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy models.

    Provides common metadata and utilities.
    """

    metadata = metadata

    # Type annotation for better IDE support
    __tablename__: str

    def to_dict(self) -> dict[str, Any]:
        """
        Convert model instance to dictionary.

        Useful for debugging and serialization.
        """
        return {column.name: getattr(self, column.name) for column in self.__table__.columns}


class TimestampMixin:
    """
    Mixin for models that need created_at and updated_at timestamps.

    Timestamps are naive UTC and set on the Python side, so that schedule
    arithmetic against task dates never mixes aware and naive values.

    Usage:
        class MyModel(Base, TimestampMixin):
            ...
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=utcnow,
        nullable=False,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
    )
