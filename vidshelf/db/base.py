"""
Declarative base and shared columns for every catalog table.

Key Concepts:
--------------
1. Base: the DeclarativeBase all models (and Alembic autogenerate) hang off
2. TimestampedRow: id / created_at / updated_at, identical on every table
3. BaseModel: Base + TimestampedRow, what concrete models subclass
"""

from datetime import datetime, timezone

from sqlalchemy import DateTime, MetaData, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# Stable constraint names on PostgreSQL and SQLite alike, so migrations diff cleanly.
metadata = MetaData(
    naming_convention={
        "ix": "ix_%(column_0_label)s",
        "uq": "uq_%(table_name)s_%(column_0_name)s",
        "ck": "ck_%(table_name)s_%(constraint_name)s",
        "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
        "pk": "pk_%(table_name)s",
    }
)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    metadata = metadata


class TimestampedRow:
    """
    Columns shared by every table.

    - id: auto-incrementing integer primary key
    - created_at: set once on insert (UTC); the feed's default ordering key
      and the tie-break for every other ordering
    - updated_at: refreshed on every ORM update (UTC)
    """

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
        index=True,
        comment="Creation time (UTC)",
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
        comment="Last modification time (UTC)",
    )

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(id={self.id})"


class BaseModel(Base, TimestampedRow):
    """Abstract base for concrete models: ``class Video(BaseModel): ...``."""

    __abstract__ = True


# ================================
# String Length Constraints
# ================================
String50 = String(50)  # usernames
String255 = String(255)  # titles, file ids
String1000 = String(1000)  # URLs
