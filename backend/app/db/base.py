"""
Declarative base and shared column mixins.
"""

from sqlalchemy import Column, DateTime, func
from sqlalchemy.orm import DeclarativeBase

from app.core.clock import utcnow


class Base(DeclarativeBase):
    pass


class TimestampMixin:
    # Python-side defaults keep the values loaded after a flush, so async
    # sessions never need a lazy refresh to serialize them.
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=func.now(),
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
        server_default=func.now(),
    )
