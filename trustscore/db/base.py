"""
SQLAlchemy Base Model
=====================

Declarative base for all TrustScore database models.

Author: TrustScore Team
Version: 1.0.0
"""

from datetime import datetime

from sqlalchemy import DateTime, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from trustscore.schemas import utc_now


class Base(DeclarativeBase):
    """
    Base class for all TrustScore database models.

    Datetime annotations map to timezone-aware columns.
    """

    type_annotation_map = {
        datetime: DateTime(timezone=True),
    }


class TimestampMixin:
    """Mixin providing created_at and updated_at timestamps."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        onupdate=utc_now,
        server_default=func.now(),
        nullable=False,
    )
