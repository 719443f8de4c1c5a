from sqlalchemy import Column, DateTime, Integer
from sqlalchemy.sql import func


class TimestampMixin:
    created_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at = Column(
        DateTime(timezone=True),
        onupdate=func.now(),
    )


class RevisionMixin:
    """Row-level write counter, bumped on every save of the document."""

    revision = Column(Integer, nullable=False, default=1)
