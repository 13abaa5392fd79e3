from datetime import datetime, timezone

from sqlalchemy import Column, DateTime
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def utcnow():
    return datetime.now(timezone.utc)


class TimestampMixin:
    c_time = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    u_time = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)
