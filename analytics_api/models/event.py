"""Event model definitions."""

from sqlalchemy import Column, DateTime, Integer, String

from analytics_api.core.timeutils import utcnow
from analytics_api.database import Base


class Event(Base):
    """Free-form activity event posted by clients."""
    __tablename__ = "events"

    id = Column(Integer, primary_key=True)
    username = Column(String, nullable=False)
    event_type = Column(String, nullable=False)
    timestamp = Column(DateTime, nullable=False, default=utcnow, index=True)
