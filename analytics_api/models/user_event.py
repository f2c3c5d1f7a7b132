"""UserEvent model definitions."""

from sqlalchemy import JSON, Column, DateTime, Index, Integer, String

from analytics_api.core.timeutils import utcnow
from analytics_api.database import Base

USER_EVENT_TYPES = ('signup', 'login', 'answer', 'click', 'logout')


class UserEvent(Base):
    """Append-only user activity record feeding the metrics endpoints.

    ``user_id`` holds the principal id and is not a foreign key; ``principal_type``
    says whether it points at ``users`` or ``admins``.
    """
    __tablename__ = "user_events"
    __table_args__ = (
        Index('ix_user_events_type_timestamp', 'event_type', 'timestamp'),
        Index('ix_user_events_principal_timestamp', 'principal_type', 'user_id', 'timestamp'),
    )

    id = Column(Integer, primary_key=True)
    principal_type = Column(String(16), nullable=False, default='user')
    user_id = Column(Integer, nullable=True, index=True)
    username = Column(String, nullable=True, index=True)
    event_type = Column(String, nullable=False, index=True)
    timestamp = Column(DateTime, nullable=False, default=utcnow, index=True)
    meta = Column(JSON, nullable=False, default=dict)
