"""User model definitions."""

from sqlalchemy import JSON, Column, DateTime, Integer, String

from analytics_api.core.timeutils import utcnow
from analytics_api.database import Base

USER_ROLES = ('user', 'admin')


class User(Base):
    """Represents a dashboard user. Roles are a subset of USER_ROLES."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(64), unique=True, index=True, nullable=False)
    email = Column(String(256), unique=True, index=True, nullable=False)
    password_hash = Column(String, nullable=False)
    roles = Column(JSON, nullable=False, default=lambda: ['user'])
    created_at = Column(DateTime, nullable=False, default=utcnow)
