"""Admin model definitions."""

from sqlalchemy import Column, DateTime, Integer, String

from analytics_api.core.timeutils import utcnow
from analytics_api.database import Base


class Admin(Base):
    """Represents an administrator. Admins carry the admin role implicitly."""
    __tablename__ = "admins"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(64), unique=True, index=True, nullable=False)
    email = Column(String(256), unique=True, index=True, nullable=False)
    password_hash = Column(String, nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)
