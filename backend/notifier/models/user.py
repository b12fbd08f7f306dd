"""User model - directory entry owned by the wider dashboard."""
import uuid
from datetime import datetime
from sqlalchemy import Column, String, DateTime, JSON
from sqlalchemy.orm import relationship

from ..database import Base


class User(Base):
    """A dashboard user. Read-only from the dispatch path."""

    __tablename__ = "users"

    id = Column(String, primary_key=True, default=lambda: uuid.uuid4().hex)
    email = Column(String, unique=True, nullable=True)
    name = Column(String, nullable=True)
    # push_enabled, budget, approvals, events, tasks, security, announcements
    notification_preferences = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    devices = relationship("Device", back_populates="user", cascade="all, delete-orphan")
    notifications = relationship("Notification", back_populates="user", cascade="all, delete-orphan")
