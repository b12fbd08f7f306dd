"""Notification model - durable in-app notification trail."""
import enum
from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship

from ..database import Base


class NotificationCategory(str, enum.Enum):
    """Closed set of notification categories."""
    BUDGET = "BUDGET"
    APPROVAL = "APPROVAL"
    EVENT = "EVENT"
    TASK = "TASK"
    SECURITY = "SECURITY"
    ANNOUNCEMENT = "ANNOUNCEMENT"


class Notification(Base):
    """One in-app notification for one recipient."""

    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    category = Column(String, nullable=False, index=True)  # NotificationCategory value
    title = Column(String, nullable=False)
    body = Column(String, nullable=False)
    url = Column(String, nullable=True)
    data = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    read_at = Column(DateTime, nullable=True, index=True)

    user = relationship("User", back_populates="notifications")
