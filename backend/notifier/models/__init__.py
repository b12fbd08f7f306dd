"""Database models."""
from .user import User
from .device import Device
from .notification import Notification, NotificationCategory

__all__ = ["User", "Device", "Notification", "NotificationCategory"]
