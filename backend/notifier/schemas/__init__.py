"""Pydantic schemas for API request/response models."""
from .notification import (
    NotificationPayload,
    NotificationResponse,
    NotificationListResponse,
    MarkReadRequest,
    DispatchResultResponse,
)
from .preferences import NotificationPreferences

__all__ = [
    "NotificationPayload",
    "NotificationResponse",
    "NotificationListResponse",
    "MarkReadRequest",
    "DispatchResultResponse",
    "NotificationPreferences",
]
