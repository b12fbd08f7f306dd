"""Notification schemas for the dispatcher and API."""
from datetime import datetime
from typing import Dict, List, Optional
from pydantic import BaseModel, Field

from ..models.notification import NotificationCategory


class NotificationPayload(BaseModel):
    """Unit of work accepted by the dispatcher. Content is pre-formatted."""
    category: NotificationCategory
    title: str = Field(..., min_length=1)
    body: str = Field(..., min_length=1)
    url: Optional[str] = None
    data: Dict[str, str] = Field(default_factory=dict)


class NotificationResponse(BaseModel):
    """Schema for a notification in the in-app list."""
    id: int
    category: str
    title: str
    body: str
    url: Optional[str] = None
    created_at: datetime
    read_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class NotificationListResponse(BaseModel):
    """Newest-first list of a user's notifications."""
    notifications: List[NotificationResponse]
    unread: int


class MarkReadRequest(BaseModel):
    """Request to mark one notification as read."""
    id: int


class DispatchResultResponse(BaseModel):
    """Aggregate outcome of one dispatch call."""
    eligible: int
    recorded: int
    tokens: int
    sent: int
    failed: int
    deactivated: int
    credential_error: Optional[str] = None
    credential_error_transient: bool = False
    timed_out: bool = False

    class Config:
        from_attributes = True
