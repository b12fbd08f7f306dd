"""Notification preference schemas."""
from typing import Optional
from pydantic import BaseModel


class NotificationPreferences(BaseModel):
    """Per-user push opt-outs. Unset means allowed."""
    push_enabled: Optional[bool] = None
    budget: Optional[bool] = None
    approvals: Optional[bool] = None
    events: Optional[bool] = None
    tasks: Optional[bool] = None
    security: Optional[bool] = None
    announcements: Optional[bool] = None
