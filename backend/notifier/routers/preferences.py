"""Notification preference API endpoints."""
import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..models import User
from ..schemas.preferences import NotificationPreferences
from ..utils.db_utils import retry_on_lock
from .deps import get_current_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/settings", tags=["settings"])


@router.get("/notification-prefs", response_model=NotificationPreferences)
async def get_preferences(user: User = Depends(get_current_user)):
    """Get the current user's notification preferences."""
    return NotificationPreferences(**(user.notification_preferences or {}))


@router.put("/notification-prefs", response_model=NotificationPreferences)
async def update_preferences(
    prefs: NotificationPreferences,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Replace the current user's notification preferences.

    Unset fields are dropped so they fall back to allowed.
    """
    user.notification_preferences = prefs.model_dump(exclude_none=True)
    await retry_on_lock(db.commit)

    logger.info(f"Notification preferences updated for {user.id}")
    return NotificationPreferences(**user.notification_preferences)
