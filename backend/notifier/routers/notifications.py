"""In-app notification API endpoints."""
import logging
from dataclasses import asdict
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..models import Notification, NotificationCategory, User
from ..schemas.notification import (
    DispatchResultResponse,
    MarkReadRequest,
    NotificationListResponse,
    NotificationPayload,
    NotificationResponse,
)
from ..services.dispatcher import Dispatcher
from ..utils.db_utils import retry_on_lock
from .deps import get_current_user, get_dispatcher

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/notifications", tags=["notifications"])

LIST_LIMIT = 100


@router.get("", response_model=NotificationListResponse)
async def list_notifications(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Get the current user's newest notifications."""
    result = await db.execute(
        select(Notification)
        .where(Notification.user_id == user.id)
        .order_by(Notification.created_at.desc(), Notification.id.desc())
        .limit(LIST_LIMIT)
    )
    items = result.scalars().all()

    return NotificationListResponse(
        notifications=[NotificationResponse.model_validate(n) for n in items],
        unread=sum(1 for n in items if n.read_at is None),
    )


@router.post("/mark-read")
async def mark_read(
    request: MarkReadRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Mark one of the current user's notifications as read."""
    result = await db.execute(
        select(Notification).where(
            Notification.id == request.id,
            Notification.user_id == user.id,
        )
    )
    notification = result.scalar_one_or_none()
    if not notification:
        raise HTTPException(status_code=404, detail="Notification not found")

    if notification.read_at is None:
        notification.read_at = datetime.utcnow()
        await retry_on_lock(db.commit)

    return {"success": True}


@router.post("/test", response_model=DispatchResultResponse)
async def send_test_notification(
    user: User = Depends(get_current_user),
    dispatcher: Dispatcher = Depends(get_dispatcher),
):
    """Send a test announcement to the current user's devices."""
    result = await dispatcher.dispatch_to_user(
        user.id,
        NotificationPayload(
            category=NotificationCategory.ANNOUNCEMENT,
            title="Test notification",
            body="If you see this, push is working.",
            url="/dashboard",
        ),
    )
    logger.info(f"Test notification for {user.id}: {result.sent}/{result.tokens} pushed")
    return DispatchResultResponse(**asdict(result))
