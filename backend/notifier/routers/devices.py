"""Device registration API endpoints for push notifications."""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from ..models import User
from ..services.dispatcher import Dispatcher
from .deps import get_current_user, get_dispatcher

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/devices", tags=["devices"])


class DeviceRegisterRequest(BaseModel):
    """Request to register a device for push notifications."""
    token: str = Field(..., min_length=1)
    platform: Optional[str] = "web"


class DeviceRegisterResponse(BaseModel):
    """Response after registering a device."""
    success: bool
    device_id: int
    message: str


class DeviceUnregisterResponse(BaseModel):
    """Response after unregistering a device."""
    success: bool
    message: str


@router.post("/register", response_model=DeviceRegisterResponse)
async def register_device(
    request: DeviceRegisterRequest,
    user: User = Depends(get_current_user),
    dispatcher: Dispatcher = Depends(get_dispatcher),
):
    """Register a device token for the current user.

    Clients call this on every launch; a known token is reactivated and
    moved to the caller.
    """
    device = await dispatcher.devices.register(
        user_id=user.id,
        token=request.token,
        platform=request.platform or "web",
    )
    return DeviceRegisterResponse(
        success=True,
        device_id=device.id,
        message="Device registered successfully",
    )


@router.delete("/{token}", response_model=DeviceUnregisterResponse)
async def unregister_device(
    token: str,
    user: User = Depends(get_current_user),
    dispatcher: Dispatcher = Depends(get_dispatcher),
):
    """Unregister a device from push notifications.

    This doesn't delete the record but marks it as inactive.
    """
    if not await dispatcher.devices.unregister(token, user.id):
        raise HTTPException(status_code=404, detail="Device not found")

    return DeviceUnregisterResponse(
        success=True,
        message="Device unregistered successfully",
    )
