"""Shared router dependencies."""
from fastapi import Depends, Header, HTTPException, Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..models import User
from ..services.dispatcher import Dispatcher


async def get_current_user(
    x_user_id: str = Header(None),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Resolve the acting user from the X-User-Id header.

    End-user authentication happens upstream; this service trusts the
    identifier it is handed.
    """
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")

    result = await db.execute(select(User).where(User.id == x_user_id))
    user = result.scalar_one_or_none()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


def get_dispatcher(request: Request) -> Dispatcher:
    """Dependency returning the application's dispatcher."""
    return request.app.state.dispatcher
