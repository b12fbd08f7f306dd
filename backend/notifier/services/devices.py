"""Device directory - maps users to push registration tokens."""
import logging
from datetime import datetime
from typing import List, Sequence

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..models.device import Device
from ..utils.db_utils import IN_CLAUSE_CHUNK, chunked, retry_on_lock

logger = logging.getLogger(__name__)


class DeviceDirectory:
    """Lookup and lifecycle of device registrations."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def active_devices_for(self, user_ids: Sequence[str]) -> List[Device]:
        """Get active devices for the users, one per distinct token."""
        if not user_ids:
            return []

        devices = []
        async with self._session_factory() as session:
            for batch in chunked(user_ids, IN_CLAUSE_CHUNK):
                result = await session.execute(
                    select(Device)
                    .where(Device.user_id.in_(batch), Device.is_active.is_(True))
                    .order_by(Device.id)
                )
                devices.extend(result.scalars().all())

        unique = {}
        for device in devices:
            unique.setdefault(device.token, device)
        return list(unique.values())

    async def deactivate(self, token: str) -> bool:
        """Tombstone a token the push backend no longer accepts.

        Idempotent: an unknown or already inactive token is a no-op.
        Returns True if a row changed.
        """
        async with self._session_factory() as session:
            result = await session.execute(
                update(Device)
                .where(Device.token == token, Device.is_active.is_(True))
                .values(is_active=False)
                .execution_options(synchronize_session=False)
            )
            await retry_on_lock(session.commit)

        changed = (result.rowcount or 0) > 0
        if changed:
            logger.info(f"Device deactivated: {token[:16]}...")
        return changed

    async def register(self, user_id: str, token: str, platform: str = "web") -> Device:
        """Register or refresh a token for a user.

        An existing row is reassigned to ``user_id`` and reactivated, so a
        token never belongs to two users.
        """
        async with self._session_factory() as session:
            result = await session.execute(select(Device).where(Device.token == token))
            device = result.scalar_one_or_none()

            if device:
                device.user_id = user_id
                device.platform = platform
                device.last_seen_at = datetime.utcnow()
                device.is_active = True
                logger.info(f"Device token updated: {token[:16]}...")
            else:
                device = Device(
                    user_id=user_id,
                    token=token,
                    platform=platform,
                    is_active=True,
                )
                session.add(device)
                logger.info(f"New device registered: {token[:16]}...")

            await retry_on_lock(session.commit)
            await session.refresh(device)
            return device

    async def unregister(self, token: str, user_id: str) -> bool:
        """User-initiated removal of one of ``user_id``'s devices.

        Returns False if the token is unknown or belongs to another user.
        """
        async with self._session_factory() as session:
            result = await session.execute(
                select(Device).where(Device.token == token, Device.user_id == user_id)
            )
            device = result.scalar_one_or_none()
            if not device:
                return False

            device.is_active = False
            await retry_on_lock(session.commit)

        logger.info(f"Device unregistered: {token[:16]}...")
        return True
