"""Notification recorder - writes the authoritative in-app trail."""
import logging
from datetime import datetime
from typing import Sequence

from sqlalchemy import insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..exceptions import PersistenceError
from ..models.notification import Notification
from ..schemas.notification import NotificationPayload
from ..utils.db_utils import retry_on_lock

logger = logging.getLogger(__name__)


class NotificationRecorder:
    """Persists one Notification row per eligible recipient."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def record_all(self, user_ids: Sequence[str], payload: NotificationPayload) -> int:
        """Insert one row per user in a single batch.

        Returns the number of rows written. Raises PersistenceError if the
        insert or commit fails.
        """
        if not user_ids:
            return 0

        now = datetime.utcnow()
        rows = [
            {
                "user_id": user_id,
                "category": payload.category.value,
                "title": payload.title,
                "body": payload.body,
                "url": payload.url,
                "data": dict(payload.data),
                "created_at": now,
            }
            for user_id in user_ids
        ]

        try:
            async with self._session_factory() as session:
                await session.execute(insert(Notification), rows)
                await retry_on_lock(session.commit)
        except SQLAlchemyError as e:
            logger.error(f"Failed to record {len(rows)} {payload.category.value} notifications: {e}")
            raise PersistenceError(f"Could not record notifications: {e}") from e

        logger.info(f"Recorded {len(rows)} {payload.category.value} notifications")
        return len(rows)
