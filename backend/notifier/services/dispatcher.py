"""Notification dispatcher - the single entry point for domain events.

One call records an in-app notification for every eligible recipient and
then fans a push message out to each of their active devices:

1. load the recipients and drop those who opted out of the category
2. record the in-app rows (awaited before any push is attempted)
3. collect active device tokens, de-duplicated
4. mint (or reuse) a bearer token for the push backend
5. send one message per token from a bounded pool of workers

Only step 2 is guaranteed. A credential failure ends the push phase, a
failed send is contained to its token, and a token the backend reports
as unregistered is deactivated. Neither rolls back the recorded rows.
"""
import asyncio
import enum
import logging
from dataclasses import dataclass
from typing import Any, Iterable, List, Mapping, Optional, Union

import httpx
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..config import PushConfig
from ..exceptions import CredentialError, DeliveryError, PersistenceError
from ..models.user import User
from ..schemas.notification import NotificationPayload
from ..utils.db_utils import IN_CLAUSE_CHUNK, chunked
from .credentials import CredentialMinter
from .devices import DeviceDirectory
from .preferences import filter_eligible
from .push_sender import PushSender
from .recorder import NotificationRecorder

logger = logging.getLogger(__name__)


class PushOutcome(str, enum.Enum):
    """Result of one push attempt to one token."""
    SENT = "sent"
    DEACTIVATED = "deactivated"
    FAILED = "failed"


@dataclass
class DispatchResult:
    """Aggregate outcome of one dispatch call."""
    eligible: int = 0
    recorded: int = 0
    tokens: int = 0
    sent: int = 0
    failed: int = 0
    deactivated: int = 0
    credential_error: Optional[str] = None
    credential_error_transient: bool = False
    timed_out: bool = False


class Dispatcher:
    """Fans one notification out to in-app storage and push devices."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        config: PushConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        minter: Optional[CredentialMinter] = None,
    ):
        self._session_factory = session_factory
        self._config = config
        self._transport = transport
        self.recorder = NotificationRecorder(session_factory)
        self.devices = DeviceDirectory(session_factory)
        self.minter = minter or CredentialMinter(config.service_account)
        self.sender = PushSender(config.send_url)

    async def dispatch(
        self,
        user_ids: Iterable[str],
        payload: Union[NotificationPayload, Mapping[str, Any]],
    ) -> DispatchResult:
        """Notify ``user_ids`` of ``payload``.

        Raises:
            PersistenceError: the recipients could not be loaded or the
                in-app rows could not be written. Push problems never raise.
        """
        result = DispatchResult()
        user_ids = list(dict.fromkeys(str(uid) for uid in user_ids))
        if not user_ids:
            return result

        payload = NotificationPayload.model_validate(payload)

        eligible = await self._eligible_user_ids(user_ids, payload)
        result.eligible = len(eligible)
        if not eligible:
            logger.debug(f"No eligible recipients for {payload.category.value} notification")
            return result

        result.recorded = await self.recorder.record_all(eligible, payload)

        try:
            devices = await self.devices.active_devices_for(eligible)
        except SQLAlchemyError as e:
            logger.error(f"Failed to load devices, skipping push: {e}")
            return result

        tokens = [device.token for device in devices]
        result.tokens = len(tokens)
        if not tokens:
            logger.debug("No active devices for push notification")
            return result

        if not self._config.enabled:
            logger.warning("Push backend not configured, skipping push delivery")
            return result

        outcomes: asyncio.Queue = asyncio.Queue()
        try:
            await asyncio.wait_for(
                self._push(tokens, payload, outcomes, result),
                timeout=self._config.dispatch_timeout,
            )
        except asyncio.TimeoutError:
            result.timed_out = True
            logger.warning(
                f"Dispatch deadline of {self._config.dispatch_timeout}s hit, "
                f"{outcomes.qsize()}/{len(tokens)} push attempts completed"
            )

        while not outcomes.empty():
            outcome = outcomes.get_nowait()
            if outcome is PushOutcome.SENT:
                result.sent += 1
            elif outcome is PushOutcome.DEACTIVATED:
                result.deactivated += 1
            else:
                result.failed += 1

        logger.info(
            f"{payload.category.value} push: {result.sent} sent, {result.failed} failed, "
            f"{result.deactivated} deactivated of {result.tokens} devices"
        )
        return result

    async def dispatch_to_user(
        self,
        user_id: str,
        payload: Union[NotificationPayload, Mapping[str, Any]],
    ) -> DispatchResult:
        """Notify a single user."""
        return await self.dispatch([user_id], payload)

    async def _eligible_user_ids(self, user_ids: List[str], payload: NotificationPayload) -> List[str]:
        try:
            async with self._session_factory() as session:
                users = []
                for batch in chunked(user_ids, IN_CLAUSE_CHUNK):
                    rows = await session.execute(select(User).where(User.id.in_(batch)))
                    users.extend(rows.scalars().all())
        except SQLAlchemyError as e:
            raise PersistenceError(f"Could not load recipients: {e}") from e

        return [user.id for user in filter_eligible(payload.category, users)]

    def _remaining(self, deadline: float) -> float:
        left = deadline - asyncio.get_running_loop().time()
        return max(0.001, min(self._config.request_timeout, left))

    async def _push(
        self,
        tokens: List[str],
        payload: NotificationPayload,
        outcomes: asyncio.Queue,
        result: DispatchResult,
    ):
        deadline = asyncio.get_running_loop().time() + self._config.dispatch_timeout

        async with httpx.AsyncClient(
            transport=self._transport,
            timeout=self._config.request_timeout,
        ) as client:
            try:
                access_token = await self.minter.get_access_token(
                    client, timeout=self._remaining(deadline)
                )
            except CredentialError as e:
                result.credential_error = str(e)
                result.credential_error_transient = e.transient
                if e.transient:
                    logger.warning(f"Push skipped, token endpoint unavailable: {e}")
                else:
                    logger.error(f"Push skipped, service account credentials rejected: {e}")
                return

            pending: asyncio.Queue = asyncio.Queue()
            for token in tokens:
                pending.put_nowait(token)

            workers = [
                asyncio.create_task(
                    self._worker(client, access_token, payload, pending, outcomes, deadline)
                )
                for _ in range(min(self._config.workers, len(tokens)))
            ]
            await asyncio.gather(*workers)

    async def _worker(
        self,
        client: httpx.AsyncClient,
        access_token: str,
        payload: NotificationPayload,
        pending: asyncio.Queue,
        outcomes: asyncio.Queue,
        deadline: float,
    ):
        while True:
            try:
                token = pending.get_nowait()
            except asyncio.QueueEmpty:
                return
            outcome = await self._deliver(client, access_token, token, payload, deadline)
            outcomes.put_nowait(outcome)

    async def _deliver(
        self,
        client: httpx.AsyncClient,
        access_token: str,
        token: str,
        payload: NotificationPayload,
        deadline: float,
    ) -> PushOutcome:
        try:
            await self.sender.send(
                client, access_token, token, payload, timeout=self._remaining(deadline)
            )
            return PushOutcome.SENT
        except DeliveryError as e:
            if not e.unregistered:
                logger.warning(str(e))
                if e.status_code == 401:
                    # Revoked bearer token; next dispatch mints a new one
                    self.minter.invalidate()
                return PushOutcome.FAILED

        logger.info(f"Push backend reports token unregistered: {token[:16]}...")
        try:
            await self.devices.deactivate(token)
        except SQLAlchemyError as e:
            logger.error(f"Failed to deactivate device {token[:16]}...: {e}")
            return PushOutcome.FAILED
        return PushOutcome.DEACTIVATED
