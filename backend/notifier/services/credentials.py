"""OAuth credential minter for the FCM HTTP v1 API.

Builds an RS256-signed JWT assertion from the service account key and
exchanges it at Google's token endpoint (RFC 7523 JWT-bearer grant). The
resulting bearer token is cached until shortly before it expires so that
back-to-back dispatches share one OAuth round-trip.
"""
import asyncio
import logging
import time
from typing import Callable, Optional

import httpx
import jwt

from ..config import ServiceAccountConfig
from ..exceptions import CredentialError

logger = logging.getLogger(__name__)

JWT_BEARER_GRANT = "urn:ietf:params:oauth:grant-type:jwt-bearer"
ASSERTION_LIFETIME_SECONDS = 3600
REFRESH_SKEW_SECONDS = 60


class CredentialMinter:
    """Mints and caches short-lived bearer tokens for the push backend."""

    def __init__(
        self,
        config: ServiceAccountConfig,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._config = config
        self._clock = clock
        self._lock = asyncio.Lock()
        self._token: Optional[str] = None
        self._expires_at: float = 0.0

    def build_assertion(self, now: Optional[int] = None) -> str:
        """Sign the JWT assertion presented to the token endpoint."""
        now = int(time.time()) if now is None else now
        claims = {
            "iss": self._config.client_email,
            "scope": self._config.scope,
            "aud": self._config.token_url,
            "iat": now,
            "exp": now + ASSERTION_LIFETIME_SECONDS,
        }
        try:
            return jwt.encode(
                claims,
                self._config.private_key,
                algorithm="RS256",
                headers={"typ": "JWT"},
            )
        except (jwt.PyJWTError, ValueError, TypeError) as e:
            raise CredentialError(f"Failed to sign service account assertion: {e}") from e

    def _cached(self) -> Optional[str]:
        if self._token and self._clock() < self._expires_at - REFRESH_SKEW_SECONDS:
            return self._token
        return None

    def invalidate(self):
        """Drop the cached token so the next call mints a fresh one."""
        self._token = None
        self._expires_at = 0.0

    async def get_access_token(
        self,
        client: httpx.AsyncClient,
        timeout: Optional[float] = None,
    ) -> str:
        """Return a valid bearer token, minting one if the cache is stale.

        Raises:
            CredentialError: signing failed or the endpoint returned no
                access_token. ``transient`` is set for 5xx/429 and
                network failures.
        """
        token = self._cached()
        if token:
            return token

        async with self._lock:
            # Another caller may have minted while we waited
            token = self._cached()
            if token:
                return token

            token, expires_in = await self._exchange(client, timeout)
            self._token = token
            self._expires_at = self._clock() + expires_in
            logger.info(f"Minted push access token (expires in {expires_in}s)")
            return token

    async def _exchange(
        self,
        client: httpx.AsyncClient,
        timeout: Optional[float],
    ) -> tuple[str, int]:
        assertion = self.build_assertion()

        try:
            response = await client.post(
                self._config.token_url,
                data={"grant_type": JWT_BEARER_GRANT, "assertion": assertion},
                headers={"Content-Type": "application/x-www-form-urlencoded"},
                timeout=timeout if timeout is not None else httpx.USE_CLIENT_DEFAULT,
            )
        except httpx.TransportError as e:
            raise CredentialError(f"Token endpoint unreachable: {e!r}", transient=True) from e

        transient = response.status_code >= 500 or response.status_code == 429

        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}

        access_token = body.get("access_token")
        if not access_token:
            detail = body.get("error_description") or body.get("error")
            raise CredentialError(
                f"No access_token from token endpoint "
                f"(status {response.status_code}: {detail or response.text[:200]})",
                transient=transient,
            )

        try:
            expires_in = int(body.get("expires_in", ASSERTION_LIFETIME_SECONDS))
        except (TypeError, ValueError):
            expires_in = ASSERTION_LIFETIME_SECONDS

        return access_token, expires_in
