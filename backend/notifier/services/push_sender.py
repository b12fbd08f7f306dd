"""Push notification sender using the FCM HTTP v1 API."""
import logging
from typing import Optional

import httpx

from ..exceptions import DeliveryError
from ..schemas.notification import NotificationPayload

logger = logging.getLogger(__name__)


def build_message(token: str, payload: NotificationPayload) -> dict:
    """Build the FCM v1 request body for one device.

    The data block carries the caller's data plus ``url`` and ``category``
    so the client can deep-link without a second lookup.
    """
    data = dict(payload.data)
    if payload.url:
        data["url"] = payload.url
    data["category"] = payload.category.value

    return {
        "message": {
            "token": token,
            "notification": {
                "title": payload.title,
                "body": payload.body,
            },
            "data": data,
        }
    }


class PushSender:
    """Sends single push messages to FCM."""

    def __init__(self, send_url: str):
        self._send_url = send_url

    async def send(
        self,
        client: httpx.AsyncClient,
        access_token: str,
        device_token: str,
        payload: NotificationPayload,
        timeout: Optional[float] = None,
    ):
        """Send a push notification to a single device.

        Raises:
            DeliveryError: on a non-2xx response or a transport failure.
                ``unregistered`` tells whether the token should be dropped.
        """
        try:
            response = await client.post(
                self._send_url,
                json=build_message(device_token, payload),
                headers={
                    "Content-Type": "application/json",
                    "Authorization": f"Bearer {access_token}",
                },
                timeout=timeout if timeout is not None else httpx.USE_CLIENT_DEFAULT,
            )
        except httpx.HTTPError as e:
            raise DeliveryError(device_token, body=repr(e)) from e

        if response.is_success:
            logger.debug(f"Push notification sent to {device_token[:16]}...")
            return

        raise DeliveryError(device_token, response.status_code, response.text)
