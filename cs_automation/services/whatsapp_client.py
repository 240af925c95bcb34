"""HTTP client for WhatsApp API integration."""

import logging
from typing import Any

import httpx

from cs_automation.config import settings
from cs_automation.core.exceptions import WhatsAppAPIError

logger = logging.getLogger(__name__)


class WhatsAppClient:
    """HTTP client for the WhatsApp gateway, one per sending tenant."""

    def __init__(self, device_id: str):
        self.device_id = device_id
        self.base_url = settings.WHATSAPP_API_URL
        self.timeout = settings.WHATSAPP_API_TIMEOUT
        self.auth = (
            (settings.WHATSAPP_API_USER, settings.WHATSAPP_API_PASSWORD)
            if settings.WHATSAPP_API_USER
            else None
        )

    async def _request(
        self,
        method: str,
        path: str,
        **kwargs,
    ) -> dict[str, Any]:
        """Make an HTTP request to the WhatsApp API."""
        url = f"{self.base_url}{path}"
        logger.info(f"WhatsApp API request: {method} {url} (device: {self.device_id})")

        async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=True) as client:
            headers = kwargs.pop("headers", {})
            headers["X-Device-Id"] = self.device_id

            try:
                response = await client.request(
                    method,
                    url,
                    auth=self.auth,
                    headers=headers,
                    **kwargs,
                )
            except httpx.RequestError as e:
                logger.error(f"WhatsApp API connection error: {e}")
                raise WhatsAppAPIError(f"Connection error: {e}")

            logger.info(f"WhatsApp API response: {response.status_code}")

            if response.status_code >= 400:
                logger.error(f"WhatsApp API error: {response.status_code} - {response.text}")
                raise WhatsAppAPIError(response.text)

            try:
                body = response.json()
            except ValueError as e:
                logger.error(f"WhatsApp API returned an unreadable body: {e}")
                raise WhatsAppAPIError(f"Invalid response body: {e}")

            if not isinstance(body, dict):
                raise WhatsAppAPIError(f"Unexpected response body: {response.text}")
            return body

    async def send_message(self, phone: str, message: str) -> dict[str, Any]:
        """Send a text message to a phone number."""
        return await self._request(
            "POST",
            "/send/message",
            json={"phone": phone, "message": message},
        )
