from dataclasses import dataclass
from typing import Dict

import httpx

from app.config.settings import settings
from app.utils.errors import EmailDeliveryError


@dataclass
class OutgoingEmail:
    to: str
    subject: str
    html: str
    text: str


class ResendEmailProvider:
    """Sends a single email through the Resend HTTP API."""

    def __init__(
        self,
        api_url: str = settings.RESEND_API_URL,
        api_key: str = settings.RESEND_API_KEY,
        sender: str = settings.EMAIL_FROM,
        timeout: float = settings.PROVIDER_TIMEOUT_SECONDS,
    ):
        self.api_url = api_url
        self.api_key = api_key
        self.sender = sender
        self.timeout = timeout

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    async def send(self, email: OutgoingEmail) -> str:
        """
        Deliver `email` and return the provider message id.

        Raises:
            EmailDeliveryError: missing credentials, transport failure or provider rejection
        """
        if not self.api_key:
            raise EmailDeliveryError("RESEND_API_KEY is not configured")

        payload = {
            "from": self.sender,
            "to": [email.to],
            "subject": email.subject,
            "html": email.html,
            "text": email.text,
        }

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            try:
                response = await client.post(
                    self.api_url, json=payload, headers=self._headers()
                )
            except httpx.RequestError as e:
                raise EmailDeliveryError(f"Email provider unreachable: {e}") from e

        if response.status_code >= 400:
            raise EmailDeliveryError(
                f"Email provider rejected message: {response.status_code} - {response.text}",
                status_code=response.status_code,
            )

        message_id = response.json().get("id")
        if not message_id:
            raise EmailDeliveryError("Email provider returned no message id")
        return message_id
