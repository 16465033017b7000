from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

import httpx

from app.config.settings import settings
from app.utils.errors import PushDeliveryError
from app.utils.logging import get_logger

logger = get_logger()

# Expo rejects requests carrying more than 100 messages
EXPO_MAX_BATCH_SIZE = 100


@dataclass
class PushMessage:
    to: str
    title: str
    body: str
    data: Dict[str, Any] = field(default_factory=dict)
    sound: str = "default"
    priority: str = "high"
    channel_id: Optional[str] = None

    def to_payload(self) -> Dict[str, Any]:
        payload = {
            "to": self.to,
            "title": self.title,
            "body": self.body,
            "data": self.data,
            "sound": self.sound,
            "priority": self.priority,
        }
        if self.channel_id:
            payload["channelId"] = self.channel_id
        return payload


@dataclass
class PushTicket:
    status: str
    message: Optional[str] = None
    id: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == "ok"


class ExpoPushProvider:
    """Batch sender for the Expo push HTTP API."""

    def __init__(
        self,
        url: str = settings.EXPO_PUSH_URL,
        access_token: str = settings.EXPO_ACCESS_TOKEN,
        timeout: float = settings.PROVIDER_TIMEOUT_SECONDS,
    ):
        self.url = url
        self.access_token = access_token
        self.timeout = timeout

    def _headers(self) -> Dict[str, str]:
        headers = {
            "Accept": "application/json",
            "Accept-Encoding": "gzip, deflate",
            "Content-Type": "application/json",
        }
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"
        return headers

    async def send_batch(self, messages: Sequence[PushMessage]) -> List[PushTicket]:
        """
        Send messages and return one ticket per message, in order.

        Raises:
            PushDeliveryError: the provider could not be reached or rejected the request
        """
        tickets: List[PushTicket] = []
        if not messages:
            return tickets

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            for offset in range(0, len(messages), EXPO_MAX_BATCH_SIZE):
                chunk = messages[offset : offset + EXPO_MAX_BATCH_SIZE]
                try:
                    response = await client.post(
                        self.url,
                        json=[message.to_payload() for message in chunk],
                        headers=self._headers(),
                    )
                except httpx.RequestError as e:
                    raise PushDeliveryError(f"Push provider unreachable: {e}") from e

                if response.status_code != 200:
                    raise PushDeliveryError(
                        f"Push provider rejected batch: {response.status_code} - {response.text}",
                        status_code=response.status_code,
                    )

                data = response.json().get("data", [])
                for index, _ in enumerate(chunk):
                    item = data[index] if index < len(data) else {}
                    tickets.append(
                        PushTicket(
                            status=item.get("status", "error"),
                            message=item.get("message")
                            or (None if item else "No ticket returned"),
                            id=item.get("id"),
                        )
                    )

        logger.info(
            "Push batch delivered to provider",
            sent=len(messages),
            ok=sum(1 for ticket in tickets if ticket.ok),
        )
        return tickets
