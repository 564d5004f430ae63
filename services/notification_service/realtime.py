"""Real-time channel port and the HTTP adapter for the socket server.

Publishing is fire-and-forget: no delivery acknowledgment is expected.
"""
from abc import ABC, abstractmethod

import httpx
import structlog

from shared.config.settings import REALTIME_URL

logger = structlog.get_logger(__name__)


def tenant_room(tenant_id: str) -> str:
    return f"tenant:{tenant_id}"


def user_room(user_id: str) -> str:
    return f"user:{user_id}"


class RealtimePort(ABC):
    """Abstract interface for real-time publishing."""

    @abstractmethod
    async def publish(self, room: str, event: str, data: dict) -> None:
        ...


class HttpRealtimePublisher(RealtimePort):
    """Posts events to the socket server's emit endpoint."""

    def __init__(self, base_url: str = REALTIME_URL, client: httpx.AsyncClient | None = None, timeout: float = 3.0):
        self.base_url = base_url.rstrip("/")
        self.client = client
        self.timeout = timeout

    async def publish(self, room: str, event: str, data: dict) -> None:
        payload = {"room": room, "event": event, "data": data}
        if self.client is not None:
            resp = await self.client.post(f"{self.base_url}/emit", json=payload, timeout=self.timeout)
        else:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.post(f"{self.base_url}/emit", json=payload)
        resp.raise_for_status()
        logger.debug("Real-time event emitted", room=room, event=event)
