"""Calendar sync gateway client."""

from typing import Any
from uuid import UUID

import httpx
import structlog

from clinic_scheduling.config import settings

logger = structlog.get_logger(__name__)


class CalendarSyncService:
    """
    Pushes appointment events to the calendar sync gateway over HTTP.

    Without a configured gateway URL every call is a logged no-op. HTTP
    errors propagate so the caller can queue the event for retry.
    """

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize the gateway client.

        Args:
            base_url: Gateway URL, defaults to ``CALENDAR_SYNC_URL``
            api_key: Bearer token, defaults to ``CALENDAR_SYNC_API_KEY``
            timeout: Request timeout in seconds
            transport: HTTP transport override (tests pass ``httpx.MockTransport``)
        """
        self.base_url = (base_url if base_url is not None else settings.calendar_sync_url) or None
        self.api_key = api_key if api_key is not None else settings.calendar_sync_api_key
        self.timeout = timeout or settings.calendar_sync_timeout
        self.transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def enabled(self) -> bool:
        return bool(self.base_url)

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            headers = {"Accept": "application/json"}
            if self.api_key:
                headers["Authorization"] = f"Bearer {self.api_key}"
            self._client = httpx.AsyncClient(
                base_url=self.base_url or "",
                timeout=httpx.Timeout(self.timeout),
                headers=headers,
                transport=self.transport,
            )
        return self._client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def create_event(self, practitioner_id: UUID, payload: dict[str, Any]) -> str | None:
        """
        Create a calendar event for one practitioner.

        Args:
            practitioner_id: Practitioner whose calendar receives the event
            payload: Event body (title, UTC start/end, timezone, appointment id)

        Returns:
            Provider event ID, or None when sync is not configured

        Raises:
            httpx.HTTPError: If the gateway is unreachable or rejects the event
        """
        if not self.enabled:
            logger.info(
                "calendar_sync_skipped",
                practitioner_id=str(practitioner_id),
                appointment_id=payload.get("appointment_id"),
            )
            return None

        response = await self._get_client().post(
            f"/practitioners/{practitioner_id}/events",
            json=payload,
        )
        response.raise_for_status()
        event_id = response.json().get("id")

        logger.info(
            "calendar_event_created",
            practitioner_id=str(practitioner_id),
            appointment_id=payload.get("appointment_id"),
            event_id=event_id,
        )
        return str(event_id) if event_id is not None else None
