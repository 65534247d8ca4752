from __future__ import annotations

from typing import Protocol
import httpx
from orderdesk.core.config import settings

class MessagingError(RuntimeError):
    pass

class MessagingGateway(Protocol):
    def send_text(self, store_ref: str, phone: str, text: str) -> None:
        """Deliver one text message; raise MessagingError on any failure."""
        ...  # pragma: no cover

class EvolutionGateway:
    """WhatsApp delivery through the Evolution API (one instance per store slug)."""

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        timeout_s: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        base_url = base_url or settings.EVOLUTION_BASE_URL
        api_key = api_key or settings.EVOLUTION_API_KEY
        if not base_url or not api_key:
            raise MessagingError("EVOLUTION_BASE_URL / EVOLUTION_API_KEY are not set")
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout_s = timeout_s if timeout_s is not None else settings.EVOLUTION_TIMEOUT_S
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "apikey": self.api_key,
            "Authorization": f"Bearer {self.api_key}",
        }

    def send_text(self, store_ref: str, phone: str, text: str) -> None:
        url = f"{self.base_url}/message/sendText/{store_ref}"
        try:
            with httpx.Client(timeout=self.timeout_s, transport=self._transport) as c:
                r = c.post(url, json={"number": phone, "text": text}, headers=self._headers())
            r.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise MessagingError(
                f"sendText failed: {e.response.status_code} {e.response.text[:200]}"
            ) from e
        except httpx.HTTPError as e:
            raise MessagingError(f"sendText failed: {e}") from e
