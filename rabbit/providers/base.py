import logging
from abc import ABC, abstractmethod
from typing import Optional, Tuple

import httpx
import orjson

from rabbit.config import settings

logger = logging.getLogger(__name__)


class BaseProvider(ABC):
    """Abstract base class for the upstream model provider"""

    name: str  # Provider identifier, used in logs

    def __init__(self, api_key: Optional[str], model: str):
        self.api_key = api_key
        self.model = model
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def timeout(self) -> float:
        """Get the configured provider timeout in seconds."""
        return float(settings.provider_timeout)

    @abstractmethod
    async def open_stream(self, body: dict) -> httpx.Response:
        """Send a streaming request and return once status and headers are in.

        The body is left unread; the caller owns closing the response.
        """
        pass

    @abstractmethod
    async def complete(self, body: dict) -> Tuple[int, dict]:
        """Send a non-streaming request. Returns (status_code, parsed JSON body)."""
        pass

    async def cleanup(self):
        """Cleanup HTTP client resources."""
        if self._client:
            await self._client.aclose()
            self._client = None

    def is_configured(self) -> bool:
        """Check if provider has valid API key"""
        return bool(self.api_key)

    def _parse_body(self, status_code: int, content: bytes) -> dict:
        """Parse a JSON body, wrapping non-JSON errors in the usual error shape."""
        try:
            data = orjson.loads(content)
        except orjson.JSONDecodeError as e:
            logger.debug(f"JSON parse error in {self.name}: {e}")
            text = content.decode("utf-8", errors="replace").strip()
            return {"error": {"message": text or f"Invalid response from {self.name} (status {status_code})"}}
        if not isinstance(data, dict):
            return {"error": {"message": f"Unexpected response shape from {self.name}"}}
        return data
