import logging
from typing import Optional, Tuple

import httpx

from rabbit.providers.base import BaseProvider

logger = logging.getLogger(__name__)


class OpenAIProvider(BaseProvider):
    """OpenAI chat-completions provider (or any API speaking the same format).

    ``api_url`` is the full completions endpoint so self-hosted gateways can be
    used without code changes.
    """

    name = "openai"

    def __init__(
        self,
        api_key: Optional[str],
        model: str,
        api_url: str,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(api_key, model)
        self.api_url = api_url

        headers = {"Content-Type": "application/json"}
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"

        self._client = httpx.AsyncClient(
            headers=headers,
            timeout=self.timeout,
            transport=transport,
        )

    async def open_stream(self, body: dict) -> httpx.Response:
        body.setdefault("model", self.model)
        request = self._client.build_request("POST", self.api_url, json=body)
        response = await self._client.send(request, stream=True)
        logger.debug(f"{self.name} stream opened: status={response.status_code}")
        return response

    async def complete(self, body: dict) -> Tuple[int, dict]:
        body.setdefault("model", self.model)
        response = await self._client.post(self.api_url, json=body)
        data = self._parse_body(response.status_code, response.content)
        if not response.is_success:
            logger.error(f"{self.name} API error: status={response.status_code}")
        return response.status_code, data
