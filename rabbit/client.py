"""
Consumer-side client for the relay.

Calls ``POST /api/llm`` and turns the reply into ``on_fragment`` callbacks:
an event stream goes through the Stream Assembler, a plain JSON reply is
replayed through the Typing Simulator. Callers see the same callback shape
either way.
"""

import asyncio
import logging
from typing import Callable, Iterable, List, Optional

import httpx
import orjson

from rabbit.config import settings
from rabbit.models.stream import TakeResult
from rabbit.services.followups import extract_list
from rabbit.services.prompts import RELATED_THOUGHTS, TAKE_TYPES, truncate_for_related
from rabbit.streaming.assembler import FragmentObserver, ResponseByteSource, StreamAssembler, notify
from rabbit.streaming.metrics import StreamMetrics, null_metrics
from rabbit.streaming.relay import EVENT_STREAM, error_message_from
from rabbit.streaming.simulator import TypingSimulator
from rabbit.utils.exceptions import LLMServiceError, UpstreamHTTPError

logger = logging.getLogger(__name__)


def extract_text_from_response(data: dict) -> str:
    """``choices[0].message.content`` or an empty string"""
    try:
        content = data["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError):
        return ""
    return content if isinstance(content, str) else ""


class TakesClient:
    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        transport: Optional[httpx.AsyncBaseTransport] = None,
        simulator: Optional[TypingSimulator] = None,
        metrics: StreamMetrics = null_metrics,
        timeout: Optional[float] = None,
    ):
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            transport=transport,
            timeout=float(settings.provider_timeout) if timeout is None else timeout,
        )
        self._simulator = simulator or TypingSimulator()
        self._metrics = metrics

    async def __aenter__(self) -> "TakesClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    def _payload(
        self, text: str, content_type: str, persona_id: Optional[str], stream: bool
    ) -> dict:
        return {
            "text": text,
            "contentType": content_type,
            "personaId": persona_id,
            "stream": stream,
        }

    def _raise_for_error(self, status_code: int, data: dict) -> None:
        if status_code >= 400 or "error" in data:
            message = error_message_from(data, f"Request failed with status {status_code}")
            raise UpstreamHTTPError(message, status_code=status_code)

    @staticmethod
    def _transport_error(error: httpx.HTTPError) -> LLMServiceError:
        logger.error(f"Relay request failed: {error!r}")
        return LLMServiceError(str(error) or type(error).__name__)

    async def generate_text(
        self,
        text: str,
        content_type: str = "expansion",
        persona_id: Optional[str] = None,
        preview: bool = False,
    ) -> str:
        """Non-streaming generation.

        Raises:
            UpstreamHTTPError: the relay answered with an error
            LLMServiceError: the relay could not be reached
        """
        payload = self._payload(text, content_type, persona_id, False)
        if preview:
            payload["preview"] = True
        try:
            response = await self._client.post("/api/llm", json=payload)
        except httpx.HTTPError as e:
            raise self._transport_error(e) from e
        data = self._parse_json(response)
        self._raise_for_error(response.status_code, data)
        return extract_text_from_response(data)

    async def generate_preview(
        self, text: str, content_type: str = "expansion", persona_id: Optional[str] = None
    ) -> str:
        """One or two sentence teaser for a take, generated without streaming."""
        return await self.generate_text(text, content_type, persona_id, preview=True)

    async def stream_text(
        self,
        text: str,
        content_type: str = "expansion",
        persona_id: Optional[str] = None,
        on_fragment: Optional[FragmentObserver] = None,
        simulate_typing: bool = True,
    ) -> str:
        """Generate one take, reporting text through ``on_fragment`` as it grows.

        Raises:
            UpstreamHTTPError: the relay answered with an error before any text
            MidStreamIOError: the stream broke after text was delivered
            LLMServiceError: the relay could not be reached
        """
        request = self._client.build_request(
            "POST", "/api/llm", json=self._payload(text, content_type, persona_id, True)
        )
        try:
            response = await self._client.send(request, stream=True)
        except httpx.HTTPError as e:
            raise self._transport_error(e) from e

        content_type_header = response.headers.get("content-type", "")
        if response.is_success and content_type_header.startswith(EVENT_STREAM):
            assembler = StreamAssembler(self._metrics)
            return await assembler.run(ResponseByteSource(response), on_fragment)

        # Streaming failed or not supported, fall back to the JSON body
        try:
            await response.aread()
        except httpx.HTTPError as e:
            raise self._transport_error(e) from e
        finally:
            await response.aclose()
        data = self._parse_json(response)
        self._raise_for_error(response.status_code, data)
        full_text = extract_text_from_response(data)

        if on_fragment is None:
            return full_text
        if simulate_typing:
            return await self._simulator.simulate(full_text, on_fragment=on_fragment)
        await notify(on_fragment, full_text, full_text)
        return full_text

    async def generate_takes(
        self,
        text: str,
        persona_id: Optional[str] = None,
        content_types: Iterable[str] = TAKE_TYPES,
        on_fragment: Optional[Callable[[str, str, str], None]] = None,
    ) -> List[TakeResult]:
        """Generate several takes concurrently, one independent stream each.

        ``on_fragment`` receives ``(content_type, fragment, running_text)``.
        A failing take is reported in its TakeResult and does not cancel the others.
        """

        async def run_take(content_type: str) -> TakeResult:
            def observer(fragment: str, running_text: str):
                if on_fragment is not None:
                    return on_fragment(content_type, fragment, running_text)
                return None

            try:
                result = await self.stream_text(text, content_type, persona_id, observer)
            except LLMServiceError as e:
                logger.warning(f"Take '{content_type}' failed: {e.message}")
                return TakeResult(content_type=content_type, error=e.message)
            return TakeResult(content_type=content_type, text=result)

        return list(await asyncio.gather(*(run_take(t) for t in content_types)))

    async def generate_related_thoughts(self, content: str) -> List[str]:
        """Up to four follow-up prompts for a finished take.

        Returns an empty list when there is nothing to base them on or the
        request fails; parse failures fall back to placeholder thoughts.
        """
        if not content or not content.strip():
            logger.warning("generate_related_thoughts called with empty content")
            return []

        try:
            raw = await self.generate_text(truncate_for_related(content), RELATED_THOUGHTS)
        except LLMServiceError as e:
            logger.error(f"Error generating related thoughts: {e}")
            return []

        if not raw:
            logger.error("Empty response received for related thoughts")
            return []
        return extract_list(raw)

    async def verify_connection(self) -> bool:
        """True if the relay is reachable and reports a configured provider."""
        try:
            response = await self._client.get("/api/llm/status")
        except httpx.HTTPError as e:
            logger.error(f"Error checking server connection: {e}")
            return False
        if not response.is_success:
            return False
        return bool(self._parse_json(response).get("configured"))

    @staticmethod
    def _parse_json(response: httpx.Response) -> dict:
        try:
            data = orjson.loads(response.content)
        except orjson.JSONDecodeError:
            text = response.content.decode("utf-8", errors="replace").strip()
            return {"error": {"message": text or f"Invalid response (status {response.status_code})"}}
        if not isinstance(data, dict):
            return {"error": {"message": "Unexpected response shape"}}
        return data
