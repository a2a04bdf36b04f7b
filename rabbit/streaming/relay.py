"""
Passthrough relay from the provider's event stream to our client.

The decision between "stream" and "error" is made from the upstream status
alone, before a single success byte is forwarded. After that the upstream
bytes are republished as they arrive, without buffering or rewriting.
"""

import logging
from typing import Any, AsyncIterator, Optional

import httpx
import orjson

from rabbit.config import settings
from rabbit.models.stream import RelayError, RelayOutcome, RelayStream

logger = logging.getLogger(__name__)

EVENT_STREAM = "text/event-stream"

SSE_HEADERS = {
    "Content-Type": EVENT_STREAM,
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",  # Disable nginx buffering
}


def extract_error_message(body: bytes, fallback: str) -> str:
    """Pull ``error.message`` out of a raw provider error body."""
    try:
        data = orjson.loads(body)
    except orjson.JSONDecodeError:
        text = body.decode("utf-8", errors="replace").strip()
        return text or fallback
    return error_message_from(data, fallback)


def error_message_from(data: Any, fallback: str) -> str:
    """``error.message`` (or ``error`` / ``message``) from a parsed body."""
    if isinstance(data, dict):
        error = data.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if isinstance(error, str) and error:
            return error
        if data.get("message"):
            return str(data["message"])
        if isinstance(data.get("detail"), str) and data["detail"]:
            return data["detail"]
    return fallback


async def read_bounded(response: httpx.Response, limit: int) -> bytes:
    """Read at most ``limit`` bytes of a streaming response body."""
    buffer = bytearray()
    async for chunk in response.aiter_bytes():
        buffer.extend(chunk)
        if len(buffer) >= limit:
            logger.debug(f"Error body truncated at {limit} bytes")
            break
    return bytes(buffer[:limit])


async def passthrough(response: httpx.Response) -> AsyncIterator[bytes]:
    """Yield upstream bytes unchanged; always closes the upstream response.

    An upstream failure is re-raised so the outbound response is aborted
    instead of looking like a clean end of stream.
    """
    forwarded = 0
    try:
        async for chunk in response.aiter_bytes():
            forwarded += len(chunk)
            yield chunk
    except httpx.HTTPError as e:
        logger.error(f"Upstream stream failed after {forwarded} bytes: {e}")
        raise
    finally:
        await response.aclose()


async def relay(
    response: httpx.Response, error_body_limit: Optional[int] = None
) -> RelayOutcome:
    """Turn an opened provider response into a RelayOutcome.

    ``response`` must come from a ``stream=True`` send: the status line and
    headers are known, the body is unread.
    """
    limit = settings.error_body_limit if error_body_limit is None else error_body_limit

    if not response.is_success:
        try:
            body = await read_bounded(response, limit)
        except httpx.HTTPError as e:
            logger.warning(f"Could not read upstream error body: {e}")
            body = b""
        finally:
            await response.aclose()

        fallback = response.reason_phrase or f"Upstream returned {response.status_code}"
        message = extract_error_message(body, fallback)
        logger.error(f"Provider error: status={response.status_code}, error={message}")
        return RelayError(message=message, status=response.status_code)

    content_type = response.headers.get("content-type", "")
    if not content_type.startswith(EVENT_STREAM):
        # Gateways that ignore "stream": true answer with one JSON body; keep its
        # content type so the client takes the non-streaming path
        logger.info(f"Upstream did not stream (content-type={content_type or 'none'})")
        headers = {
            "Content-Type": content_type or "application/json",
            "Cache-Control": "no-cache",
        }
        return RelayStream(body=passthrough(response), headers=headers)

    return RelayStream(body=passthrough(response), headers=dict(SSE_HEADERS))
