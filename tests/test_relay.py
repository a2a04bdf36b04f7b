"""Tests for the passthrough relay."""

import asyncio

import httpx
import pytest

from rabbit.models.stream import RelayError, RelayStream
from rabbit.streaming.relay import SSE_HEADERS, extract_error_message, relay

UPSTREAM = "https://upstream.test/v1/chat/completions"


class ChunkedStream(httpx.AsyncByteStream):
    """Upstream body delivered in fixed chunks, optionally failing midway."""

    def __init__(self, chunks, error=None):
        self.chunks = chunks
        self.error = error

    async def __aiter__(self):
        for chunk in self.chunks:
            yield chunk
        if self.error is not None:
            raise self.error


async def open_upstream(handler) -> httpx.Response:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    request = client.build_request("POST", UPSTREAM, json={"stream": True})
    return await client.send(request, stream=True)


async def collect(body) -> bytes:
    return b"".join([chunk async for chunk in body])


def test_upstream_error_maps_to_relay_error():
    async def scenario():
        response = await open_upstream(
            lambda request: httpx.Response(500, json={"error": {"message": "x"}})
        )
        outcome = await relay(response)
        return response, outcome

    response, outcome = asyncio.run(scenario())
    assert outcome == RelayError(message="x", status=500)
    assert outcome.to_body() == {"error": {"message": "x", "status": 500}}
    assert response.is_closed


def test_non_json_error_body_is_used_as_message():
    async def scenario():
        response = await open_upstream(lambda request: httpx.Response(502, text="Bad gateway upstream"))
        return await relay(response)

    assert asyncio.run(scenario()) == RelayError(message="Bad gateway upstream", status=502)


def test_empty_error_body_falls_back_to_reason_phrase():
    async def scenario():
        response = await open_upstream(lambda request: httpx.Response(429))
        return await relay(response)

    assert asyncio.run(scenario()) == RelayError(message="Too Many Requests", status=429)


def test_error_body_read_is_bounded():
    async def scenario():
        response = await open_upstream(
            lambda request: httpx.Response(500, stream=ChunkedStream([b"a" * 40, b"b" * 40]))
        )
        return await relay(response, error_body_limit=50)

    outcome = asyncio.run(scenario())
    assert outcome.message == "a" * 40 + "b" * 10


def test_success_passes_bytes_through_untouched():
    chunks = [b'data: {"choices":[{"delta":{"content":"Hi"}}]}\n\n', b"data: [DO", b"NE]\n\n"]

    async def scenario():
        response = await open_upstream(
            lambda request: httpx.Response(
                200,
                headers={"content-type": "text/event-stream"},
                stream=ChunkedStream(chunks),
            )
        )
        outcome = await relay(response)
        body = await collect(outcome.body)
        return response, outcome, body

    response, outcome, body = asyncio.run(scenario())
    assert isinstance(outcome, RelayStream)
    assert outcome.headers == SSE_HEADERS
    assert outcome.headers["X-Accel-Buffering"] == "no"
    assert body == b"".join(chunks)
    assert response.is_closed


def test_mid_stream_failure_aborts_outbound_stream():
    async def scenario():
        response = await open_upstream(
            lambda request: httpx.Response(
                200,
                stream=ChunkedStream([b"data: {}\n\n"], error=httpx.ReadError("connection lost")),
            )
        )
        outcome = await relay(response)
        received = []
        with pytest.raises(httpx.ReadError):
            async for chunk in outcome.body:
                received.append(chunk)
        return response, received

    response, received = asyncio.run(scenario())
    assert received == [b"data: {}\n\n"]
    assert response.is_closed


def test_extract_error_message_shapes():
    assert extract_error_message(b'{"error": {"message": "quota"}}', "fb") == "quota"
    assert extract_error_message(b'{"error": "plain"}', "fb") == "plain"
    assert extract_error_message(b'{"message": "top level"}', "fb") == "top level"
    assert extract_error_message(b"[]", "fb") == "fb"
    assert extract_error_message(b"", "fb") == "fb"


def test_non_streaming_upstream_keeps_its_content_type():
    body = b'{"choices":[{"message":{"content":"Full answer"}}]}'

    async def scenario():
        response = await open_upstream(
            lambda request: httpx.Response(
                200, headers={"content-type": "application/json"}, content=body
            )
        )
        outcome = await relay(response)
        return response, outcome, await collect(outcome.body)

    response, outcome, relayed = asyncio.run(scenario())
    assert isinstance(outcome, RelayStream)
    assert outcome.headers["Content-Type"] == "application/json"
    assert "X-Accel-Buffering" not in outcome.headers
    assert relayed == body
    assert response.is_closed
