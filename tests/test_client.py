"""Tests for the consumer-side takes client."""

import asyncio
import random

import httpx
import orjson
import pytest

from rabbit.client import TakesClient, extract_text_from_response
from rabbit.main import create_app
from rabbit.providers.openai import OpenAIProvider
from rabbit.services.followups import PLACEHOLDER_THOUGHTS
from rabbit.streaming.simulator import TypingSimulator
from rabbit.utils.exceptions import LLMServiceError, MidStreamIOError, UpstreamHTTPError


class ChunkedStream(httpx.AsyncByteStream):
    def __init__(self, chunks, error=None):
        self.chunks = chunks
        self.error = error

    async def __aiter__(self):
        for chunk in self.chunks:
            yield chunk
        if self.error is not None:
            raise self.error


async def no_sleep(seconds: float) -> None:
    return None


def event_stream(chunks, error=None) -> httpx.Response:
    return httpx.Response(
        200,
        headers={"content-type": "text/event-stream"},
        stream=ChunkedStream(chunks, error),
    )


def make_client(handler) -> TakesClient:
    return TakesClient(
        base_url="http://relay.test",
        transport=httpx.MockTransport(handler),
        simulator=TypingSimulator(rng=random.Random(0), sleep=no_sleep),
    )


def run_with(handler, method: str, *args, **kwargs):
    async def scenario():
        async with make_client(handler) as client:
            return await getattr(client, method)(*args, **kwargs)

    return asyncio.run(scenario())


def test_end_to_end_split_reads():
    first = b'data: {"choices":[{"delta":{"content":"Hi"}}]}\n\n'
    second = b'data: {"choices":[{"delta":{"content":" there"}}]}\n\n'
    reads = [first + second[:20], second[20:], b"data: [DONE]\n\n"]
    calls = []

    result = run_with(
        lambda request: event_stream(reads),
        "stream_text",
        "hello",
        on_fragment=lambda f, t: calls.append((f, t)),
    )

    assert calls == [("Hi", "Hi"), (" there", "Hi there")]
    assert result == "Hi there"


def test_request_payload_uses_relay_field_names():
    seen = {}

    def handler(request):
        seen.update(orjson.loads(request.content))
        return event_stream([b"data: [DONE]\n\n"])

    run_with(handler, "stream_text", "hello", "synapse", "nietzsche")
    assert seen == {"text": "hello", "contentType": "synapse", "personaId": "nietzsche", "stream": True}


def test_json_reply_falls_back_to_simulated_typing():
    payload = {"choices": [{"message": {"content": "hello world"}}]}
    calls = []

    result = run_with(
        lambda request: httpx.Response(200, json=payload),
        "stream_text",
        "hi",
        on_fragment=lambda f, t: calls.append((f, t)),
    )

    assert [f for f, _ in calls] == ["hel", "lo ", "wor", "ld"]
    assert calls[-1][1] == result == "hello world"


def test_json_reply_without_typing_is_one_fragment():
    payload = {"choices": [{"message": {"content": "all at once"}}]}
    calls = []

    run_with(
        lambda request: httpx.Response(200, json=payload),
        "stream_text",
        "hi",
        on_fragment=lambda f, t: calls.append((f, t)),
        simulate_typing=False,
    )

    assert calls == [("all at once", "all at once")]


def test_error_before_content_raises_upstream_error():
    calls = []
    with pytest.raises(UpstreamHTTPError) as exc_info:
        run_with(
            lambda request: httpx.Response(500, json={"error": {"message": "x", "status": 500}}),
            "stream_text",
            "hi",
            on_fragment=lambda f, t: calls.append(f),
        )
    assert exc_info.value.message == "x"
    assert exc_info.value.status_code == 500
    assert calls == []


def test_stream_break_keeps_partial_text():
    calls = []
    with pytest.raises(MidStreamIOError) as exc_info:
        run_with(
            lambda request: event_stream(
                [b'data: {"choices":[{"delta":{"content":"Part"}}]}\n\n'],
                error=httpx.ReadError("reset"),
            ),
            "stream_text",
            "hi",
            on_fragment=lambda f, t: calls.append(t),
        )
    assert exc_info.value.partial_text == "Part"
    assert calls == ["Part"]


def test_generate_text():
    payload = {"choices": [{"message": {"content": "Preview text"}}]}
    assert run_with(lambda request: httpx.Response(200, json=payload), "generate_text", "hi") == "Preview text"


def test_generate_takes_runs_each_take_independently():
    def handler(request):
        content_type = orjson.loads(request.content)["contentType"]
        if content_type == "synapse":
            return httpx.Response(502, json={"error": {"message": "upstream down"}})
        return event_stream(
            [
                ('data: {"choices":[{"delta":{"content":"%s "}}]}\n\n' % content_type).encode(),
                b'data: {"choices":[{"delta":{"content":"done"}}]}\n\n',
                b"data: [DONE]\n\n",
            ]
        )

    fragments = {}

    def observer(content_type, fragment, running_text):
        fragments.setdefault(content_type, []).append(running_text)

    results = run_with(handler, "generate_takes", "hello", on_fragment=observer)

    by_type = {r.content_type: r for r in results}
    assert [r.content_type for r in results] == ["expansion", "contrarian", "synapse"]
    assert by_type["expansion"].text == "expansion done"
    assert by_type["contrarian"].text == "contrarian done"
    assert not by_type["synapse"].ok
    assert by_type["synapse"].error == "upstream down"
    assert fragments["expansion"] == ["expansion ", "expansion done"]
    assert "synapse" not in fragments


def test_related_thoughts_from_json_object():
    seen = {}

    def handler(request):
        seen.update(orjson.loads(request.content))
        content = '{"thoughts": ["Why?", "How?", "What if?", "Who else?", "Extra?"]}'
        return httpx.Response(200, json={"choices": [{"message": {"content": content}}]})

    result = run_with(handler, "generate_related_thoughts", "y" * 1000)

    assert result == ["Why?", "How?", "What if?", "Who else?"]
    assert seen["contentType"] == "relatedThoughts"
    assert seen["stream"] is False
    assert seen["text"] == "y" * 800 + "..."


def test_related_thoughts_unparseable_gives_placeholders():
    payload = {"choices": [{"message": {"content": "ok"}}]}
    result = run_with(lambda request: httpx.Response(200, json=payload), "generate_related_thoughts", "text")
    assert result == list(PLACEHOLDER_THOUGHTS)


def test_related_thoughts_request_failure_is_empty():
    result = run_with(
        lambda request: httpx.Response(500, json={"error": {"message": "boom"}}),
        "generate_related_thoughts",
        "text",
    )
    assert result == []
    assert run_with(lambda request: httpx.Response(200, json={}), "generate_related_thoughts", "  ") == []


def test_verify_connection():
    ok = {"status": "ok", "configured": True, "message": "API configured correctly"}
    assert run_with(lambda request: httpx.Response(200, json=ok), "verify_connection") is True

    missing = {"status": "error", "configured": False, "message": "API key not configured"}
    assert run_with(lambda request: httpx.Response(200, json=missing), "verify_connection") is False

    def unreachable(request):
        raise httpx.ConnectError("refused", request=request)

    assert run_with(unreachable, "verify_connection") is False


def test_extract_text_from_response():
    assert extract_text_from_response({"choices": [{"message": {"content": "x"}}]}) == "x"
    assert extract_text_from_response({"choices": []}) == ""
    assert extract_text_from_response({}) == ""


def test_through_relay_app():
    upstream = (
        b'data: {"choices":[{"delta":{"role":"assistant"}}]}\n\n'
        b'data: {"choices":[{"delta":{"content":"Through "}}]}\n\n'
        b'data: {"choices":[{"delta":{"content":"the relay"}}]}\n\n'
        b"data: [DONE]\n\n"
    )
    app = create_app()
    app.state.provider = OpenAIProvider(
        api_key="sk-test",
        model="gpt-4o-mini",
        api_url="https://upstream.test/v1/chat/completions",
        transport=httpx.MockTransport(
            lambda request: httpx.Response(200, headers={"content-type": "text/event-stream"}, content=upstream)
        ),
    )
    calls = []

    async def scenario():
        async with TakesClient(
            base_url="http://relay.test", transport=httpx.ASGITransport(app=app)
        ) as client:
            return await client.stream_text("hello", on_fragment=lambda f, t: calls.append(t))

    assert asyncio.run(scenario()) == "Through the relay"
    assert calls == ["Through ", "Through the relay"]


def test_json_upstream_is_typed_out_through_relay_app():
    payload = {"choices": [{"message": {"content": "Full answer"}}]}
    app = create_app()
    app.state.provider = OpenAIProvider(
        api_key="sk-test",
        model="gpt-4o-mini",
        api_url="https://upstream.test/v1/chat/completions",
        transport=httpx.MockTransport(lambda request: httpx.Response(200, json=payload)),
    )
    calls = []

    async def scenario():
        async with TakesClient(
            base_url="http://relay.test",
            transport=httpx.ASGITransport(app=app),
            simulator=TypingSimulator(rng=random.Random(0), sleep=no_sleep),
        ) as client:
            return await client.stream_text("hello", on_fragment=lambda f, t: calls.append(f))

    assert asyncio.run(scenario()) == "Full answer"
    assert calls == ["Ful", "l a", "nsw", "er"]


def test_unreachable_relay_raises_service_error():
    def unreachable(request):
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(LLMServiceError) as exc_info:
        run_with(unreachable, "stream_text", "hi")
    assert exc_info.value.message == "refused"

    with pytest.raises(LLMServiceError):
        run_with(unreachable, "generate_text", "hi")


def test_connect_failure_is_isolated_to_its_take():
    def handler(request):
        content_type = orjson.loads(request.content)["contentType"]
        if content_type == "contrarian":
            raise httpx.ConnectError("connection refused", request=request)
        return event_stream(
            [
                ('data: {"choices":[{"delta":{"content":"%s"}}]}\n\n' % content_type).encode(),
                b"data: [DONE]\n\n",
            ]
        )

    results = run_with(handler, "generate_takes", "hello")

    by_type = {r.content_type: r for r in results}
    assert len(results) == 3
    assert by_type["expansion"].text == "expansion"
    assert by_type["synapse"].text == "synapse"
    assert not by_type["contrarian"].ok
    assert by_type["contrarian"].error == "connection refused"


def test_related_thoughts_unreachable_is_empty():
    def unreachable(request):
        raise httpx.ConnectTimeout("timed out", request=request)

    assert run_with(unreachable, "generate_related_thoughts", "text") == []


def test_generate_preview_sends_preview_flag():
    seen = {}

    def handler(request):
        seen.update(orjson.loads(request.content))
        return httpx.Response(200, json={"choices": [{"message": {"content": "A teaser."}}]})

    assert run_with(handler, "generate_preview", "hello", "contrarian") == "A teaser."
    assert seen["preview"] is True
    assert seen["stream"] is False
    assert seen["contentType"] == "contrarian"
