"""
Relay routes for model generation.

POST /api/llm forwards one generation request to the provider. With
``stream: true`` the provider's event stream is passed through untouched;
otherwise the provider's JSON body is returned as-is.
"""

import logging

import httpx
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, StreamingResponse
from starlette.background import BackgroundTask

from rabbit.models.request import LLMRequest
from rabbit.models.stream import RelayError
from rabbit.providers.base import BaseProvider
from rabbit.services.prompts import build_request_body
from rabbit.streaming.relay import error_message_from, relay
from rabbit.utils.exceptions import raise_bad_request

logger = logging.getLogger(__name__)

router = APIRouter()


def get_provider(request: Request) -> BaseProvider:
    """Provider created during app startup."""
    return request.app.state.provider


def error_response(error: RelayError) -> JSONResponse:
    return JSONResponse(error.to_body(), status_code=error.status)


@router.post("/llm")
async def llm(
    request: LLMRequest,
    provider: BaseProvider = Depends(get_provider),
):
    """
    POST /api/llm - generate one take

    Body: {text, contentType, personaId, stream}

    Streaming: returns the provider's `data: <json>` event stream unchanged,
    ending with `data: [DONE]`. Non-streaming: returns
    {choices: [{message: {content}}]}. Errors: {error: {message, status}}.
    """
    if not request.text.strip():
        raise_bad_request("Text is required")

    if not provider.is_configured():
        return error_response(RelayError(message="API key not configured", status=500))

    body = build_request_body(
        request.text,
        request.content_type,
        request.persona_id,
        stream=request.stream,
        preview=request.preview,
    )

    if request.stream:
        try:
            upstream = await provider.open_stream(body)
        except httpx.HTTPError as e:
            logger.error(f"Could not reach provider {provider.name}: {e}")
            return error_response(RelayError(message=f"Provider unreachable: {e}", status=502))

        outcome = await relay(upstream)
        if isinstance(outcome, RelayError):
            return error_response(outcome)

        return StreamingResponse(
            outcome.body,
            status_code=outcome.status,
            headers=outcome.headers,
            # Closes upstream even if the client left before the first byte
            background=BackgroundTask(upstream.aclose),
        )

    try:
        status_code, data = await provider.complete(body)
    except httpx.HTTPError as e:
        logger.error(f"Could not reach provider {provider.name}: {e}")
        return error_response(RelayError(message=f"Provider unreachable: {e}", status=502))

    if status_code >= 400 or "error" in data:
        message = error_message_from(data, f"Error from provider (status {status_code})")
        logger.error(f"Provider error: status={status_code}, error={message}")
        return error_response(
            RelayError(message=message, status=status_code if status_code >= 400 else 500)
        )

    return JSONResponse(data)
