"""
Error types for the streaming core, plus HTTP exception helpers for routes.

Usage:
    from rabbit.utils.exceptions import UpstreamHTTPError, raise_bad_request

    raise UpstreamHTTPError("Rate limit reached", status_code=429)
    raise_bad_request("Text is required")
"""

from typing import NoReturn, Optional

from fastapi import HTTPException, status


class LLMServiceError(Exception):
    """Base error surfaced to observers: a message and an optional status code."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    def to_dict(self) -> dict:
        payload = {"message": self.message}
        if self.status_code is not None:
            payload["status"] = self.status_code
        return payload


class UpstreamHTTPError(LLMServiceError):
    """Provider answered with a non-success status before any content was sent."""


class MidStreamIOError(LLMServiceError):
    """The byte source failed after the stream had started.

    Text already delivered to the observer is kept in ``partial_text``.
    """

    def __init__(self, message: str, partial_text: str = ""):
        super().__init__(message)
        self.partial_text = partial_text


class MalformedFrameError(ValueError):
    """A single event payload did not match any known shape."""


class StructuredExtractionFailure(ValueError):
    """No parse strategy produced a usable list."""


def raise_bad_request(detail: str) -> NoReturn:
    """Raise HTTP 400 Bad Request."""
    raise HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail=detail,
    )


def raise_not_found(resource: str, id: int | str | None = None) -> NoReturn:
    """Raise HTTP 404 Not Found."""
    if id is not None:
        detail = f"{resource} with id {id} not found"
    else:
        detail = f"{resource} not found"
    raise HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=detail,
    )
