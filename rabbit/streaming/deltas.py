"""
Extracts incremental text from a single event payload.

Providers send two shapes on the same channel: streaming chunks carry
``choices[0].delta.content``, some gateways send the whole answer as
``choices[0].message.content``. The payload is validated into one of those
variants, delta first, and anything else is treated as a non-content frame.
"""

import logging
from typing import List, Optional

import orjson
from pydantic import BaseModel, ValidationError

from rabbit.models.stream import DeltaFragment
from rabbit.streaming.metrics import StreamMetrics, null_metrics
from rabbit.utils.exceptions import MalformedFrameError

logger = logging.getLogger(__name__)


class ContentPart(BaseModel):
    content: Optional[str] = None


class Choice(BaseModel):
    delta: Optional[ContentPart] = None
    message: Optional[ContentPart] = None


class ChunkPayload(BaseModel):
    choices: List[Choice] = []


def decode_payload(payload: str) -> Optional[DeltaFragment]:
    """Decode one payload into a fragment, or None for non-content frames.

    Raises:
        MalformedFrameError: payload is not JSON or does not fit the schema
    """
    try:
        chunk = ChunkPayload.model_validate(orjson.loads(payload))
    except (orjson.JSONDecodeError, ValidationError) as e:
        raise MalformedFrameError(str(e)) from e

    if not chunk.choices:
        return None

    choice = chunk.choices[0]
    for variant in (choice.delta, choice.message):
        if variant is not None and variant.content:
            return DeltaFragment(text=variant.content)
    return None


class DeltaExtractor:
    """Never-raising wrapper around ``decode_payload``."""

    def __init__(self, metrics: StreamMetrics = null_metrics):
        self._metrics = metrics

    def extract(self, payload: Optional[str]) -> Optional[str]:
        if not payload:
            return None
        try:
            fragment = decode_payload(payload)
        except MalformedFrameError as e:
            self._metrics.increment("frames_malformed")
            logger.debug(f"Skipping malformed frame: {e}")
            return None

        if fragment is None:
            self._metrics.increment("frames_without_content")
            return None
        return fragment.text
