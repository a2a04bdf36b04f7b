"""
Incremental decoder for ``data:``-framed event streams.

Network reads never line up with record boundaries: a read may end in the
middle of a line, or even in the middle of a multi-byte UTF-8 character. The
decoder keeps whatever is incomplete and only hands out frames for lines whose
terminator has been seen.
"""

import codecs
import logging
from typing import List, Optional

import orjson

from rabbit.models.stream import EventFrame
from rabbit.streaming.metrics import StreamMetrics, null_metrics

logger = logging.getLogger(__name__)

# Constants
SSE_DATA_PREFIX = "data: "
SSE_DONE_SIGNAL = "data: [DONE]"
LINE_TERMINATOR = "\n"


class FrameDecoder:
    """Turns arbitrary byte slices into complete EventFrames."""

    def __init__(self, metrics: StreamMetrics = null_metrics):
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        # Text since the last terminator, kept as parts so a long line read in
        # many small slices is joined once rather than on every read
        self._parts: List[str] = []
        self._metrics = metrics

    def feed(self, raw: bytes) -> List[EventFrame]:
        """Consume one slice and return the frames it completed, in order."""
        text = self._decoder.decode(raw)
        if LINE_TERMINATOR not in text:
            if text:
                self._parts.append(text)
            return []

        self._parts.append(text)
        *complete, remainder = "".join(self._parts).split(LINE_TERMINATOR)
        self._parts = [remainder] if remainder else []
        frames = []
        for line in complete:
            frame = self._parse_line(line.rstrip("\r"))
            if frame is not None:
                frames.append(frame)
        return frames

    def flush(self) -> Optional[EventFrame]:
        """Handle whatever is left once the source is exhausted.

        A trailing record without its terminator is emitted only if it is
        well formed (the sentinel, or a payload that parses as JSON). Anything
        else is dropped with a warning so a lost final fragment is visible.
        """
        self._parts.append(self._decoder.decode(b"", final=True))
        line = "".join(self._parts).rstrip("\r")
        self._parts = []
        if not line.strip():
            return None

        if line == SSE_DONE_SIGNAL:
            return EventFrame(is_terminal=True)

        if line.startswith(SSE_DATA_PREFIX):
            payload = line[len(SSE_DATA_PREFIX):]
            try:
                orjson.loads(payload)
            except orjson.JSONDecodeError:
                pass
            else:
                logger.info("Emitting unterminated trailing record at end of stream")
                return EventFrame(payload=payload)

        self._metrics.increment("frames_dropped")
        logger.warning(
            f"Dropped incomplete trailing record at end of stream ({len(line)} chars)"
        )
        return None

    def _parse_line(self, line: str) -> Optional[EventFrame]:
        if line == SSE_DONE_SIGNAL:
            return EventFrame(is_terminal=True)
        if not line.startswith(SSE_DATA_PREFIX):
            # Blank separators, event names, comments and keep-alives
            return None
        self._metrics.increment("frames_decoded")
        return EventFrame(payload=line[len(SSE_DATA_PREFIX):])
