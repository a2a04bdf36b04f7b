"""
Stream Assembler: reads a byte source to the end and reports text as it grows.

The read loop is strictly sequential. Each read is a suspension point; the
frames it completes are decoded and handed to the observer before the next
read, so fragments arrive in byte order and ``running_text`` only ever grows.
"""

import inspect
import logging
from typing import AsyncIterator, Awaitable, Callable, Optional, Protocol, Union

from rabbit.models.stream import StreamState
from rabbit.streaming.deltas import DeltaExtractor
from rabbit.streaming.frames import FrameDecoder
from rabbit.streaming.metrics import StreamMetrics, null_metrics
from rabbit.utils.exceptions import MidStreamIOError

logger = logging.getLogger(__name__)

# on_fragment(fragment, running_text); may be a coroutine function
FragmentObserver = Callable[[str, str], Union[None, Awaitable[None]]]


class ByteSource(Protocol):
    """An async byte iterator that can be released early."""

    def __aiter__(self) -> AsyncIterator[bytes]: ...

    async def aclose(self) -> None: ...


class ResponseByteSource:
    """Adapts an httpx streaming response to ``ByteSource``.

    Closing it closes the response, which returns the connection to the pool
    (or drops it) even when the body has not been read to the end.
    """

    def __init__(self, response):
        self._response = response

    def __aiter__(self) -> AsyncIterator[bytes]:
        return self._response.aiter_bytes()

    async def aclose(self) -> None:
        await self._response.aclose()


async def notify(observer: FragmentObserver, fragment: str, running_text: str) -> None:
    """Call an observer and wait for it if it returned an awaitable."""
    result = observer(fragment, running_text)
    if inspect.isawaitable(result):
        await result


class StreamAssembler:
    """Owns one request's read loop and its StreamState."""

    def __init__(self, metrics: StreamMetrics = null_metrics):
        self._metrics = metrics
        self._decoder = FrameDecoder(metrics)
        self._extractor = DeltaExtractor(metrics)
        self.state = StreamState()

    async def run(
        self,
        source: ByteSource,
        on_fragment: Optional[FragmentObserver] = None,
    ) -> str:
        """Assemble the full text from ``source``.

        Returns on the terminal frame or when the source is exhausted. The
        source is closed on every exit path; errors raised by ``on_fragment``
        propagate unchanged once the source has been released.

        Raises:
            MidStreamIOError: reading from the source failed
        """
        if self.state.closed:
            raise RuntimeError("StreamAssembler instances are single-use")

        try:
            reader = source.__aiter__()
            while True:
                try:
                    raw = await reader.__anext__()
                except StopAsyncIteration:
                    break
                except Exception as e:
                    self._metrics.increment("read_errors")
                    logger.error(f"Byte source failed mid-stream: {e}")
                    raise MidStreamIOError(
                        str(e) or type(e).__name__,
                        partial_text=self.state.running_text,
                    ) from e

                self._metrics.increment("reads")
                for frame in self._decoder.feed(raw):
                    if frame.is_terminal:
                        return self.state.close()
                    await self._deliver(frame.payload, on_fragment)

            trailing = self._decoder.flush()
            if trailing is not None and not trailing.is_terminal:
                await self._deliver(trailing.payload, on_fragment)
            return self.state.close()
        finally:
            self.state.closed = True
            await source.aclose()

    async def _deliver(
        self, payload: Optional[str], on_fragment: Optional[FragmentObserver]
    ) -> None:
        text = self._extractor.extract(payload)
        if not text:
            return
        running_text = self.state.append(text)
        self._metrics.increment("fragments")
        if on_fragment is not None:
            await notify(on_fragment, text, running_text)
