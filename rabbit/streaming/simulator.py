"""
Simulated typing for responses that arrived in one piece.

Replays a complete text through the same ``on_fragment(fragment, running_text)``
observer the Stream Assembler uses, so callers cannot tell which path fed them.
"""

import asyncio
import logging
import random
from typing import Awaitable, Callable, Optional

from rabbit.config import settings
from rabbit.models.stream import StreamState
from rabbit.streaming.assembler import FragmentObserver, notify

logger = logging.getLogger(__name__)


def split_fragments(text: str, fragment_size: int) -> list[str]:
    """Fixed-size slices of ``text``; the last one may be shorter."""
    if fragment_size < 1:
        raise ValueError(f"fragment_size must be >= 1, got {fragment_size}")
    return [text[i:i + fragment_size] for i in range(0, len(text), fragment_size)]


class TypingSimulator:
    def __init__(
        self,
        min_delay_ms: Optional[int] = None,
        max_delay_ms: Optional[int] = None,
        rng: Optional[random.Random] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.min_delay_ms = settings.typing_delay_min_ms if min_delay_ms is None else min_delay_ms
        self.max_delay_ms = settings.typing_delay_max_ms if max_delay_ms is None else max_delay_ms
        if self.min_delay_ms > self.max_delay_ms:
            raise ValueError("min_delay_ms must not exceed max_delay_ms")
        self._rng = rng or random.Random()
        self._sleep = sleep

    def next_delay(self) -> float:
        """Delay before the next fragment, in seconds."""
        return self._rng.uniform(self.min_delay_ms, self.max_delay_ms) / 1000.0

    async def simulate(
        self,
        full_text: str,
        fragment_size: Optional[int] = None,
        on_fragment: Optional[FragmentObserver] = None,
    ) -> str:
        """Emit ``full_text`` fragment by fragment and return it once done."""
        size = settings.typing_fragment_size if fragment_size is None else fragment_size
        fragments = split_fragments(full_text, size)
        state = StreamState()

        for index, fragment in enumerate(fragments):
            if index > 0:
                await self._sleep(self.next_delay())
            running_text = state.append(fragment)
            if on_fragment is not None:
                await notify(on_fragment, fragment, running_text)

        logger.debug(f"Simulated {len(fragments)} fragments of size {size}")
        return state.close()
