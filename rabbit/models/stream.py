"""
Records passed between the stages of the streaming core.

Frame Decoder -> EventFrame -> Delta Extractor -> DeltaFragment -> StreamState
"""

from dataclasses import dataclass, field
from typing import AsyncIterator, Dict, Optional, Union


@dataclass(frozen=True)
class EventFrame:
    """One complete ``data:`` line from an event stream."""

    payload: Optional[str] = None
    is_terminal: bool = False


@dataclass(frozen=True)
class DeltaFragment:
    """Incremental text attributable to one frame"""

    text: str


@dataclass
class StreamState:
    """Accumulated text for a single request. Append-only until closed."""

    running_text: str = ""
    closed: bool = False

    def append(self, text: str) -> str:
        if self.closed:
            raise RuntimeError("StreamState is closed")
        self.running_text += text
        return self.running_text

    def close(self) -> str:
        self.closed = True
        return self.running_text


@dataclass
class RelayStream:
    """Successful relay outcome: the upstream bytes, untouched."""

    body: AsyncIterator[bytes]
    headers: Dict[str, str] = field(default_factory=dict)
    status: int = 200


@dataclass
class RelayError:
    """Failed relay outcome, decided before any byte was forwarded."""

    message: str
    status: int

    def to_body(self) -> dict:
        return {"error": {"message": self.message, "status": self.status}}


RelayOutcome = Union[RelayStream, RelayError]


@dataclass
class TakeResult:
    """Outcome of one take generated as part of a parallel batch"""

    content_type: str
    text: str = ""
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None
