from rabbit.streaming.assembler import ResponseByteSource, StreamAssembler
from rabbit.streaming.deltas import DeltaExtractor
from rabbit.streaming.frames import FrameDecoder
from rabbit.streaming.relay import SSE_HEADERS, relay
from rabbit.streaming.simulator import TypingSimulator

__all__ = [
    "DeltaExtractor",
    "FrameDecoder",
    "ResponseByteSource",
    "SSE_HEADERS",
    "StreamAssembler",
    "TypingSimulator",
    "relay",
]
