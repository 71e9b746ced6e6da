from __future__ import annotations

"""Outbound stream plumbing for a chat turn.

A :class:`DeltaWriter` is the single channel a turn writes parts into. The
producer (model loop, tools, document handlers) calls ``write``; the HTTP
response consumes it with ``async for``. Parts are plain dicts with a
``type`` key following the UI message stream protocol.
"""

import asyncio
import json
import re
from typing import Any, AsyncIterable, AsyncIterator, Dict, List


StreamPart = Dict[str, Any]

SSE_DONE = "data: [DONE]\n\n"

UI_MESSAGE_STREAM_HEADERS = {
    "Content-Type": "text/event-stream",
    "Cache-Control": "no-cache, no-transform",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
    "x-vercel-ai-ui-message-stream": "v1",
}

_CLOSED = object()


def sse_encode(part: StreamPart) -> str:
    return f"data: {json.dumps(part, ensure_ascii=False)}\n\n"


def data_part(name: str, data: Any, *, transient: bool = False) -> StreamPart:
    part: StreamPart = {"type": f"data-{name}", "data": data}
    if transient:
        part["transient"] = True
    return part


class DeltaWriter:
    """Ordered single-consumer channel of stream parts."""

    def __init__(self) -> None:
        self._queue: asyncio.Queue[Any] = asyncio.Queue()
        self._closed = False
        self.count = 0

    @property
    def closed(self) -> bool:
        return self._closed

    def write(self, part: StreamPart) -> None:
        if self._closed:
            raise RuntimeError("write on closed DeltaWriter")
        if not isinstance(part, dict) or "type" not in part:
            raise ValueError("stream part must be a dict with a 'type' key")
        self.count += 1
        self._queue.put_nowait(part)

    async def merge(self, parts: AsyncIterable[StreamPart]) -> None:
        async for part in parts:
            self.write(part)

    def close(self) -> None:
        if self._closed:
            raise RuntimeError("DeltaWriter already closed")
        self._closed = True
        self._queue.put_nowait(_CLOSED)

    async def __aiter__(self) -> AsyncIterator[StreamPart]:
        while True:
            item = await self._queue.get()
            if item is _CLOSED:
                return
            yield item


class UIMessageWriter:
    """Writer handed to tools and handlers during one assistant message.

    Forwards every part to the underlying channel and keeps the non-transient
    ``data-*`` parts so they can be persisted with the assistant message.
    """

    def __init__(self, channel: DeltaWriter) -> None:
        self._channel = channel
        self.persisted_parts: List[StreamPart] = []
        self.count = 0

    def write(self, part: StreamPart) -> None:
        self._channel.write(part)
        self.count += 1
        if str(part.get("type", "")).startswith("data-") and not part.get("transient"):
            self.persisted_parts.append({"type": part["type"], "data": part.get("data")})

    def take_persisted(self) -> List[StreamPart]:
        parts, self.persisted_parts = self.persisted_parts, []
        return parts


_WORD_CHUNK = re.compile(r"\s*\S+\s+")


async def smooth_words(chunks: AsyncIterable[str]) -> AsyncIterator[str]:
    """Re-chunk a text stream so that each emitted piece ends on a word boundary."""
    buffer = ""
    async for chunk in chunks:
        buffer += chunk
        while True:
            match = _WORD_CHUNK.match(buffer)
            if match is None:
                break
            yield match.group(0)
            buffer = buffer[match.end():]
    if buffer:
        yield buffer


def error_part(text: str) -> StreamPart:
    return {"type": "error", "errorText": text}
