from __future__ import annotations

"""Mirror SSE chunks into Redis so a reconnecting client can replay a turn.

This is a thin mirror, not a resumable-stream protocol: chunks are appended
to a list under the stream id while the live response is being written, and
``resume_existing_stream`` replays whatever is stored.
"""

from contextlib import aclosing
import logging
from typing import Any, AsyncIterator, Callable, Optional

import redis.asyncio as redis
from redis.exceptions import RedisError


logger = logging.getLogger(__name__)

KEY_PREFIX = "chatbot:stream:"
STREAM_TTL_SECONDS = 24 * 60 * 60


def _chunks_key(stream_id: str) -> str:
    return f"{KEY_PREFIX}{stream_id}:chunks"


def _done_key(stream_id: str) -> str:
    return f"{KEY_PREFIX}{stream_id}:done"


class ResumableStreamContext:
    def __init__(self, client: Any, *, ttl_seconds: int = STREAM_TTL_SECONDS) -> None:
        self._client = client
        self._ttl = ttl_seconds

    async def resumable_stream(
        self,
        stream_id: str,
        factory: Callable[[], AsyncIterator[str]],
    ) -> AsyncIterator[str]:
        key = _chunks_key(stream_id)
        # Closing this generator must also close the source so its producer is cancelled
        async with aclosing(factory()) as source:
            async for chunk in source:
                try:
                    await self._client.rpush(key, chunk)
                    await self._client.expire(key, self._ttl)
                except (RedisError, OSError) as exc:
                    logger.warning("stream_mirror_failed", extra={"stream_id": stream_id, "error": str(exc)})
                yield chunk
        try:
            await self._client.set(_done_key(stream_id), "1", ex=self._ttl)
        except (RedisError, OSError) as exc:
            logger.warning("stream_mirror_failed", extra={"stream_id": stream_id, "error": str(exc)})

    async def has_stream(self, stream_id: str) -> bool:
        return bool(await self._client.exists(_chunks_key(stream_id)))

    async def resume_existing_stream(self, stream_id: str) -> Optional[AsyncIterator[str]]:
        if not await self.has_stream(stream_id):
            return None
        chunks = await self._client.lrange(_chunks_key(stream_id), 0, -1)

        async def replay() -> AsyncIterator[str]:
            for chunk in chunks:
                yield chunk.decode("utf-8") if isinstance(chunk, bytes) else chunk

        return replay()


def build_stream_context(redis_url: Optional[str]) -> Optional[ResumableStreamContext]:
    if not redis_url:
        logger.info(" > Resumable streams are disabled due to missing REDIS_URL")
        return None
    client = redis.from_url(redis_url, decode_responses=True)
    return ResumableStreamContext(client)
