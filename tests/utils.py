from __future__ import annotations

import asyncio
import json
from typing import Any, Dict, List, Optional, Sequence, Tuple
import uuid

from src.chatbot.context import AppContext, build_context
from src.chatbot.security.auth import User, create_access_token
from src.chatbot.services.llm import StepResult, TextDelta, ToolCall


TEST_ENV = {"JWT_SECRET": "test-secret", "CHATBOT_MAX_STEPS": "5"}


class ScriptedModel:
    """Stands in for ``LanguageModel`` with canned outputs.

    ``steps`` is consumed one entry per ``stream_step`` call: a tuple of text
    chunks and tool calls ``(name, args)``. ``delay`` makes ``complete`` and
    ``stream_step`` sleep first, to hold a turn open mid-flight.
    """

    def __init__(
        self,
        *,
        steps: Optional[List[Tuple[Sequence[str], Sequence[Tuple[str, Dict[str, Any]]]]]] = None,
        text_chunks: Optional[Sequence[str]] = None,
        completion: str = "A title",
        structured: Any = None,
        fail_after: Optional[int] = None,
        error: Optional[Exception] = None,
        delay: float = 0.0,
    ) -> None:
        self.steps = list(steps or [])
        self.text_chunks = list(text_chunks or [])
        self.completion = completion
        self.structured = structured
        self.fail_after = fail_after
        self.error = error
        self.delay = delay
        self.calls: List[Dict[str, Any]] = []

    async def complete(self, system: str, prompt: str) -> str:
        self.calls.append({"op": "complete", "system": system, "prompt": prompt})
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.completion

    async def stream_text(self, system: str, prompt: str, prediction: Optional[str] = None):
        self.calls.append({"op": "stream_text", "system": system, "prompt": prompt, "prediction": prediction})
        for idx, chunk in enumerate(self.text_chunks):
            if self.fail_after is not None and idx >= self.fail_after:
                raise self.error or RuntimeError("upstream stream failed")
            yield chunk

    async def stream_step(self, system: str, messages, tools=None):
        self.calls.append({"op": "stream_step", "system": system, "messages": list(messages), "tools": tools})
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None and not self.steps:
            raise self.error
        texts, calls = self.steps.pop(0) if self.steps else ([], [])
        for chunk in texts:
            yield TextDelta(chunk)
        yield StepResult(
            text="".join(texts),
            tool_calls=[ToolCall(id=f"call-{uuid.uuid4().hex[:8]}", name=n, args=a) for n, a in calls],
        )

    async def generate_object(self, system: str, prompt: str, schema):
        self.calls.append({"op": "generate_object", "system": system, "prompt": prompt})
        return schema.model_validate(self.structured or {})


class FakeProvider:
    def __init__(self, models: Optional[Dict[str, ScriptedModel]] = None, *, unavailable: Sequence[str] = ()) -> None:
        self.models = models or {}
        self.unavailable = set(unavailable)
        self.requested: List[str] = []

    def language_model(self, model_id: str) -> ScriptedModel:
        self.requested.append(model_id)
        if model_id in self.unavailable:
            raise RuntimeError("LLM not configured")
        return self.models.setdefault(model_id, ScriptedModel())


class FakeRedis:
    def __init__(self) -> None:
        self.lists: Dict[str, List[str]] = {}
        self.values: Dict[str, str] = {}

    async def rpush(self, key: str, value: str) -> int:
        self.lists.setdefault(key, []).append(value)
        return len(self.lists[key])

    async def expire(self, key: str, seconds: int) -> bool:
        return True

    async def set(self, key: str, value: str, ex: Optional[int] = None) -> bool:
        self.values[key] = value
        return True

    async def exists(self, key: str) -> int:
        return 1 if key in self.lists or key in self.values else 0

    async def lrange(self, key: str, start: int, end: int) -> List[str]:
        items = self.lists.get(key, [])
        return list(items[start:] if end == -1 else items[start : end + 1])


class RecordingWriter:
    def __init__(self) -> None:
        self.parts: List[Dict[str, Any]] = []

    def write(self, part: Dict[str, Any]) -> None:
        self.parts.append(part)


def make_context(provider: Optional[FakeProvider] = None, **kwargs: Any) -> AppContext:
    return build_context(dict(TEST_ENV), provider=provider or FakeProvider(), **kwargs)  # type: ignore[arg-type]


def auth_headers(ctx: AppContext, *, user_id: Optional[str] = None, user_type: str = "regular") -> Dict[str, str]:
    uid = user_id or str(uuid.uuid4())
    user = User(id=uid, email=f"{uid}@example.com", type=user_type)  # type: ignore[arg-type]
    return {"Authorization": f"Bearer {create_access_token(user, ctx.jwt)}"}


def parse_sse(body: str) -> List[Any]:
    events: List[Any] = []
    for frame in body.split("\n\n"):
        frame = frame.strip()
        if not frame.startswith("data: "):
            continue
        payload = frame[len("data: "):]
        events.append(payload if payload == "[DONE]" else json.loads(payload))
    return events


def chat_body(chat_id: Optional[str] = None, text: str = "Hello", *, model: str = "chat-model") -> Dict[str, Any]:
    return {
        "id": chat_id or str(uuid.uuid4()),
        "message": {"id": str(uuid.uuid4()), "role": "user", "parts": [{"type": "text", "text": text}]},
        "selectedChatModel": model,
        "selectedVisibilityType": "private",
    }
