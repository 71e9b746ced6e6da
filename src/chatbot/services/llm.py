from __future__ import annotations

"""Thin async wrapper over a langchain chat model.

Handlers and the chat turn only see this interface: a one-shot completion,
a plain text stream, one tool-calling step, and structured output.
"""

from dataclasses import dataclass, field
import logging
from typing import Any, AsyncIterator, Dict, List, Optional, Sequence, Type, TypeVar, Union

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage
from pydantic import BaseModel


LOG = logging.getLogger("chatbot.llm")

SchemaT = TypeVar("SchemaT", bound=BaseModel)


@dataclass
class ToolCall:
    id: str
    name: str
    args: Dict[str, Any] = field(default_factory=dict)


@dataclass
class TextDelta:
    text: str


@dataclass
class StepResult:
    text: str
    tool_calls: List[ToolCall] = field(default_factory=list)


StepEvent = Union[TextDelta, StepResult]


def _text_of(message: Any) -> str:
    content = getattr(message, "content", "")
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        return "".join(
            part.get("text", "") for part in content
            if isinstance(part, dict) and part.get("type") == "text"
        )
    return ""


class LanguageModel:
    def __init__(self, chat_model: BaseChatModel, *, model_id: str, provider: str) -> None:
        self._chat_model = chat_model
        self.model_id = model_id
        self.provider = provider

    async def complete(self, system: str, prompt: str) -> str:
        LOG.debug("llm_complete", extra={"model_id": self.model_id})
        res = await self._chat_model.ainvoke([SystemMessage(content=system), HumanMessage(content=prompt)])
        return _text_of(res)

    async def stream_text(self, system: str, prompt: str, prediction: Optional[str] = None) -> AsyncIterator[str]:
        """Yield text chunks; ``prediction`` is passed to OpenAI as predicted output."""
        model: Any = self._chat_model
        if prediction and self.provider == "openai":
            model = model.bind(prediction={"type": "content", "content": prediction})
        LOG.debug("llm_stream_text", extra={"model_id": self.model_id})
        async for chunk in model.astream([SystemMessage(content=system), HumanMessage(content=prompt)]):
            text = _text_of(chunk)
            if text:
                yield text

    async def stream_step(
        self,
        system: str,
        messages: Sequence[BaseMessage],
        tools: Optional[List[Dict[str, Any]]] = None,
    ) -> AsyncIterator[StepEvent]:
        """Stream one model step.

        Yields :class:`TextDelta` items as they arrive, then exactly one
        :class:`StepResult` carrying the full text and any tool calls.
        """
        model: Any = self._chat_model.bind_tools(tools) if tools else self._chat_model
        LOG.debug("llm_stream_step", extra={"model_id": self.model_id, "tools": len(tools or [])})
        aggregate = None
        async for chunk in model.astream([SystemMessage(content=system), *messages]):
            aggregate = chunk if aggregate is None else aggregate + chunk
            text = _text_of(chunk)
            if text:
                yield TextDelta(text)
        calls: List[ToolCall] = []
        if aggregate is not None:
            for call in getattr(aggregate, "tool_calls", None) or []:
                calls.append(ToolCall(id=str(call.get("id") or ""), name=call["name"], args=dict(call.get("args") or {})))
        yield StepResult(text=_text_of(aggregate) if aggregate is not None else "", tool_calls=calls)

    async def generate_object(self, system: str, prompt: str, schema: Type[SchemaT]) -> SchemaT:
        structured = self._chat_model.with_structured_output(schema)
        LOG.debug("llm_generate_object", extra={"model_id": self.model_id, "schema": schema.__name__})
        result = await structured.ainvoke([SystemMessage(content=system), HumanMessage(content=prompt)])
        if isinstance(result, schema):
            return result
        return schema.model_validate(result)
