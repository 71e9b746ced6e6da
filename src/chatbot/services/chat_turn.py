from __future__ import annotations

"""One chat turn: checks and persistence before the stream, then the model loop.

``prepare`` runs every step that can fail with a request-boundary error
(authorization, quota, chat ownership) and the writes that precede the model
call. ``stream`` runs the model/tool loop as a producer task writing into a
:class:`DeltaWriter` and yields the SSE frames the response sends.
"""

import asyncio
from dataclasses import dataclass, field
import json
import logging
from typing import TYPE_CHECKING, Any, AsyncIterator, Dict, List, Optional
import uuid

from langchain_core.messages import AIMessage, BaseMessage, ToolMessage

from ..domain.chat_models import ChatMessage, PostRequestBody, RequestHints
from ..domain.errors import ChatSDKError
from ..security.auth import User
from ..security.entitlements import entitlements_for
from ..security.rate_limit import enforce_daily_quota
from .llm import StepResult, TextDelta
from .messages import to_model_messages
from .prompts import system_prompt
from .streaming import SSE_DONE, DeltaWriter, UIMessageWriter, error_part, sse_encode, smooth_words
from .title import generate_title_from_user_message
from .tools import Tool, ToolContext, build_tools, tools_by_name

if TYPE_CHECKING:
    from ..context import AppContext


logger = logging.getLogger(__name__)
LOG = logging.getLogger("chatbot.chat")

STREAM_ERROR_TEXT = "Oops, an error occurred!"


@dataclass
class PreparedTurn:
    chat_id: str
    user: User
    selected_chat_model: str
    hints: RequestHints
    stream_id: str
    history: List[ChatMessage] = field(default_factory=list)
    created_chat: bool = False


class ChatTurnController:
    def __init__(self, context: "AppContext") -> None:
        self._ctx = context

    async def prepare(self, body: PostRequestBody, user: Optional[User], hints: RequestHints) -> PreparedTurn:
        if user is None:
            raise ChatSDKError("unauthorized:chat")

        entitlements = entitlements_for(user.type, self._ctx.config)
        if body.selected_chat_model not in entitlements.available_chat_model_ids:
            raise ChatSDKError("forbidden:chat")
        enforce_daily_quota(self._ctx.chats, user.id, entitlements)

        chat_id = str(body.id)
        chat = self._ctx.chats.get_chat_by_id(chat_id)
        created = False
        if chat is None:
            title = await generate_title_from_user_message(self._ctx.provider, body.message)
            # Another request may have created the chat while the title was generated
            chat, created = self._ctx.chats.get_or_create_chat(
                chat_id, user.id, title, visibility=body.selected_visibility_type
            )
            if created:
                LOG.info("chat_created", extra={"chat_id": chat_id, "user_id": user.id})
        if chat.user_id != user.id:
            raise ChatSDKError("forbidden:chat")

        previous = self._ctx.chats.get_messages_by_chat_id(chat_id)
        saved = self._ctx.chats.save_messages(
            [
                {
                    "id": str(body.message.id),
                    "chat_id": chat_id,
                    "role": "user",
                    "parts": [p.model_dump(mode="json", by_alias=True) for p in body.message.parts],
                    "attachments": [],
                }
            ]
        )

        stream_id = str(uuid.uuid4())
        self._ctx.chats.create_stream_id(stream_id, chat_id)
        return PreparedTurn(
            chat_id=chat_id,
            user=user,
            selected_chat_model=body.selected_chat_model,
            hints=hints,
            stream_id=stream_id,
            history=[*previous, *saved],
            created_chat=created,
        )

    async def stream(self, turn: PreparedTurn) -> AsyncIterator[str]:
        channel = DeltaWriter()
        producer = asyncio.create_task(self._produce(turn, channel))
        try:
            async for part in channel:
                yield sse_encode(part)
            yield SSE_DONE
        finally:
            if not producer.done():
                # Consumer went away before the turn completed
                LOG.info("chat_turn_cancelled", extra={"chat_id": turn.chat_id})
                producer.cancel()

    async def _produce(self, turn: PreparedTurn, channel: DeltaWriter) -> None:
        try:
            await self._run_model_loop(turn, channel)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("chat_stream_error chat_id=%s", turn.chat_id)
            channel.write(error_part(STREAM_ERROR_TEXT))
        finally:
            if not channel.closed:
                channel.close()

    async def _run_model_loop(self, turn: PreparedTurn, channel: DeltaWriter) -> None:
        writer = UIMessageWriter(channel)
        message_id = str(uuid.uuid4())
        model = self._ctx.provider.language_model(turn.selected_chat_model)
        tools = build_tools(self._ctx.coordinator.kinds)
        registry = tools_by_name(tools)
        schemas = [t.openai_schema() for t in tools]
        system = system_prompt(turn.selected_chat_model, turn.hints)
        history: List[BaseMessage] = to_model_messages(turn.history)
        tool_ctx = ToolContext(
            user=turn.user,
            chat_id=turn.chat_id,
            writer=writer,
            coordinator=self._ctx.coordinator,
            documents=self._ctx.documents,
            provider=self._ctx.provider,
        )

        parts: List[Dict[str, Any]] = []
        channel.write({"type": "start", "messageId": message_id})
        for step in range(self._ctx.config.max_steps):
            channel.write({"type": "start-step"})
            result = await self._stream_step(model, system, history, schemas, channel)
            if result.text:
                parts.append({"type": "text", "text": result.text})
            if result.tool_calls:
                history.append(
                    AIMessage(
                        content=result.text,
                        tool_calls=[{"id": c.id, "name": c.name, "args": c.args} for c in result.tool_calls],
                    )
                )
            for call in result.tool_calls:
                part, tool_message = await self._run_tool(registry.get(call.name), call.id, call.name, call.args, tool_ctx, channel)
                parts.extend(writer.take_persisted())
                parts.append(part)
                history.append(tool_message)
            channel.write({"type": "finish-step"})
            if not result.tool_calls:
                break
            LOG.debug("chat_step_completed", extra={"chat_id": turn.chat_id, "step": step, "tools": len(result.tool_calls)})

        self._ctx.chats.save_messages(
            [
                {
                    "id": message_id,
                    "chat_id": turn.chat_id,
                    "role": "assistant",
                    "parts": parts,
                    "attachments": [],
                }
            ]
        )
        LOG.info("assistant_messages_saved", extra={"chat_id": turn.chat_id, "parts": len(parts)})
        channel.write({"type": "finish"})

    async def _stream_step(self, model, system: str, history: List[BaseMessage], schemas, channel: DeltaWriter) -> StepResult:
        holder: Dict[str, StepResult] = {}

        async def text_chunks() -> AsyncIterator[str]:
            async for event in model.stream_step(system, history, schemas):
                if isinstance(event, TextDelta):
                    yield event.text
                elif isinstance(event, StepResult):
                    holder["result"] = event

        text_id = str(uuid.uuid4())
        started = False
        async for piece in smooth_words(text_chunks()):
            if not started:
                channel.write({"type": "text-start", "id": text_id})
                started = True
            channel.write({"type": "text-delta", "id": text_id, "delta": piece})
        if started:
            channel.write({"type": "text-end", "id": text_id})
        if "result" not in holder:
            raise RuntimeError("model step ended without a result")
        return holder["result"]

    async def _run_tool(
        self,
        tool: Optional[Tool],
        call_id: str,
        name: str,
        args: Dict[str, Any],
        tool_ctx: ToolContext,
        channel: DeltaWriter,
    ) -> tuple[Dict[str, Any], ToolMessage]:
        channel.write({"type": "tool-input-available", "toolCallId": call_id, "toolName": name, "input": args})
        try:
            if tool is None:
                raise ValueError(f"Unknown tool: {name}")
            output = await tool.run(args, tool_ctx)
        except ChatSDKError:
            # UnknownDocumentKind and GenerationFailed end the turn
            raise
        except Exception as exc:
            LOG.warning("tool_failed", extra={"tool": name, "error": str(exc)})
            channel.write({"type": "tool-output-error", "toolCallId": call_id, "errorText": str(exc)})
            part = {
                "type": f"tool-{name}",
                "toolCallId": call_id,
                "state": "output-error",
                "input": args,
                "errorText": str(exc),
            }
            return part, ToolMessage(content=json.dumps({"error": str(exc)}), tool_call_id=call_id)

        channel.write({"type": "tool-output-available", "toolCallId": call_id, "output": output})
        part = {
            "type": f"tool-{name}",
            "toolCallId": call_id,
            "state": "output-available",
            "input": args,
            "output": output,
        }
        return part, ToolMessage(content=json.dumps(output, ensure_ascii=False, default=str), tool_call_id=call_id)
