from __future__ import annotations

"""Convert stored UI message rows into langchain model messages."""

import json
from typing import Any, Dict, List

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, ToolMessage

from ..domain.chat_models import ChatMessage


def _user_content(parts: List[Dict[str, Any]]) -> Any:
    texts = [p.get("text", "") for p in parts if p.get("type") == "text"]
    files = [p for p in parts if p.get("type") == "file"]
    if not files:
        return "\n".join(texts)
    blocks: List[Dict[str, Any]] = [{"type": "text", "text": t} for t in texts]
    for f in files:
        blocks.append({"type": "image_url", "image_url": {"url": f.get("url", "")}})
    return blocks


def _tool_result(part: Dict[str, Any]) -> str:
    if part.get("state") == "output-error":
        return json.dumps({"error": part.get("errorText", "")}, ensure_ascii=False)
    return json.dumps(part.get("output"), ensure_ascii=False, default=str)


def _assistant_messages(parts: List[Dict[str, Any]]) -> List[BaseMessage]:
    out: List[BaseMessage] = []
    text = ""
    for part in parts:
        ptype = str(part.get("type", ""))
        if ptype == "text":
            text += part.get("text", "")
        elif ptype.startswith("tool-") and part.get("toolCallId"):
            call = {"id": part["toolCallId"], "name": ptype[len("tool-"):], "args": part.get("input") or {}}
            out.append(AIMessage(content=text, tool_calls=[call]))
            out.append(ToolMessage(content=_tool_result(part), tool_call_id=part["toolCallId"]))
            text = ""
    if text:
        out.append(AIMessage(content=text))
    return out


def to_model_messages(messages: List[ChatMessage]) -> List[BaseMessage]:
    out: List[BaseMessage] = []
    for message in messages:
        if message.role == "user":
            out.append(HumanMessage(content=_user_content(message.parts)))
        elif message.role == "assistant":
            out.extend(_assistant_messages(message.parts))
    return out
