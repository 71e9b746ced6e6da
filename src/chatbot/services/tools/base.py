from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Type

from pydantic import BaseModel

from ...artifacts.coordinator import ArtifactCoordinator
from ...artifacts.registry import PartWriter
from ...infrastructure.doc_store import DocumentStore
from ...security.auth import User
from ..model_router import ModelProvider


@dataclass
class ToolContext:
    """Everything a tool may touch during one chat turn."""

    user: User
    chat_id: str
    writer: PartWriter
    coordinator: ArtifactCoordinator
    documents: DocumentStore
    provider: ModelProvider


ExecuteFn = Callable[[Any, ToolContext], Awaitable[Dict[str, Any]]]


@dataclass(frozen=True)
class Tool:
    name: str
    description: str
    input_model: Type[BaseModel]
    execute: ExecuteFn
    schema_overrides: Dict[str, Dict[str, Any]] = field(default_factory=dict)

    def parameters(self) -> Dict[str, Any]:
        schema = self.input_model.model_json_schema(by_alias=True)
        props = schema.get("properties", {})
        for prop, override in self.schema_overrides.items():
            if prop in props:
                props[prop] = {**props[prop], **override}
        return schema

    def openai_schema(self) -> Dict[str, Any]:
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters(),
            },
        }

    async def run(self, args: Dict[str, Any], context: ToolContext) -> Dict[str, Any]:
        payload = self.input_model.model_validate(args)
        return await self.execute(payload, context)


def tools_by_name(tools: List[Tool]) -> Dict[str, Tool]:
    return {t.name: t for t in tools}
