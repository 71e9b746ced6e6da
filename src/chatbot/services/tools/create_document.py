from __future__ import annotations

from typing import Any, Dict, List
import uuid

from pydantic import BaseModel, Field

from ...artifacts.coordinator import CreateInput
from ...domain.errors import UnknownDocumentKind
from ..streaming import data_part
from .base import Tool, ToolContext


CREATED_MESSAGE = "A document was created and is now visible to the user."


class CreateDocumentInput(BaseModel):
    title: str = Field(min_length=1)
    kind: str


async def _execute(args: CreateDocumentInput, ctx: ToolContext) -> Dict[str, Any]:
    if args.kind not in ctx.coordinator.kinds:
        # Nothing reaches the client panel for a kind no handler can produce
        raise UnknownDocumentKind(args.kind)
    doc_id = str(uuid.uuid4())
    ctx.writer.write(data_part("kind", args.kind, transient=True))
    ctx.writer.write(data_part("id", doc_id, transient=True))
    ctx.writer.write(data_part("title", args.title, transient=True))
    ctx.writer.write(data_part("clear", None, transient=True))

    content = await ctx.coordinator.produce(args.kind, "create", CreateInput(title=args.title), ctx.writer)
    ctx.documents.save_document(
        doc_id,
        title=args.title,
        kind=args.kind,
        content=content,
        user_id=ctx.user.id,
        chat_id=ctx.chat_id,
    )

    ctx.writer.write(data_part("finish", None, transient=True))
    return {"id": doc_id, "title": args.title, "kind": args.kind, "content": CREATED_MESSAGE}


def create_document_tool(kinds: List[str]) -> Tool:
    return Tool(
        name="createDocument",
        description=(
            "Create a document for a writing or content creation activities. This tool will call other "
            "functions that will generate the contents of the document based on the title and kind."
        ),
        input_model=CreateDocumentInput,
        execute=_execute,
        schema_overrides={"kind": {"enum": list(kinds)}},
    )
