from __future__ import annotations

from typing import Any, Dict

from pydantic import BaseModel, Field

from ...artifacts.coordinator import UpdateInput
from ..streaming import data_part
from .base import Tool, ToolContext


UPDATED_MESSAGE = "The document has been updated successfully."


class UpdateDocumentInput(BaseModel):
    id: str = Field(description="The ID of the document to update")
    description: str = Field(description="The description of changes that need to be made")


async def _execute(args: UpdateDocumentInput, ctx: ToolContext) -> Dict[str, Any]:
    document = ctx.documents.get_document_by_id(args.id)
    if document is None or document.user_id != ctx.user.id:
        return {"error": "Document not found"}

    ctx.writer.write(data_part("clear", None, transient=True))
    content = await ctx.coordinator.produce(
        document.kind,
        "update",
        UpdateInput(document=document, description=args.description),
        ctx.writer,
    )
    ctx.documents.save_document(
        document.id,
        title=document.title,
        kind=document.kind,
        content=content,
        user_id=ctx.user.id,
        chat_id=document.chat_id,
    )
    ctx.writer.write(data_part("finish", None, transient=True))
    return {"id": document.id, "title": document.title, "kind": document.kind, "content": UPDATED_MESSAGE}


def update_document_tool() -> Tool:
    return Tool(
        name="updateDocument",
        description="Update a document with the given description.",
        input_model=UpdateDocumentInput,
        execute=_execute,
    )
