from __future__ import annotations

import logging
from typing import Any, Dict, List
import uuid

from pydantic import BaseModel, ConfigDict, Field

from ..prompts import SUGGESTIONS_PROMPT
from ..streaming import data_part
from .base import Tool, ToolContext


logger = logging.getLogger(__name__)

SUGGESTIONS_MESSAGE = "Suggestions have been added to the document"


class RequestSuggestionsInput(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    document_id: str = Field(alias="documentId", description="The ID of the document to request edits")


class SuggestionDraft(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    original_sentence: str = Field(alias="originalSentence", description="The original sentence")
    suggested_sentence: str = Field(alias="suggestedSentence", description="The suggested sentence")
    description: str = Field(description="The description of the suggestion")


class SuggestionBatch(BaseModel):
    suggestions: List[SuggestionDraft] = Field(default_factory=list, max_length=5)


async def _execute(args: RequestSuggestionsInput, ctx: ToolContext) -> Dict[str, Any]:
    document = ctx.documents.get_document_by_id(args.document_id)
    if document is None or not document.content or document.user_id != ctx.user.id:
        return {"error": "Document not found"}

    model = ctx.provider.language_model("artifact-model")
    batch = await model.generate_object(SUGGESTIONS_PROMPT, document.content, SuggestionBatch)

    rows: List[Dict[str, Any]] = []
    for draft in batch.suggestions:
        suggestion = {
            "id": str(uuid.uuid4()),
            "documentId": document.id,
            "originalText": draft.original_sentence,
            "suggestedText": draft.suggested_sentence,
            "description": draft.description,
            "isResolved": False,
        }
        ctx.writer.write(data_part("suggestion", suggestion, transient=True))
        rows.append(
            {
                "id": suggestion["id"],
                "document_id": document.id,
                "document_created_at": document.created_at,
                "original_text": draft.original_sentence,
                "suggested_text": draft.suggested_sentence,
                "description": draft.description,
                "user_id": ctx.user.id,
            }
        )

    if rows:
        ctx.documents.save_suggestions(rows)
    logger.info("suggestions_saved", extra={"document_id": document.id, "count": len(rows)})
    return {"id": document.id, "title": document.title, "kind": document.kind, "message": SUGGESTIONS_MESSAGE}


def request_suggestions_tool() -> Tool:
    return Tool(
        name="requestSuggestions",
        description="Request suggestions for a document",
        input_model=RequestSuggestionsInput,
        execute=_execute,
    )
