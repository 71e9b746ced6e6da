from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from ..domain.docs_models import Document
from ..services.model_router import ModelProvider
from ..services.prompts import TEXT_CREATE_PROMPT, update_document_prompt
from ..services.streaming import data_part, smooth_words
from .registry import DocumentHandler, PartWriter


LOG = logging.getLogger("chatbot.artifacts")


def text_document_handler(provider: ModelProvider) -> DocumentHandler:
    """Markdown documents written by ``artifact-model``.

    Every chunk is forwarded as a transient ``data-textDelta``; only the
    accumulated text is returned.
    """

    async def on_create(title: str, aux_context: Optional[Mapping[str, Any]], writer: PartWriter) -> str:
        model = provider.language_model("artifact-model")
        draft = ""
        async for text in smooth_words(model.stream_text(TEXT_CREATE_PROMPT, title)):
            draft += text
            writer.write(data_part("textDelta", text, transient=True))
        LOG.debug("text_document_created", extra={"title": title, "chars": len(draft)})
        return draft

    async def on_update(document: Document, description: str, writer: PartWriter) -> str:
        model = provider.language_model("artifact-model")
        current = document.content or ""
        draft = ""
        stream = model.stream_text(update_document_prompt(current, "text"), description, prediction=current)
        async for text in smooth_words(stream):
            draft += text
            writer.write(data_part("textDelta", text, transient=True))
        LOG.debug(
            "text_document_updated",
            extra={"document_id": document.id, "chars": len(draft), "delta_chars": len(draft) - len(current)},
        )
        return draft

    return DocumentHandler(kind="text", on_create_document=on_create, on_update_document=on_update)
