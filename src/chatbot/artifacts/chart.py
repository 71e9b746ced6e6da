from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from ..domain.chart_models import DEFAULT_COLORS, ChartConfig, infer_chart_type
from ..domain.docs_models import Document
from ..services.streaming import data_part
from .registry import DocumentHandler, PartWriter


LOG = logging.getLogger("chatbot.artifacts")


def chart_from_spec(title: str, spec: Mapping[str, Any]) -> ChartConfig:
    """Build a config from model-supplied fields, always with the full palette."""
    return ChartConfig(
        type=spec["type"],
        title=title,
        data=list(spec.get("data") or []),
        xAxis=spec["xAxis"],
        yAxis=spec["yAxis"],
        colors=list(DEFAULT_COLORS),
    )


async def _create_chart(title: str, aux_context: Optional[Mapping[str, Any]], writer: PartWriter) -> str:
    spec = (aux_context or {}).get("chart")
    config = chart_from_spec(title, spec) if spec else ChartConfig.seed(title)
    content = config.serialize()
    writer.write(data_part("textDelta", content))
    return content


async def _update_chart(document: Document, description: str, writer: PartWriter) -> str:
    config, recovered = ChartConfig.from_content(document.content, default_title=document.title)
    if recovered:
        LOG.warning("chart_content_recovered", extra={"document_id": document.id})
    inferred = infer_chart_type(description)
    if inferred is not None:
        config = config.model_copy(update={"type": inferred})
    content = config.serialize()
    writer.write(data_part("textDelta", content))
    return content


def chart_document_handler() -> DocumentHandler:
    return DocumentHandler(kind="chart", on_create_document=_create_chart, on_update_document=_update_chart)
