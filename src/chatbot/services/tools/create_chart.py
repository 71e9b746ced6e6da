from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional
import uuid

from pydantic import BaseModel, ConfigDict, Field

from ...artifacts.coordinator import CreateInput
from ...domain.chart_models import ChartType, ChartValue
from .base import Tool, ToolContext


logger = logging.getLogger(__name__)


class CreateChartInput(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: str = Field(description="The title of the chart")
    type: ChartType = Field(description="The type of chart to create")
    data: List[Dict[str, ChartValue]] = Field(description="The data to visualize")
    x_axis: str = Field(alias="xAxis", description="The key for the X-axis data")
    y_axis: str = Field(alias="yAxis", description="The key for the Y-axis data")
    description: Optional[str] = Field(default=None, description="Additional description or context for the chart")


async def _execute(args: CreateChartInput, ctx: ToolContext) -> Dict[str, Any]:
    chart_spec = {"type": args.type, "data": args.data, "xAxis": args.x_axis, "yAxis": args.y_axis}
    content = await ctx.coordinator.produce(
        "chart",
        "create",
        CreateInput(title=args.title, aux_context={"chart": chart_spec}),
        ctx.writer,
    )
    doc_id = str(uuid.uuid4())
    ctx.documents.save_document(
        doc_id,
        title=args.title,
        kind="chart",
        content=content,
        user_id=ctx.user.id,
        chat_id=ctx.chat_id,
    )
    if args.description:
        logger.debug("chart_description", extra={"document_id": doc_id, "description": args.description})
    points = len(args.data)
    return {
        "id": doc_id,
        "title": args.title,
        "type": args.type,
        "dataPoints": points,
        "chartData": content,
        "content": content,
        "message": f'Chart "{args.title}" was created: a {args.type} chart with {points} data points.',
    }


def create_chart_tool() -> Tool:
    return Tool(
        name="createChart",
        description=(
            "Create a chart to visualize data. This tool will generate a chart configuration and "
            "display it directly in the chat message."
        ),
        input_model=CreateChartInput,
        execute=_execute,
    )
