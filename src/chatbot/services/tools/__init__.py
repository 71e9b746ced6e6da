from typing import List

from .base import Tool, ToolContext, tools_by_name
from .create_chart import create_chart_tool
from .create_document import create_document_tool
from .get_weather import get_weather_tool
from .request_suggestions import request_suggestions_tool
from .update_document import update_document_tool

__all__ = [
    "Tool",
    "ToolContext",
    "tools_by_name",
    "build_tools",
]


def build_tools(document_kinds: List[str]) -> List[Tool]:
    return [
        get_weather_tool(),
        create_document_tool(document_kinds),
        update_document_tool(),
        request_suggestions_tool(),
        create_chart_tool(),
    ]
