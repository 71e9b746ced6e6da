from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


DocumentKind = Literal["text", "chart"]


class Document(BaseModel):
    id: str
    chat_id: Optional[str] = None
    user_id: str
    kind: str
    title: str
    content: str = ""
    created_at: str


class DocumentSave(BaseModel):
    title: str = Field(min_length=1)
    content: str
    kind: DocumentKind


class Suggestion(BaseModel):
    id: str
    document_id: str
    document_created_at: str
    original_text: str
    suggested_text: str
    description: Optional[str] = None
    is_resolved: bool = False
    user_id: str
    created_at: str


class ChartEdit(BaseModel):
    """Interactive editor mutation applied to a chart document."""

    model_config = ConfigDict(populate_by_name=True)

    type: Optional[Literal["line", "area", "bar", "pie", "scatter", "composed"]] = None
    title: Optional[str] = None
    x_axis: Optional[str] = Field(default=None, alias="xAxis")
    y_axis: Optional[str] = Field(default=None, alias="yAxis")
    csv: Optional[str] = None
