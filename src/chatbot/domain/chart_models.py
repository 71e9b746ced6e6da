from __future__ import annotations

"""Chart artifact content: schema, defaults, lenient parsing and edits.

Chart documents are stored as the pretty-printed JSON of :class:`ChartConfig`.
Defaulting rules, applied whenever stored content is missing a field or is
not valid JSON at all:

- ``type``: ``"line"``
- ``title``: the document title (empty string when unknown)
- ``data``: ``[]``
- ``xAxis`` / ``yAxis``: ``"name"`` / ``"value"``
- ``colors``: the full default palette

``xAxis`` and ``yAxis`` are expected to name keys present in every data row.
That is not enforced; the client renderer degrades when it is violated.
"""

import json
import math
from typing import Any, Dict, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError


ChartType = Literal["line", "area", "bar", "pie", "scatter", "composed"]
ChartValue = Union[int, float, str]

DEFAULT_COLORS: List[str] = [
    "#0088FE",
    "#00C49F",
    "#FFBB28",
    "#FF8042",
    "#8884D8",
    "#82CA9D",
]

SEED_ROWS: List[Dict[str, ChartValue]] = [
    {"name": "Jan", "value": 400},
    {"name": "Feb", "value": 300},
    {"name": "Mar", "value": 200},
    {"name": "Apr", "value": 278},
    {"name": "May", "value": 189},
]

# Checked in this order; the first category with a hit wins.
TYPE_KEYWORDS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("bar", ("막대", "bar")),
    ("pie", ("파이", "pie")),
    ("line", ("선", "line")),
    ("area", ("영역", "area")),
)


class ChartConfig(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    type: ChartType
    title: str
    data: List[Dict[str, ChartValue]]
    x_axis: str = Field(alias="xAxis")
    y_axis: str = Field(alias="yAxis")
    colors: List[str]

    @classmethod
    def empty(cls, title: str = "") -> "ChartConfig":
        return cls(type="line", title=title, data=[], xAxis="name", yAxis="value", colors=list(DEFAULT_COLORS))

    @classmethod
    def seed(cls, title: str) -> "ChartConfig":
        return cls(
            type="line",
            title=title,
            data=[dict(row) for row in SEED_ROWS],
            xAxis="name",
            yAxis="value",
            colors=DEFAULT_COLORS[:1],
        )

    @classmethod
    def from_content(cls, content: Optional[str], *, default_title: str = "") -> Tuple["ChartConfig", bool]:
        """Parse stored content, filling gaps from the defaults.

        Returns the config and whether the content had to be recovered
        (malformed JSON, a non-object payload, or invalid fields).
        """
        baseline = cls.empty(default_title)
        try:
            raw = json.loads(content) if content and content.strip() else {}
        except json.JSONDecodeError:
            return baseline, True
        if not isinstance(raw, dict):
            return baseline, True

        merged: Dict[str, Any] = baseline.model_dump(by_alias=True)
        recovered = False
        for key in merged:
            if key not in raw:
                continue
            candidate = dict(merged, **{key: raw[key]})
            try:
                cls.model_validate(candidate)
            except ValidationError:
                recovered = True
                continue
            merged = candidate
        return cls.model_validate(merged), recovered

    def serialize(self) -> str:
        return json.dumps(self.model_dump(by_alias=True), indent=2, ensure_ascii=False)

    @classmethod
    def deserialize(cls, content: str) -> "ChartConfig":
        return cls.model_validate_json(content)


def infer_chart_type(description: str) -> Optional[str]:
    haystack = (description or "").lower()
    for chart_type, keywords in TYPE_KEYWORDS:
        if any(word in haystack for word in keywords):
            return chart_type
    return None


def _parse_number(raw: str) -> Union[int, float]:
    try:
        value = float(raw)
    except ValueError:
        return 0
    if not math.isfinite(value):
        return 0
    return int(value) if value.is_integer() else value


def parse_csv_rows(text: str) -> List[Dict[str, ChartValue]]:
    """Parse editor input: a header line followed by comma-separated rows.

    Rows whose value count differs from the header are dropped. The first
    column always lands under ``name``; the rest are numbers (0 when
    unparsable).
    """
    lines = (text or "").strip().split("\n")
    if len(lines) < 2:
        return []
    headers = [h.strip() for h in lines[0].split(",")]
    rows: List[Dict[str, ChartValue]] = []
    for line in lines[1:]:
        values = [v.strip() for v in line.split(",")]
        if len(values) != len(headers):
            continue
        row: Dict[str, ChartValue] = {"name": values[0]}
        for header, value in zip(headers[1:], values[1:]):
            row[header] = _parse_number(value)
        rows.append(row)
    return rows


def apply_edit(
    config: ChartConfig,
    *,
    chart_type: Optional[str] = None,
    title: Optional[str] = None,
    x_axis: Optional[str] = None,
    y_axis: Optional[str] = None,
    csv: Optional[str] = None,
) -> ChartConfig:
    """Return a fully re-derived config with the requested edits applied."""
    fields = config.model_dump(by_alias=True)
    if chart_type is not None:
        fields["type"] = chart_type
    if title is not None:
        fields["title"] = title
    if x_axis is not None:
        fields["xAxis"] = x_axis
    if y_axis is not None:
        fields["yAxis"] = y_axis
    if csv is not None:
        rows = parse_csv_rows(csv)
        if rows:
            fields["data"] = rows
    return ChartConfig.model_validate(fields)
