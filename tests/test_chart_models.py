import json

import pytest

from src.chatbot.domain.chart_models import (
    DEFAULT_COLORS,
    ChartConfig,
    apply_edit,
    infer_chart_type,
    parse_csv_rows,
)


def _sample() -> ChartConfig:
    return ChartConfig(
        type="bar",
        title="Sales",
        data=[{"month": "Jan", "value": 10}, {"month": "Feb", "value": 2.5}],
        xAxis="month",
        yAxis="value",
        colors=["#111111", "#222222"],
    )


def test_serialize_round_trip_keeps_ints_and_field_order():
    chart = _sample()
    text = chart.serialize()
    assert ChartConfig.deserialize(text) == chart
    assert list(json.loads(text).keys()) == ["type", "title", "data", "xAxis", "yAxis", "colors"]
    assert '"value": 10\n' in text
    assert text.startswith('{\n  "type": "bar"')


def test_serialize_keeps_non_ascii_titles():
    chart = ChartConfig.seed("월별 매출")
    assert "월별 매출" in chart.serialize()


def test_seed_chart_is_line_with_five_rows_and_single_color():
    chart = ChartConfig.seed("Revenue")
    assert chart.type == "line"
    assert chart.title == "Revenue"
    assert [r["name"] for r in chart.data] == ["Jan", "Feb", "Mar", "Apr", "May"]
    assert [r["value"] for r in chart.data] == [400, 300, 200, 278, 189]
    assert (chart.x_axis, chart.y_axis) == ("name", "value")
    assert chart.colors == DEFAULT_COLORS[:1]


def test_from_content_valid_json_is_not_recovered():
    chart, recovered = ChartConfig.from_content(_sample().serialize(), default_title="ignored")
    assert recovered is False
    assert chart == _sample()


@pytest.mark.parametrize("content", ["not json {", "[1, 2, 3]", '"just a string"'])
def test_from_content_malformed_falls_back_to_empty_baseline(content):
    chart, recovered = ChartConfig.from_content(content, default_title="Doc")
    assert recovered is True
    assert chart == ChartConfig.empty("Doc")
    assert chart.colors == DEFAULT_COLORS
    assert chart.data == []


def test_from_content_invalid_fields_take_defaults_and_keep_the_rest():
    content = json.dumps({"type": "donut", "data": [{"name": "a", "value": 1}], "yAxis": 7})
    chart, recovered = ChartConfig.from_content(content, default_title="Doc")
    assert recovered is True
    assert chart.type == "line"
    assert chart.title == "Doc"
    assert chart.data == [{"name": "a", "value": 1}]
    assert chart.y_axis == "value"


@pytest.mark.parametrize(
    "description,expected",
    [
        ("make it a bar chart", "bar"),
        ("막대 그래프로 바꿔줘", "bar"),
        ("Switch to PIE please", "pie"),
        ("파이 차트", "pie"),
        ("선 그래프로", "line"),
        ("show it as a line", "line"),
        ("영역 차트", "area"),
        ("use an area chart", "area"),
        ("pie or bar, whichever", "bar"),
        ("a line with the area filled", "line"),
        ("add more rows", None),
        ("", None),
    ],
)
def test_infer_chart_type_uses_fixed_priority(description, expected):
    assert infer_chart_type(description) == expected


def test_parse_csv_drops_rows_with_wrong_arity():
    rows = parse_csv_rows("month,sales,cost\nJan,10,5\nFeb,20\nMar,x,7.5\nApr,1,2,3")
    assert rows == [
        {"name": "Jan", "sales": 10, "cost": 5},
        {"name": "Mar", "sales": 0, "cost": 7.5},
    ]


def test_parse_csv_first_column_always_lands_under_name():
    rows = parse_csv_rows("label, value\n Q1 , 3.0 ")
    assert rows == [{"name": "Q1", "value": 3}]


def test_parse_csv_non_finite_values_become_zero():
    rows = parse_csv_rows("k,v\na,nan\nb,inf")
    assert rows == [{"name": "a", "v": 0}, {"name": "b", "v": 0}]


@pytest.mark.parametrize("text", ["", "only,a,header", "   "])
def test_parse_csv_without_data_rows_is_empty(text):
    assert parse_csv_rows(text) == []


def test_apply_edit_rebuilds_whole_config():
    chart = ChartConfig.seed("Old")
    edited = apply_edit(chart, chart_type="pie", title="New", x_axis="label", y_axis="amount")
    assert edited.type == "pie"
    assert edited.title == "New"
    assert (edited.x_axis, edited.y_axis) == ("label", "amount")
    assert edited.data == chart.data
    assert chart.type == "line"


def test_apply_edit_csv_replaces_data_but_empty_result_keeps_it():
    chart = ChartConfig.seed("T")
    replaced = apply_edit(chart, csv="month,value\nJan,1\nFeb,2")
    assert replaced.data == [{"name": "Jan", "value": 1}, {"name": "Feb", "value": 2}]

    unchanged = apply_edit(chart, csv="month,value")
    assert unchanged.data == chart.data
