"""
Built-in widget renderers: ``(config, data, width, height) -> Element``.

``data`` is ``{"rows": [...], "fields": [{"name", "type"}]}`` or ``None`` for
unbound widgets.
"""

from typing import Any, Dict, List, Optional

from dashboard_core.elements import Chart, Element, Error, Metric, Table, Text, h


def _rows(data: Optional[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return list((data or {}).get("rows") or [])


def _fields(data: Optional[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return list((data or {}).get("fields") or [])


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _empty(message: str = "No data. Bind a dataset.") -> Element:
    return h("empty", {"message": message})


def render_kpi(config: Dict[str, Any], data: Optional[Dict[str, Any]], width: int, height: int) -> Element:
    rows = _rows(data)
    first = rows[0] if rows else {}
    # 未指定 valueField 时取第一行的第一个数值字段
    value_field = config.get("valueField") or next((k for k, v in first.items() if _is_number(v)), None)
    value = first.get(value_field) if value_field else None

    trend = None
    trend_field = config.get("trendField")
    if config.get("showTrend", True) and trend_field and len(rows) > 1:
        current, previous = rows[0].get(trend_field), rows[1].get(trend_field)
        if _is_number(current) and _is_number(previous):
            trend = current - previous

    return Metric(
        config.get("label", ""),
        value,
        prefix=config.get("prefix", ""),
        suffix=config.get("suffix", ""),
        trend=trend,
        color=config.get("color"),
        fontSize=config.get("fontSize", "lg"),
    )


def render_chart(config: Dict[str, Any], data: Optional[Dict[str, Any]], width: int, height: int) -> Element:
    rows = _rows(data)
    fields = _fields(data)
    x_field = config.get("xField") or (fields[0]["name"] if fields else "")
    y_field = config.get("yField") or next((f["name"] for f in fields if f.get("type") == "number"), "")

    if not rows:
        return _empty()

    sort_order = config.get("sortOrder", "none")
    if sort_order != "none" and y_field:
        rows = sorted(rows, key=lambda r: r.get(y_field) or 0, reverse=sort_order == "desc")

    chart_type = config.get("chartType", "bar")
    series = [y_field]
    if chart_type == "stacked-bar":
        series = [f["name"] for f in fields if f.get("type") == "number"] or [y_field]

    return Chart(
        chart_type,
        rows,
        x_field,
        y_field,
        series=series,
        color=config.get("color"),
        showLegend=config.get("showLegend", False),
        showDataLabels=config.get("showDataLabels", False),
        showGrid=config.get("showGrid", True),
        showTooltip=config.get("showTooltip", True),
        xAxisLabel=config.get("xAxisLabel", ""),
        yAxisLabel=config.get("yAxisLabel", ""),
        width=width,
        height=height,
    )


def render_table(config: Dict[str, Any], data: Optional[Dict[str, Any]], width: int, height: int) -> Element:
    rows = _rows(data)
    if not rows:
        return _empty()
    columns = config.get("columns") or [f["name"] for f in _fields(data)] or list(rows[0].keys())
    page_size = config.get("pageSize") or 10
    return Table(
        columns,
        [{c: row.get(c) for c in columns} for row in rows],
        pageSize=page_size,
        pages=-(-len(rows) // page_size),
        striped=config.get("striped", True),
        showRowNumbers=config.get("showRowNumbers", False),
        compact=config.get("compact", False),
    )


def render_text(config: Dict[str, Any], data: Optional[Dict[str, Any]], width: int, height: int) -> Element:
    return Text(config.get("content", ""), fontSize=config.get("fontSize", "base"))


def render_filter(config: Dict[str, Any], data: Optional[Dict[str, Any]], width: int, height: int) -> Element:
    if not config.get("datasetId") or not config.get("field"):
        return _empty("Set datasetId and field to configure filter")
    return h(
        "filter",
        {
            "displayType": config.get("displayType", "dropdown"),
            "datasetId": config["datasetId"],
            "field": config["field"],
            "label": config.get("label", "Filter"),
            "options": list(config.get("options") or []),
        },
    )


def render_container(config: Dict[str, Any], data: Optional[Dict[str, Any]], width: int, height: int) -> Element:
    """Grid frame with one empty slot per cell; filled cells are rendered by the caller."""
    cols, rows = int(config.get("cols", 2)), int(config.get("rows", 2))
    return Element(
        tag="container",
        props={"cols": cols, "rows": rows},
        children=[h("empty-cell", {"index": i}) for i in range(cols * rows)],
    )


def render_unknown(widget_type: str) -> Element:
    return Error(f"Unknown widget: {widget_type}")
