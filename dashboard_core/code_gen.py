"""
Generates starter override source for a widget from its type and config.

The output is a function body for ``(config, data, width, height)`` that only
uses the override capabilities, so it compiles and runs as-is.
"""

from typing import Any, Dict


def generate_widget_code(widget_type: str, config: Dict[str, Any]) -> str:
    widget_type = str(getattr(widget_type, "value", widget_type))
    generators = {
        "kpi": _kpi_code,
        "chart": _chart_code,
        "table": _table_code,
        "text": _text_code,
        "filter": _filter_code,
    }
    if widget_type == "container":
        return '# Container widgets cannot be edited as code.\nreturn Text("Container")'
    generator = generators.get(widget_type)
    if generator is None:
        return f"return Error({f'Unknown widget type: {widget_type}'!r})"
    return generator(config or {})


def _kpi_code(config: Dict[str, Any]) -> str:
    label = config.get("label") or "Value"
    prefix = config.get("prefix") or ""
    suffix = config.get("suffix") or ""
    trend_field = config.get("trendField") or ""
    value_field = config.get("valueField") or ""

    if value_field:
        pick = f"value_field = {value_field!r}"
    else:
        pick = "value_field = next((k for k, v in first.items() if isinstance(v, (int, float))), None)"

    if trend_field:
        trend = (
            f"trend = rows[0].get({trend_field!r}, 0) - rows[1].get({trend_field!r}, 0) "
            f"if len(rows) > 1 else None"
        )
    else:
        trend = "trend = None"

    return f"""rows = (data or {{}}).get("rows") or []
first = rows[0] if rows else {{}}
{pick}
value = first.get(value_field) if value_field else None
{trend}

return Metric({label!r}, fmt_number(value), prefix={prefix!r}, suffix={suffix!r}, trend=trend)"""


def _chart_code(config: Dict[str, Any]) -> str:
    chart_type = config.get("chartType") or "bar"
    x_field = config.get("xField") or ""
    y_field = config.get("yField") or ""
    color = config.get("color") or "#3b82f6"

    x_expr = repr(x_field) if x_field else '(fields[0]["name"] if fields else "")'
    y_expr = repr(y_field) if y_field else 'next((f["name"] for f in fields if f.get("type") == "number"), "")'

    preamble = f"""rows = (data or {{}}).get("rows") or []
fields = (data or {{}}).get("fields") or []
x_field = {x_expr}
y_field = {y_expr}

if not rows:
    return Text("No data. Bind a dataset.")
"""
    if chart_type == "stacked-bar":
        return preamble + f"""
series = [f["name"] for f in fields if f.get("type") == "number"] or [y_field]
return Chart("stacked-bar", rows, x_field, y_field, series=series, showLegend=True)"""
    if chart_type in ("pie", "donut"):
        legend = chart_type == "donut"
        return preamble + f"""
colors = ["#3b82f6", "#ef4444", "#22c55e", "#f59e0b", "#8b5cf6", "#ec4899", "#14b8a6", "#f97316"]
return Chart({chart_type!r}, rows, x_field, y_field, colors=colors, showLegend={legend!r})"""
    return preamble + f"""
return Chart({chart_type!r}, rows, x_field, y_field, color={color!r})"""


def _table_code(config: Dict[str, Any]) -> str:
    columns = config.get("columns") or []
    page_size = config.get("pageSize") or 10
    columns_expr = repr(list(columns)) if columns else '[f["name"] for f in fields]'

    return f"""rows = (data or {{}}).get("rows") or []
fields = (data or {{}}).get("fields") or []
columns = {columns_expr}
page_size = {int(page_size)}
page, set_page = use_state(0)

if not rows:
    return Text("No data")

visible = rows[page * page_size:(page + 1) * page_size]
return Table(columns, visible, page=page, pages=-(-len(rows) // page_size))"""


def _text_code(config: Dict[str, Any]) -> str:
    content = config.get("content") or ""
    font_size = config.get("fontSize") or "base"
    return f"return Text({content!r}, fontSize={font_size!r})"


def _filter_code(config: Dict[str, Any]) -> str:
    display_type = config.get("displayType") or "dropdown"
    field = config.get("field") or ""
    label = config.get("label") or "Filter"
    hint = f"({display_type} on {field!r})"
    return f"""# Filter widget: {display_type} on {field!r}.
# Filter widgets drive the global filter set and are best configured in the inspector.
return Row(Text({label!r}), Text({hint!r}))"""
