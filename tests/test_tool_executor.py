import asyncio

from dashboard_core.tools import READ_ONLY_TOOLS, TOOL_DEFINITIONS, ToolCall, get_tools


def run(executor, name, /, **params):
    return asyncio.run(executor.execute(ToolCall(name=name, params=params)))


def test_catalog_lists_every_command():
    tools = get_tools()
    assert [t["name"] for t in tools] == list(TOOL_DEFINITIONS)
    add = next(t for t in tools if t["name"] == "add_widget")
    assert "type" in add["parameters"]["required"]
    assert "datasetId" in add["parameters"]["properties"]


def test_unknown_tool(executor, store):
    result = run(executor, "explode")
    assert not result.success
    assert result.error == "Unknown tool: explode"
    assert not store.history.can_undo


def test_missing_required_param(executor, store):
    result = run(executor, "add_widget", title="X")
    assert not result.success
    assert result.error.startswith("type:")
    assert store.spec.widgets == []


def test_add_widget_with_binding(executor, store):
    result = run(
        executor, "add_widget",
        type="kpi", title="Total Revenue", config={"label": "Revenue", "prefix": "$"}, datasetId="sales",
    )
    assert result.success
    widget = store.spec.get_widget(result.data["id"])
    assert widget.title == "Total Revenue"
    assert widget.config["prefix"] == "$"
    assert widget.config["color"] == "#3b82f6"
    assert widget.data_binding.dataset_id == "sales"
    assert widget.data_binding.filters == []


def test_add_widget_rejects_invalid_config(executor, store):
    result = run(executor, "add_widget", type="chart", config={"chartType": "radar"})
    assert not result.success
    assert result.error.startswith("chartType:")
    assert store.spec.widgets == []


def test_add_filter_widget(executor, store):
    result = run(
        executor, "add_filter_widget",
        title="Region", datasetId="sales", field="region", displayType="button-group", w=12, h=1,
    )
    assert result.success
    widget = store.spec.get_widget(result.data["id"])
    assert widget.type.value == "filter"
    assert widget.data_binding is None
    assert widget.config["datasetId"] == "sales"
    assert widget.config["field"] == "region"
    assert widget.config["displayType"] == "button-group"
    assert widget.config["label"] == "Region"
    assert store.spec.get_layout_item(widget.id).w == 12


def test_reference_errors_are_noop_successes(executor, store):
    run(executor, "add_widget", type="text")
    before = store.spec
    for name, params in [
        ("remove_widget", {"id": "ghost"}),
        ("update_widget_title", {"id": "ghost", "title": "x"}),
        ("update_widget_config", {"id": "ghost", "config": {"a": 1}}),
        ("set_data_binding", {"id": "ghost", "datasetId": "sales"}),
        ("update_layout", {"id": "ghost", "x": 3}),
    ]:
        result = run(executor, name, **params)
        assert result.success, name
    assert store.spec is before


def test_update_layout_patches_one_item(executor, store):
    widget_id = run(executor, "add_widget", type="kpi").data["id"]
    other_id = run(executor, "add_widget", type="text").data["id"]
    result = run(executor, "update_layout", id=widget_id, x=6, w=6)
    assert result.success
    item = store.spec.get_layout_item(widget_id)
    assert (item.x, item.y, item.w, item.h) == (6, 0, 6, 2)
    assert store.spec.get_layout_item(other_id).x == 0


def test_update_widget_config_validates_merged_config(executor, store):
    widget_id = run(executor, "add_widget", type="table").data["id"]
    assert not run(executor, "update_widget_config", id=widget_id, config={"pageSize": 0}).success
    assert run(executor, "update_widget_config", id=widget_id, config={"pageSize": 25}).success
    assert store.spec.get_widget(widget_id).config["pageSize"] == 25


def test_read_only_commands_do_not_touch_history(executor, store):
    run(executor, "add_widget", type="kpi", title="A")
    depth = store.history.undo_depth
    for name in READ_ONLY_TOOLS:
        assert run(executor, name).success
    assert store.history.undo_depth == depth


def test_list_datasets_includes_fields(executor):
    result = run(executor, "list_datasets")
    sales = next(d for d in result.data if d["id"] == "sales")
    assert sales["name"] == "Monthly Sales"
    assert {"name": "revenue", "type": "number"} in sales["fields"]


def test_get_dashboard_spec_is_wire_form(executor):
    run(executor, "set_dashboard_name", name="Ops")
    run(executor, "add_widget", type="kpi", datasetId="sales")
    spec = run(executor, "get_dashboard_spec").data
    assert spec["name"] == "Ops"
    assert "widgetId" in spec["layout"][0]
    assert spec["widgets"][0]["dataBinding"]["datasetId"] == "sales"


def test_provider_failure_becomes_result(executor, provider, monkeypatch):
    async def broken():
        raise RuntimeError("provider down")

    monkeypatch.setattr(provider, "list_datasets", broken)
    result = run(executor, "list_datasets")
    assert not result.success
    assert result.error == "provider down"


def test_sales_scenario(executor, store):
    assert run(executor, "set_dashboard_name", name="Sales").success
    result = run(executor, "add_widget", type="kpi", title="Revenue", datasetId="sales")
    assert result.success

    assert store.spec.name == "Sales"
    assert len(store.spec.widgets) == 1
    widget = store.spec.widgets[0]
    assert widget.type.value == "kpi"
    assert widget.data_binding.dataset_id == "sales"
    assert [item.widget_id for item in store.spec.layout] == [widget.id]


def test_add_then_remove_restores_counts(executor, store):
    run(executor, "add_widget", type="text")
    counts = (len(store.spec.widgets), len(store.spec.layout))
    widget_id = run(executor, "add_widget", type="chart").data["id"]
    assert run(executor, "remove_widget", id=widget_id).success
    assert (len(store.spec.widgets), len(store.spec.layout)) == counts
    assert store.spec.widget_ids() == store.spec.layout_ids()
