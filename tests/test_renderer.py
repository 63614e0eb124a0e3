import asyncio
import logging

from dashboard_core.filters import select_value
from dashboard_core.models import DataBinding


def render_all(renderer, store):
    return asyncio.run(renderer.render_dashboard(store.spec))


def body_of(tree, widget_id):
    frame = next(c for c in tree.children if c.props["id"] == widget_id)
    return frame.children[0]


def test_builtin_renderers(renderer, store):
    kpi = store.add_widget("kpi", {"valueField": "revenue"}, data_binding=DataBinding(dataset_id="sales"))
    chart = store.add_widget("chart", {"xField": "month", "yField": "revenue"}, data_binding=DataBinding(dataset_id="sales"))
    table = store.add_widget("table", data_binding=DataBinding(dataset_id="portfolio"))
    text = store.add_widget("text", {"content": "Hello"})

    tree = render_all(renderer, store)
    assert tree.tag == "dashboard"
    assert body_of(tree, kpi).props["value"] == 42000
    assert len(body_of(tree, chart).props["rows"]) == 12
    assert body_of(tree, table).props["columns"] == ["asset", "sector", "value", "weight", "return_ytd"]
    assert body_of(tree, text).props["value"] == "Hello"


def test_frame_carries_layout_and_size(renderer, store):
    widget_id = store.add_widget("text")
    frame = render_all(renderer, store).children[0]
    assert frame.props["id"] == widget_id
    assert (frame.props["w"], frame.props["h"]) == (4, 2)


def test_unbound_chart_shows_empty_state(renderer, store):
    widget_id = store.add_widget("chart")
    assert body_of(render_all(renderer, store), widget_id).tag == "empty"


def test_override_replaces_builtin(renderer, store):
    widget_id = store.add_widget("kpi", data_binding=DataBinding(dataset_id="sales"))
    store.set_custom_code(widget_id, 'return Text(len(data["rows"]))')
    tree = render_all(renderer, store)
    assert body_of(tree, widget_id).tag == "text"
    assert body_of(tree, widget_id).props["value"] == "12"
    assert tree.children[0].props["overrideActive"] is True


def test_runtime_error_is_isolated(renderer, store, caplog):
    broken = store.add_widget("kpi")
    healthy = store.add_widget("text", {"content": "still here"})
    store.set_custom_code(broken, 'return Text(config["missing"])')

    with caplog.at_level(logging.ERROR):
        tree = render_all(renderer, store)

    error = body_of(tree, broken)
    assert error.tag == "error"
    assert "missing" in error.props["message"]
    assert body_of(tree, healthy).props["value"] == "still here"
    assert any("Render failed" in r.message for r in caplog.records)


def test_compile_failure_falls_back_with_banner(renderer, store):
    widget_id = store.add_widget("text", {"content": "default"})
    # 绕过校验，模拟外部导入的无效代码
    store.spec.get_widget(widget_id).custom_code = "return ("
    body = body_of(render_all(renderer, store), widget_id)
    assert body.tag == "fallback"
    assert body.children[0].tag == "error"
    assert body.children[1].props["value"] == "default"


def test_global_filter_applies_to_bound_widgets(renderer, store, filter_store):
    table = store.add_widget("table", data_binding=DataBinding(dataset_id="sales"))
    other = store.add_widget("table", data_binding=DataBinding(dataset_id="tokens"))
    select_value(filter_store, {"datasetId": "sales", "field": "region"}, "West")

    tree = render_all(renderer, store)
    assert len(body_of(tree, table).props["rows"]) == 3
    assert len(body_of(tree, other).props["rows"]) == 8


def test_container_cells_render_independently(renderer, store):
    widget_id = store.add_widget("container")
    store.set_cell(widget_id, 0, {
        "type": "kpi", "title": "Units", "config": {"label": "Units", "valueField": "units"},
        "dataBinding": {"datasetId": "sales"},
    })
    store.add_cell(widget_id, 1, "text", {"content": "note"})
    store.add_cell(widget_id, 2, "text")
    store.set_cell_custom_code(widget_id, 2, "return Text(1 / 0)")

    container = body_of(render_all(renderer, store), widget_id)
    assert container.tag == "container"
    first, second, third, fourth = container.children
    assert first.tag == "cell"
    assert first.children[0].props["value"] == 120
    assert second.children[0].props["value"] == "note"
    assert third.children[0].tag == "error"
    assert third.props["overrideActive"] is True
    assert fourth.tag == "empty-cell"


def test_unknown_cell_type(renderer, store):
    widget_id = store.add_widget("container", {"cols": 1, "rows": 1})
    store.set_cell(widget_id, 0, {"type": "gauge", "config": {}})
    container = body_of(render_all(renderer, store), widget_id)
    assert container.children[0].children[0].tag == "error"


def test_override_mutation_does_not_reach_document(renderer, store):
    widget_id = store.add_widget("table", {"columns": ["month"]}, data_binding=DataBinding(dataset_id="sales"))
    store.set_custom_code(widget_id, 'config["columns"].append("hacked")\nreturn Text("x")')
    depth = store.history.undo_depth

    render_all(renderer, store)
    render_all(renderer, store)
    assert store.spec.get_widget(widget_id).config["columns"] == ["month"]
    assert store.history.undo_depth == depth


def test_malformed_cell_is_isolated(renderer, store):
    container = store.add_widget("container")
    store.add_cell(container, 0, "text", {"content": "ok"})
    healthy = store.add_widget("text", {"content": "still here"})
    # 直接写入非法单元格，模拟绕过校验的数据
    store.spec.get_widget(container).config["cells"][1] = "junk"
    store.spec.get_widget(container).config["cells"][2] = {"type": "text", "config": "bad"}

    tree = render_all(renderer, store)
    cells = body_of(tree, container).children
    assert cells[0].children[0].props["value"] == "ok"
    assert cells[1].tag == "error"
    assert cells[2].tag == "error"
    assert body_of(tree, healthy).props["value"] == "still here"


def test_broken_container_config_fails_only_its_frame(renderer, store):
    broken = store.add_widget("container")
    healthy = store.add_widget("text", {"content": "still here"})
    store.spec.get_widget(broken).config["cells"] = 5

    tree = render_all(renderer, store)
    frame = next(c for c in tree.children if c.props["id"] == broken)
    assert frame.tag == "widget"
    assert frame.children[0].tag == "error"
    assert body_of(tree, healthy).props["value"] == "still here"


def test_hook_state_pruned_for_removed_widgets(renderer, store):
    kept = store.add_widget("text")
    removed = store.add_widget("text")
    for widget_id in (kept, removed):
        store.set_custom_code(widget_id, "count, set_count = use_state(0)\nreturn Text(count)")
    render_all(renderer, store)
    assert set(renderer._states) == {kept, removed}

    store.remove_widget(removed)
    render_all(renderer, store)
    assert set(renderer._states) == {kept}
