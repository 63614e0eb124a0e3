import pytest
from pydantic import ValidationError

from dashboard_core.code_runner import CustomCodeError
from dashboard_core.models import DashboardDocument, DataBinding, LayoutItem, WidgetType
from dashboard_core.store import (
    LayoutMismatchError,
    check_layout,
    normalize_document,
    widget_summaries,
)


def assert_consistent(document: DashboardDocument):
    check_layout(document)
    assert document.widget_ids() == document.layout_ids()


def test_new_store_is_empty(store):
    assert store.spec.widgets == []
    assert store.spec.layout == []
    assert store.spec.version == 1
    assert not store.history.can_undo


def test_add_widget_uses_registry_defaults(store):
    widget_id = store.add_widget("kpi")
    widget = store.spec.get_widget(widget_id)
    item = store.spec.get_layout_item(widget_id)

    assert widget.type == WidgetType.KPI
    assert widget.title == "New Kpi"
    assert widget.config["label"] == "KPI"
    assert (item.x, item.y, item.w, item.h) == (0, 0, 3, 2)
    assert store.selection.selected_widget_id == widget_id
    assert_consistent(store.spec)


def test_add_widget_stacks_below_content(store):
    store.add_widget("chart")
    second = store.add_widget("text")
    assert store.spec.get_layout_item(second).y == 4


def test_add_and_remove_keep_layout_in_sync(store):
    ids = [store.add_widget(t) for t in ("kpi", "chart", "table", "text", "container", "filter")]
    assert len(store.spec.widgets) == 6
    assert len(store.spec.layout) == 6

    store.remove_widget(ids[1])
    store.remove_widget(ids[4])
    assert len(store.spec.widgets) == 4
    assert len(store.spec.layout) == 4
    assert_consistent(store.spec)


def test_remove_unknown_widget_is_noop(store):
    store.add_widget("kpi")
    before = store.spec
    store.remove_widget("missing")
    assert store.spec is before
    assert store.history.undo_depth == 1


def test_remove_clears_selection(store):
    widget_id = store.add_widget("kpi")
    store.remove_widget(widget_id)
    assert store.selection.selected_widget_id is None


def test_update_config_merges_shallowly(store):
    widget_id = store.add_widget("kpi")
    store.update_config(widget_id, {"prefix": "$", "extra": 1})
    config = store.spec.get_widget(widget_id).config
    assert config["prefix"] == "$"
    assert config["extra"] == 1
    assert config["label"] == "KPI"


def test_mutations_do_not_touch_previous_snapshots(store):
    widget_id = store.add_widget("kpi")
    before = store.spec
    store.update_title(widget_id, "Revenue")
    assert before.get_widget(widget_id).title == "New Kpi"
    assert store.spec.get_widget(widget_id).title == "Revenue"


def test_filter_binding_moves_into_config(store):
    widget_id = store.add_widget("filter", {"field": "region"}, data_binding=DataBinding(dataset_id="sales"))
    widget = store.spec.get_widget(widget_id)
    assert widget.data_binding is None
    assert widget.config["datasetId"] == "sales"

    store.set_data_binding(widget_id, DataBinding(dataset_id="tokens"))
    widget = store.spec.get_widget(widget_id)
    assert widget.data_binding is None
    assert widget.config["datasetId"] == "tokens"


def test_update_layout_wholesale(store):
    a = store.add_widget("kpi")
    b = store.add_widget("text")
    store.update_layout([
        LayoutItem(widget_id=a, x=6, y=0, w=6, h=2),
        {"i": b, "x": 0, "y": 0, "w": 6, "h": 2},
    ])
    assert store.spec.get_layout_item(a).x == 6
    assert store.spec.get_layout_item(b).w == 6


def test_update_layout_rejects_mismatched_ids(store):
    a = store.add_widget("kpi")
    store.add_widget("text")
    before = store.spec
    depth = store.history.undo_depth

    with pytest.raises(LayoutMismatchError):
        store.update_layout([LayoutItem(widget_id=a)])
    with pytest.raises(LayoutMismatchError):
        store.update_layout([LayoutItem(widget_id=a), LayoutItem(widget_id="ghost")])

    assert store.spec is before
    assert store.history.undo_depth == depth


def test_set_custom_code_rejects_invalid_source(store):
    widget_id = store.add_widget("kpi")
    with pytest.raises(CustomCodeError):
        store.set_custom_code(widget_id, "return (")
    assert store.spec.get_widget(widget_id).custom_code is None

    store.set_custom_code(widget_id, 'return Text("hi")')
    assert store.spec.get_widget(widget_id).custom_code == 'return Text("hi")'
    store.set_custom_code(widget_id, None)
    assert store.spec.get_widget(widget_id).custom_code is None


def test_undo_redo_restore_exact_documents(store):
    store.set_name("Sales")
    widget_id = store.add_widget("chart")
    after_add = store.spec

    assert store.undo()
    assert store.spec.get_widget(widget_id) is None
    assert store.spec.name == "Sales"
    assert store.redo()
    assert store.spec == after_add
    assert not store.redo()


def test_noop_mutation_records_no_history(store):
    store.set_name("Same")
    depth = store.history.undo_depth
    store.set_name("Same")
    assert store.history.undo_depth == depth


def test_selection_is_not_part_of_history(store):
    first = store.add_widget("kpi")
    store.add_widget("text")
    store.select_widget(first)
    store.undo()
    assert store.selection.selected_widget_id == first


def test_open_resets_history_and_selection(store):
    store.add_widget("kpi")
    store.open(DashboardDocument(name="Other"))
    assert store.spec.name == "Other"
    assert not store.history.can_undo
    assert store.selection.selected_widget_id is None


def test_set_spec_validates_and_is_undoable(store):
    store.set_spec({
        "id": "doc1",
        "name": "Imported",
        "version": 1,
        "layout": [{"widgetId": "w1", "x": 0, "y": 0, "w": 3, "h": 2}],
        "widgets": [{"id": "w1", "type": "text", "title": "Note", "config": {"content": "hi"}}],
    })
    assert store.spec.name == "Imported"
    assert store.undo()
    assert store.spec.widgets == []


def test_update_page_settings_accepts_either_key_style(store):
    store.update_page_settings({"layoutMode": "portrait-fixed", "row_height": 60})
    settings = store.spec.page_settings
    assert settings.layout_mode.value == "portrait-fixed"
    assert settings.row_height == 60
    assert settings.page_width == 1200


def test_normalize_repairs_layout(registry):
    document = DashboardDocument.model_validate({
        "layout": [
            {"widgetId": "a", "x": 0, "y": 0, "w": 4, "h": 2},
            {"widgetId": "a", "x": 4, "y": 0, "w": 4, "h": 2},
            {"widgetId": "orphan"},
        ],
        "widgets": [
            {"id": "a", "type": "kpi"},
            {"id": "b", "type": "chart"},
        ],
    })
    normalize_document(document, registry)
    assert_consistent(document)
    assert document.get_layout_item("b").y == 2
    assert (document.get_layout_item("b").w, document.get_layout_item("b").h) == (6, 4)


def test_widget_summaries(store):
    widget_id = store.add_widget("text", title="Intro")
    assert widget_summaries(store.spec) == [{"id": widget_id, "type": "text", "title": "Intro"}]


def test_container_cells(store):
    widget_id = store.add_widget("container")
    assert store.spec.get_widget(widget_id).config["cells"] == [None, None, None, None]

    store.add_cell(widget_id, 2, "kpi", {"label": "Units"})
    cells = store.spec.get_widget(widget_id).config["cells"]
    assert cells[2]["type"] == "kpi"
    assert cells[2]["config"]["label"] == "Units"
    assert store.selection.selected_cell_index == 2

    store.set_cell_custom_code(widget_id, 2, 'return Text("cell")')
    assert store.spec.get_widget(widget_id).config["cells"][2]["config"]["_customCode"] == 'return Text("cell")'

    store.set_cell(widget_id, 2, None)
    assert store.spec.get_widget(widget_id).config["cells"][2] is None
    assert store.selection.selected_cell_index is None


def test_container_resize_reflows_cells(store):
    widget_id = store.add_widget("container")
    store.add_cell(widget_id, 0, "kpi")
    store.add_cell(widget_id, 3, "text")
    store.update_config(widget_id, {"cols": 1, "rows": 1})
    cells = store.spec.get_widget(widget_id).config["cells"]
    assert len(cells) == 1
    assert cells[0]["type"] == "kpi"


def test_set_spec_rejects_invalid_widget_config(store):
    store.add_widget("text")
    before = store.spec
    with pytest.raises(ValidationError):
        store.set_spec({
            "widgets": [{"id": "w1", "type": "kpi", "config": {"fontSize": 12345}}],
            "layout": [{"widgetId": "w1"}],
        })
    assert store.spec is before
