import json

import pytest

from dashboard_core.models import DashboardDocument, DataBinding, Filter, FilterOp
from dashboard_core.persistence import (
    DashboardImportError,
    DashboardRepository,
    export_dashboard,
    import_dashboard,
)


@pytest.fixture
def populated(store):
    store.set_name("Quarterly")
    store.add_widget("kpi", {"prefix": "$"}, data_binding=DataBinding(
        dataset_id="sales", filters=[Filter(field="region", op=FilterOp.EQ, value="North")],
    ))
    container = store.add_widget("container")
    store.add_cell(container, 1, "text", {"content": "cell"})
    store.add_widget("filter", {"datasetId": "sales", "field": "region"})
    store.update_page_settings({"layoutMode": "landscape-fixed"})
    return store.spec


def test_round_trip_is_exact(populated):
    text = export_dashboard(populated)
    assert import_dashboard(text) == populated
    assert export_dashboard(import_dashboard(text)) == text


def test_export_is_camel_case_and_indented(populated):
    text = export_dashboard(populated)
    assert text.startswith("{\n  ")
    raw = json.loads(text)
    assert raw["version"] == 1
    assert raw["pageSettings"]["layoutMode"] == "landscape-fixed"
    assert raw["widgets"][0]["dataBinding"]["datasetId"] == "sales"
    assert "widgetId" in raw["layout"][0]


def test_import_rejects_malformed_json():
    with pytest.raises(DashboardImportError, match="Invalid JSON"):
        import_dashboard("{not json")


def test_import_rejects_schema_violations():
    with pytest.raises(DashboardImportError):
        import_dashboard(json.dumps({"version": 2}))
    with pytest.raises(DashboardImportError, match="widgets"):
        import_dashboard(json.dumps({"widgets": [{"id": "a", "type": "gauge"}]}))


def test_import_accepts_legacy_layout_key_and_repairs():
    text = json.dumps({
        "id": "d1",
        "name": "Legacy",
        "version": 1,
        "layout": [{"i": "a", "x": 0, "y": 0, "w": 3, "h": 2}, {"i": "ghost"}],
        "widgets": [{"id": "a", "type": "kpi"}, {"id": "b", "type": "text"}],
    })
    document = import_dashboard(text)
    assert document.layout_ids() == {"a", "b"}


def test_import_can_reassign_id(populated):
    document = import_dashboard(export_dashboard(populated), reassign_id=True)
    assert document.id != populated.id
    assert document.widgets == populated.widgets


def test_repository_crud(tmp_path, populated):
    repo = DashboardRepository(tmp_path / "db" / "dashboards.json")
    try:
        assert repo.list_dashboards() == []
        repo.save_dashboard(populated)
        repo.save_dashboard(DashboardDocument(id="other", name="Other"))

        assert repo.load_dashboard(populated.id) == populated
        assert {d.id for d in repo.list_dashboards()} == {populated.id, "other"}

        renamed = populated.model_copy(update={"name": "Renamed"})
        repo.save_dashboard(renamed)
        assert repo.load_dashboard(populated.id).name == "Renamed"
        assert len(repo.list_dashboards()) == 2

        assert repo.delete_dashboard("other")
        assert not repo.delete_dashboard("other")
        assert repo.load_dashboard("other") is None
    finally:
        repo.close()


def test_repository_persists_across_instances(tmp_path, populated):
    path = tmp_path / "dashboards.json"
    repo = DashboardRepository(path)
    repo.save_dashboard(populated)
    repo.close()

    reopened = DashboardRepository(path)
    try:
        assert reopened.load_dashboard(populated.id) == populated
    finally:
        reopened.close()


def test_import_validates_widget_configs(populated):
    raw = json.loads(export_dashboard(populated))
    raw["widgets"][0]["config"]["fontSize"] = 12345
    with pytest.raises(DashboardImportError, match=r"widgets\.0\.config\.fontSize"):
        import_dashboard(json.dumps(raw))


def test_import_rejects_malformed_container_cells(populated):
    raw = json.loads(export_dashboard(populated))
    container = next(w for w in raw["widgets"] if w["type"] == "container")
    container["config"]["cells"][3] = "junk"
    with pytest.raises(DashboardImportError, match="cells"):
        import_dashboard(json.dumps(raw))

    container["config"]["cells"][3] = None
    container["config"]["cols"] = "x"
    with pytest.raises(DashboardImportError, match="cols"):
        import_dashboard(json.dumps(raw))
