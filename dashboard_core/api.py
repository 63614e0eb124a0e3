"""
FastAPI 路由：暴露 REST API 供编辑器前端和外部调用。
"""

import logging
from typing import Any, Optional

from fastapi import APIRouter, HTTPException, Response

from dashboard_core.agent import AgentService, MockAgentService
from dashboard_core.batch import BatchRunner
from dashboard_core.code_gen import generate_widget_code
from dashboard_core.code_runner import CustomCodeError
from dashboard_core.config_loader import AppConfig, load_datasets
from dashboard_core.data_resolver import DataResolver
from dashboard_core.executor import ToolExecutor
from dashboard_core.filters import (
    ActiveFilter,
    FilterStore,
    load_filter_options,
    select_date_range,
    select_value,
)
from dashboard_core.models import DashboardDocument, WidgetSpec, WidgetType
from dashboard_core.persistence import (
    DashboardImportError,
    DashboardRepository,
    export_dashboard,
    import_dashboard,
)
from dashboard_core.providers import Dataset, DatasetProvider, LocalDatasetProvider
from dashboard_core.registry import WidgetRegistry, default_registry
from dashboard_core.renderer import OVERRIDE_WARNING, WidgetRenderer
from dashboard_core.store import DashboardStore, create_empty
from dashboard_core.tools import ToolCall, ToolResult, get_tools

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


class BuilderSession:
    """One editing session: the open document plus everything that acts on it."""

    def __init__(
        self,
        config: AppConfig,
        repository: DashboardRepository,
        provider: Optional[DatasetProvider] = None,
        agent: Optional[AgentService] = None,
        registry: WidgetRegistry = default_registry,
    ):
        self.config = config
        self.repository = repository
        if provider is None:
            provider = LocalDatasetProvider()
            if config.datasets_file:
                for raw in load_datasets(config.resolve_path(config.datasets_file)):
                    provider.add_dataset(Dataset.model_validate(raw))
        self.provider = provider
        self.registry = registry
        self.store = DashboardStore(registry, history_limit=config.history_limit)
        self.filters = FilterStore()
        self.resolver = DataResolver(provider, ttl=config.query_cache_ttl)
        self.renderer = WidgetRenderer(registry, self.resolver, self.filters)
        self.executor = ToolExecutor(self.store, provider, registry)
        self.batch = BatchRunner(self.executor, step_delay=config.agent_step_delay)
        self.agent = agent if agent is not None else MockAgentService()

    def open(self, document: DashboardDocument):
        """Navigate to another document; the viewing session starts over."""
        self.store.open(document)
        self.filters.clear_all()
        self.renderer.reset_state()

    def history_state(self) -> dict:
        return {"canUndo": self.store.history.can_undo, "canRedo": self.store.history.can_redo}


# main.py 注入
_session: Optional[BuilderSession] = None


def init_api(session: BuilderSession):
    """注入全局依赖（由 main.py 调用）。"""
    global _session
    _session = session


def _require_widget(widget_id: str) -> WidgetSpec:
    widget = _session.store.spec.get_widget(widget_id)
    if widget is None:
        raise HTTPException(404, f"Widget {widget_id} not found")
    return widget


# ── 仪表盘存储 ────────────────────────────────────────

@router.get("/dashboards")
async def list_dashboards() -> list[dict]:
    return [
        {"id": d.id, "name": d.name, "widgetCount": len(d.widgets)}
        for d in _session.repository.list_dashboards()
    ]


@router.post("/dashboards")
async def create_dashboard(data: Optional[dict[str, Any]] = None) -> dict[str, Any]:
    """Create, persist and open an empty dashboard."""
    document = create_empty()
    if data and data.get("name"):
        document.name = str(data["name"])
    _session.repository.save_dashboard(document)
    _session.open(document)
    logger.info(f"[{document.id}] Created dashboard '{document.name}'")
    return document.to_wire()


@router.get("/dashboards/{dashboard_id}")
async def get_dashboard(dashboard_id: str) -> dict[str, Any]:
    document = _load_or_404(dashboard_id)
    return document.to_wire()


@router.delete("/dashboards/{dashboard_id}")
async def delete_dashboard(dashboard_id: str) -> dict:
    if _session.repository.delete_dashboard(dashboard_id):
        return {"message": "Deleted"}
    raise HTTPException(404, f"Dashboard {dashboard_id} not found")


@router.post("/dashboards/{dashboard_id}/open")
async def open_dashboard(dashboard_id: str) -> dict[str, Any]:
    document = _load_or_404(dashboard_id)
    _session.open(document)
    return _session.store.spec.to_wire()


def _load_or_404(dashboard_id: str) -> DashboardDocument:
    try:
        document = _session.repository.load_dashboard(dashboard_id)
    except DashboardImportError as e:
        raise HTTPException(422, str(e))
    if document is None:
        raise HTTPException(404, f"Dashboard {dashboard_id} not found")
    return document


# ── 当前文档 ──────────────────────────────────────────

@router.get("/dashboard")
async def current_dashboard() -> dict[str, Any]:
    selection = _session.store.selection
    return {
        "spec": _session.store.spec.to_wire(),
        "selection": {"widgetId": selection.selected_widget_id, "cellIndex": selection.selected_cell_index},
        **_session.history_state(),
    }


@router.put("/dashboard")
async def replace_dashboard(data: dict[str, Any]) -> dict[str, Any]:
    try:
        _session.store.set_spec(data)
    except ValueError as e:
        raise HTTPException(422, str(e))
    return _session.store.spec.to_wire()


@router.post("/dashboard/save")
async def save_dashboard() -> dict:
    document = _session.store.spec
    _session.repository.save_dashboard(document)
    return {"id": document.id, "message": "Saved"}


@router.post("/dashboard/widgets")
async def add_widget(data: dict[str, Any]) -> dict:
    """Palette drop: add a widget with registry defaults."""
    try:
        widget_type = WidgetType(data.get("type"))
    except ValueError:
        raise HTTPException(422, f"Unknown widget type: {data.get('type')}")
    widget_id = _session.store.add_widget(
        widget_type, data.get("config"), x=data.get("x"), y=data.get("y"),
    )
    return {"id": widget_id}


@router.put("/dashboard/widgets/{widget_id}/code")
async def set_widget_code(widget_id: str, data: dict[str, Any]) -> dict:
    """Set override code, or reset it with ``{"code": null}``."""
    _require_widget(widget_id)
    try:
        _session.store.set_custom_code(widget_id, data.get("code"))
    except CustomCodeError as e:
        raise HTTPException(422, str(e))
    _session.renderer.reset_state(widget_id)
    return {"id": widget_id, "overrideActive": data.get("code") is not None}


@router.get("/dashboard/widgets/{widget_id}/code")
async def get_widget_code(widget_id: str) -> dict:
    """Current override, or generated starter code equivalent to the default renderer."""
    widget = _require_widget(widget_id)
    if widget.custom_code is not None:
        return {"code": widget.custom_code, "generated": False, "warning": OVERRIDE_WARNING}
    return {
        "code": generate_widget_code(widget.type.value, widget.config),
        "generated": True,
        "warning": OVERRIDE_WARNING,
    }


# ── 工具调用 / Agent ──────────────────────────────────

@router.get("/tools")
async def list_tools() -> list[dict]:
    return get_tools()


@router.post("/tools/execute")
async def execute_tool(call: ToolCall) -> ToolResult:
    return await _session.executor.execute(call)


@router.post("/agent/chat")
async def agent_chat(data: dict[str, Any]) -> dict:
    prompt = str(data.get("prompt", "")).strip()
    if not prompt:
        raise HTTPException(400, "Missing 'prompt'")
    calls = await _session.agent.chat(prompt, _session.store.spec)
    steps = await _session.batch.run(calls)
    return {"steps": [s.model_dump(mode="json") for s in steps], **_session.history_state()}


# ── 历史 ──────────────────────────────────────────────

@router.post("/undo")
async def undo() -> dict:
    return {"applied": _session.store.undo(), **_session.history_state()}


@router.post("/redo")
async def redo() -> dict:
    return {"applied": _session.store.redo(), **_session.history_state()}


# ── 渲染与过滤 ────────────────────────────────────────

@router.get("/render")
async def render() -> dict[str, Any]:
    tree = await _session.renderer.render_dashboard(_session.store.spec)
    return tree.model_dump(mode="json")


@router.put("/filters/{key}")
async def set_filter(key: str, active: ActiveFilter) -> dict:
    _session.filters.set_filter(key, active)
    return {"count": len(_session.filters)}


@router.delete("/filters/{key}")
async def clear_filter(key: str) -> dict:
    _session.filters.clear_filter(key)
    return {"count": len(_session.filters)}


@router.delete("/filters")
async def clear_filters() -> dict:
    _session.filters.clear_all()
    return {"count": 0}


@router.post("/filters/select/{widget_id}")
async def select_filter(widget_id: str, data: dict[str, Any]) -> dict:
    """Apply a filter widget's selection: ``value``, or ``from``/``to`` for date ranges."""
    widget = _require_widget(widget_id)
    if widget.type != WidgetType.FILTER or not widget.config.get("datasetId") or not widget.config.get("field"):
        raise HTTPException(400, f"Widget {widget_id} is not a configured filter")
    if widget.config.get("displayType") == "date-range":
        select_date_range(_session.filters, widget.config, data.get("from"), data.get("to"))
    else:
        select_value(_session.filters, widget.config, data.get("value"))
    return {"count": len(_session.filters)}


@router.get("/filters/options/{widget_id}")
async def filter_options(widget_id: str) -> list:
    widget = _require_widget(widget_id)
    return await load_filter_options(_session.provider, widget.config)


# ── 导入导出 ──────────────────────────────────────────

@router.get("/export")
async def export_current() -> Response:
    return Response(content=export_dashboard(_session.store.spec), media_type="application/json")


@router.post("/import")
async def import_current(data: dict[str, Any]) -> dict[str, Any]:
    """Load exported JSON text into the editor (undoable)."""
    try:
        document = import_dashboard(str(data.get("text", "")), reassign_id=bool(data.get("reassignId", False)))
    except DashboardImportError as e:
        raise HTTPException(422, str(e))
    _session.store.set_spec(document)
    return _session.store.spec.to_wire()
