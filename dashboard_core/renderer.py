"""
Render layer: picks the registry renderer or a compiled override for each widget
(and each container cell) and isolates rendering faults per unit.
"""

import asyncio
import copy
import logging
from typing import Any, Callable, Dict, Optional

from dashboard_core.code_runner import RenderState, compile_custom_widget
from dashboard_core.containers import CELL_CODE_KEY, grid_size, normalize_cells
from dashboard_core.data_resolver import DataResolver
from dashboard_core.elements import Element, Error
from dashboard_core.filters import FilterSnapshot, FilterStore
from dashboard_core.models import DashboardDocument, DataBinding, LayoutItem, WidgetSpec
from dashboard_core.registry import WidgetRegistry
from dashboard_core.renderers import render_unknown

logger = logging.getLogger(__name__)

GRID_COLUMNS = 12

OVERRIDE_WARNING = (
    "Custom code fully replaces this widget's default rendering. "
    "Changes made in the inspector will have no visible effect until the code is reset."
)


class WidgetRenderer:
    """Renders documents into element trees. Never raises for a single widget's failure."""

    def __init__(self, registry: WidgetRegistry, resolver: DataResolver, filter_store: FilterStore):
        self.registry = registry
        self.resolver = resolver
        self.filter_store = filter_store
        self._states: Dict[str, RenderState] = {}

    async def render_dashboard(self, document: DashboardDocument) -> Element:
        # 每次渲染只取一次全局过滤器快照
        snapshot = self.filter_store.snapshot()
        settings = document.page_settings
        col_width = settings.page_width / GRID_COLUMNS
        self._prune_states(document.widget_ids())
        frames = await asyncio.gather(*(
            self._render_frame(widget, snapshot, document.get_layout_item(widget.id), col_width, settings.row_height)
            for widget in document.widgets
        ))
        return Element(
            tag="dashboard",
            props={"id": document.id, "name": document.name, "pageSettings": settings.model_dump(mode="json", by_alias=True)},
            children=list(frames),
        )

    async def _render_frame(
        self,
        widget: WidgetSpec,
        snapshot: FilterSnapshot,
        layout: Optional[LayoutItem],
        col_width: float,
        row_height: int,
    ) -> Element:
        # 单个组件出错只影响自身的 frame
        try:
            return await self.render(widget, snapshot, layout=layout, col_width=col_width, row_height=row_height)
        except Exception as e:
            logger.error(f"[{widget.id}] Widget frame failed: {e}", exc_info=True)
            props: Dict[str, Any] = {
                "id": widget.id,
                "type": widget.type.value,
                "title": widget.title,
                "overrideActive": widget.custom_code is not None,
            }
            if layout is not None:
                props.update(x=layout.x, y=layout.y, w=layout.w, h=layout.h)
            return Element(tag="widget", props=props, children=[Error(f"Runtime error: {e}")])

    async def render(
        self,
        widget: WidgetSpec,
        snapshot: Optional[FilterSnapshot] = None,
        layout: Optional[LayoutItem] = None,
        col_width: float = 100.0,
        row_height: int = 80,
    ) -> Element:
        if snapshot is None:
            snapshot = self.filter_store.snapshot()
        width = int(layout.w * col_width) if layout else 0
        height = layout.h * row_height if layout else 0

        body = await self._render_unit(
            widget.id, widget.type.value, widget.config, widget.data_binding, widget.custom_code,
            snapshot, width, height,
        )
        if widget.type.value == "container":
            await self._fill_cells(widget, body, snapshot, width, height)

        props: Dict[str, Any] = {
            "id": widget.id,
            "type": widget.type.value,
            "title": widget.title,
            "overrideActive": widget.custom_code is not None,
        }
        if layout is not None:
            props.update(x=layout.x, y=layout.y, w=layout.w, h=layout.h)
        return Element(tag="widget", props=props, children=[body])

    async def _fill_cells(self, widget: WidgetSpec, body: Element, snapshot: FilterSnapshot, width: int, height: int):
        if body.tag != "container" or widget.custom_code is not None:
            return
        cols, rows = grid_size(widget.config)
        cells = normalize_cells(widget.config.get("cells"), cols, rows)
        cell_width, cell_height = width // cols, height // rows
        for index, cell in enumerate(cells):
            if cell is None:
                continue
            key = f"{widget.id}/{index}"
            try:
                body.children[index] = await self._render_cell(key, index, cell, snapshot, cell_width, cell_height)
            except Exception as e:
                logger.error(f"[{key}] Cell render failed: {e}", exc_info=True)
                body.children[index] = Error(f"Runtime error: {e}")

    async def _render_cell(
        self, key: str, index: int, cell: Dict[str, Any], snapshot: FilterSnapshot, width: int, height: int,
    ) -> Element:
        if not isinstance(cell, dict):
            return Error(f"Invalid cell: expected an object, got {type(cell).__name__}")
        binding = cell.get("dataBinding") or cell.get("data_binding")
        try:
            binding = DataBinding.model_validate(binding) if binding else None
        except ValueError as e:
            return Error(f"Invalid cell binding: {e}")
        config = cell.get("config") or {}
        if not isinstance(config, dict):
            return Error("Invalid cell config")
        rendered = await self._render_unit(
            key, str(cell.get("type", "")), config, binding,
            config.get(CELL_CODE_KEY), snapshot, width, height,
        )
        return Element(
            tag="cell",
            props={"index": index, "type": cell.get("type"), "title": cell.get("title", ""),
                   "overrideActive": config.get(CELL_CODE_KEY) is not None},
            children=[rendered],
        )

    async def _render_unit(
        self,
        key: str,
        widget_type: str,
        config: Dict[str, Any],
        binding: Optional[DataBinding],
        code: Optional[str],
        snapshot: FilterSnapshot,
        width: int,
        height: int,
    ) -> Element:
        try:
            result = await self.resolver.resolve(binding, snapshot)
        except Exception as e:
            logger.error(f"[{key}] Data query failed: {e}")
            return Error("Error loading data")
        data = result.model_dump(mode="json") if binding is not None else None
        # 渲染器拿到的是副本，不能改动存储中的文档
        config = copy.deepcopy(config)

        entry = self.registry.lookup(widget_type)
        if code:
            compiled = compile_custom_widget(code)
            if compiled is not None:
                state = self._states.setdefault(key, RenderState())
                return self._guard(key, lambda: compiled.render(config, data, width, height, state))
            # 编译失败：回退到默认渲染器并显示错误
            fallback = self._guard(key, lambda: entry.renderer(config, data, width, height)) if entry else render_unknown(widget_type)
            return Element(tag="fallback", children=[Error("Custom code failed to compile"), fallback])

        if entry is None:
            return render_unknown(widget_type)
        return self._guard(key, lambda: entry.renderer(config, data, width, height))

    def _guard(self, key: str, fn: Callable[[], Element]) -> Element:
        """Fault boundary: a failure renders as an inline error for this unit only."""
        try:
            return fn()
        except Exception as e:
            logger.error(f"[{key}] Render failed: {e}", exc_info=True)
            return Error(f"Runtime error: {e}")

    def _prune_states(self, widget_ids: set[str]):
        """Drop hook state for widgets (and their cells) no longer in the document."""
        for key in list(self._states):
            if key.split("/", 1)[0] not in widget_ids:
                del self._states[key]

    def reset_state(self, key: Optional[str] = None):
        """Drop override hook state (all, or one widget/cell key)."""
        if key is None:
            self._states.clear()
        else:
            self._states.pop(key, None)
