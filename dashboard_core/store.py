"""
Dashboard store: the document model's mutation API.

Every mutation runs copy-on-write against a draft of the current document and
swaps it in only on success, so callers never observe a half-applied change.
Each change that alters the document records the previous snapshot in history.
"""

import copy
import logging
from typing import Any, Callable, Dict, Iterable, List, Optional, TypeVar, Union

from dashboard_core import containers
from dashboard_core.code_runner import CustomCodeError, validate_custom_code
from dashboard_core.history import DEFAULT_HISTORY_LIMIT, HistoryManager
from dashboard_core.models import (
    DashboardDocument,
    DataBinding,
    LayoutItem,
    PageSettings,
    WidgetSpec,
    WidgetType,
    new_id,
)
from dashboard_core.registry import WidgetRegistry, default_registry

logger = logging.getLogger(__name__)

T = TypeVar("T")


class LayoutMismatchError(ValueError):
    """Layout entries and widgets do not reference the same set of ids."""


class SelectionState:
    """UI focus. Lives outside the document so undo/redo never moves it."""

    def __init__(self):
        self.selected_widget_id: Optional[str] = None
        self.selected_cell_index: Optional[int] = None

    def select_widget(self, widget_id: Optional[str]):
        if widget_id != self.selected_widget_id:
            self.selected_cell_index = None
        self.selected_widget_id = widget_id

    def select_cell(self, index: Optional[int]):
        self.selected_cell_index = index

    def clear(self):
        self.selected_widget_id = None
        self.selected_cell_index = None


def create_empty() -> DashboardDocument:
    return DashboardDocument(id=new_id())


def check_layout(document: DashboardDocument):
    """Raise LayoutMismatchError unless layout and widgets reference exactly the same ids."""
    layout_ids = [item.widget_id for item in document.layout]
    if len(layout_ids) != len(set(layout_ids)):
        raise LayoutMismatchError("Layout contains duplicate widget ids")
    widget_ids = document.widget_ids()
    if set(layout_ids) != widget_ids:
        orphans = sorted(set(layout_ids) - widget_ids)
        missing = sorted(widget_ids - set(layout_ids))
        raise LayoutMismatchError(f"Layout does not match widgets (orphans={orphans}, missing={missing})")


def check_widget_configs(document: DashboardDocument, registry: WidgetRegistry = default_registry):
    """Validate every widget config (container cells included) against its registry schema.

    Raises pydantic ``ValidationError`` on the first invalid config.
    """
    for widget in document.widgets:
        registry.validate_config(widget.type.value, widget.config)


def normalize_document(document: DashboardDocument, registry: WidgetRegistry = default_registry) -> DashboardDocument:
    """Repair an externally supplied document in place and return it.

    Orphan layout entries are dropped, widgets without a layout entry are
    stacked below existing content, filter bindings are moved into config and
    container cell grids are sized to ``cols * rows``.
    """
    widget_ids = document.widget_ids()
    seen = set()
    layout = []
    for item in document.layout:
        if item.widget_id in widget_ids and item.widget_id not in seen:
            seen.add(item.widget_id)
            layout.append(item)
    document.layout = layout

    for widget in document.widgets:
        if widget.id not in seen:
            _, size = registry.defaults_for(widget.type)
            document.layout.append(LayoutItem(widget_id=widget.id, x=0, y=document.next_row(), **size))
            seen.add(widget.id)
        if widget.type == WidgetType.FILTER and widget.data_binding is not None:
            widget.config.setdefault("datasetId", widget.data_binding.dataset_id)
            widget.data_binding = None
        if widget.type == WidgetType.CONTAINER:
            cols, rows = containers.grid_size(widget.config)
            widget.config["cells"] = containers.normalize_cells(widget.config.get("cells"), cols, rows)
    return document


class DashboardStore:
    """Owns the current document, its history and the (separate) selection state."""

    def __init__(
        self,
        registry: WidgetRegistry = default_registry,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
        document: Optional[DashboardDocument] = None,
    ):
        self.registry = registry
        self.history = HistoryManager(history_limit)
        self.selection = SelectionState()
        self._spec = document if document is not None else create_empty()

    @property
    def spec(self) -> DashboardDocument:
        return self._spec

    # ── 内部 ──────────────────────────────────────────

    def _mutate(self, action: str, fn: Callable[[DashboardDocument], T]) -> T:
        draft = self._spec.model_copy(deep=True)
        result = fn(draft)
        if draft != self._spec:
            self.history.record(self._spec)
            self._spec = draft
            logger.debug(f"[{draft.id}] {action}")
        return result

    def _widget_op(self, widget_id: str, action: str, fn: Callable[[DashboardDocument, WidgetSpec], None]):
        """Apply ``fn`` to one widget; unknown ids are a no-op."""
        if self._spec.get_widget(widget_id) is None:
            logger.debug(f"[{widget_id}] {action}: widget not found, ignored")
            return

        def apply(draft: DashboardDocument):
            fn(draft, draft.get_widget(widget_id))

        self._mutate(action, apply)

    # ── 文档级操作 ────────────────────────────────────

    def new_dashboard(self):
        self._mutate("new dashboard", lambda draft: _replace(draft, create_empty()))
        self.selection.clear()

    def set_spec(self, document: Union[DashboardDocument, Dict[str, Any]]):
        """Replace the whole document with a validated copy (recorded in history)."""
        if isinstance(document, DashboardDocument):
            document = document.model_dump(by_alias=True)
        fresh = DashboardDocument.model_validate(document)
        check_widget_configs(fresh, self.registry)
        fresh = normalize_document(fresh, self.registry)
        self._mutate("set spec", lambda draft: _replace(draft, fresh))
        if self.selection.selected_widget_id not in self._spec.widget_ids():
            self.selection.clear()

    def open(self, document: DashboardDocument):
        """Switch to another document: history and selection start over."""
        self._spec = normalize_document(document.model_copy(deep=True), self.registry)
        self.history.clear()
        self.selection.clear()
        logger.info(f"[{self._spec.id}] Opened dashboard '{self._spec.name}'")

    def set_name(self, name: str):
        def apply(draft: DashboardDocument):
            draft.name = name

        self._mutate("set name", apply)

    def update_page_settings(self, settings: Dict[str, Any]):
        def apply(draft: DashboardDocument):
            merged = draft.page_settings.model_dump(by_alias=True)
            for key, value in settings.items():
                field = PageSettings.model_fields.get(key)
                merged[field.alias if field is not None and field.alias else key] = value
            draft.page_settings = PageSettings.model_validate(merged)

        self._mutate("update page settings", apply)

    # ── 组件操作 ──────────────────────────────────────

    def add_widget(
        self,
        widget_type: Union[WidgetType, str],
        config_overrides: Optional[Dict[str, Any]] = None,
        *,
        title: Optional[str] = None,
        data_binding: Optional[DataBinding] = None,
        x: Optional[int] = None,
        y: Optional[int] = None,
        w: Optional[int] = None,
        h: Optional[int] = None,
    ) -> str:
        """Add a widget with registry defaults and return its new id."""
        widget_type = WidgetType(widget_type)
        defaults, size = self.registry.defaults_for(widget_type)
        config = {**defaults, **copy.deepcopy(config_overrides or {})}
        binding = data_binding

        if widget_type == WidgetType.FILTER and binding is not None:
            # 过滤器组件把数据集放在 config 中，不带顶层 dataBinding
            config["datasetId"] = binding.dataset_id
            binding = None
        if widget_type == WidgetType.CONTAINER:
            cols, rows = containers.grid_size(config)
            config["cells"] = containers.normalize_cells(config.get("cells"), cols, rows)

        widget_id = new_id()

        def apply(draft: DashboardDocument):
            draft.widgets.append(WidgetSpec(
                id=widget_id,
                type=widget_type,
                title=title if title is not None else f"New {widget_type.value.capitalize()}",
                config=config,
                data_binding=binding.model_copy(deep=True) if binding is not None else None,
            ))
            draft.layout.append(LayoutItem(
                widget_id=widget_id,
                x=x if x is not None else 0,
                y=y if y is not None else draft.next_row(),
                w=w if w is not None else size["w"],
                h=h if h is not None else size["h"],
            ))

        self._mutate(f"add {widget_type.value} widget {widget_id}", apply)
        self.selection.select_widget(widget_id)
        return widget_id

    def remove_widget(self, widget_id: str):
        def apply(draft: DashboardDocument, widget: WidgetSpec):
            draft.widgets = [w for w in draft.widgets if w.id != widget_id]
            draft.layout = [item for item in draft.layout if item.widget_id != widget_id]

        self._widget_op(widget_id, "remove widget", apply)
        if self.selection.selected_widget_id == widget_id:
            self.selection.clear()

    def update_config(self, widget_id: str, config: Dict[str, Any]):
        """Shallow-merge ``config`` into the widget's config; unknown keys are kept."""
        def apply(draft: DashboardDocument, widget: WidgetSpec):
            partial = copy.deepcopy(config)
            if widget.type == WidgetType.CONTAINER:
                widget.config = containers.apply_container_update(widget.config, partial)
            else:
                widget.config = {**widget.config, **partial}

        self._widget_op(widget_id, "update config", apply)

    def update_title(self, widget_id: str, title: str):
        def apply(draft: DashboardDocument, widget: WidgetSpec):
            widget.title = title

        self._widget_op(widget_id, "update title", apply)

    def set_data_binding(self, widget_id: str, binding: Optional[DataBinding]):
        def apply(draft: DashboardDocument, widget: WidgetSpec):
            if widget.type == WidgetType.FILTER:
                if binding is not None:
                    widget.config = {**widget.config, "datasetId": binding.dataset_id}
                return
            widget.data_binding = binding.model_copy(deep=True) if binding is not None else None

        self._widget_op(widget_id, "set data binding", apply)

    def set_custom_code(self, widget_id: str, code: Optional[str]):
        """Set (or with None, reset) override code. Invalid code is rejected, never stored."""
        if code is not None:
            error = validate_custom_code(code)
            if error:
                raise CustomCodeError(error)

        def apply(draft: DashboardDocument, widget: WidgetSpec):
            widget.custom_code = code

        self._widget_op(widget_id, "set custom code", apply)

    def update_layout(self, items: Iterable[Union[LayoutItem, Dict[str, Any]]]):
        """Replace the layout wholesale. The id set must equal the widget id set."""
        layout = [
            item.model_copy() if isinstance(item, LayoutItem) else LayoutItem.model_validate(item)
            for item in items
        ]

        def apply(draft: DashboardDocument):
            draft.layout = layout
            check_layout(draft)

        self._mutate("update layout", apply)

    # ── 容器单元格 ────────────────────────────────────

    def set_cell(self, widget_id: str, index: int, cell: Optional[Dict[str, Any]]):
        """Fill or clear one container slot."""
        def apply(draft: DashboardDocument, widget: WidgetSpec):
            if widget.type != WidgetType.CONTAINER:
                return
            widget.config = containers.replace_cell(widget.config, index, cell)

        self._widget_op(widget_id, "set cell", apply)
        if cell is None and self.selection.selected_widget_id == widget_id:
            self.selection.select_cell(None)

    def add_cell(self, widget_id: str, index: int, cell_type: str,
                 config_overrides: Optional[Dict[str, Any]] = None, title: str = "") -> None:
        """Fill a container slot with a new cell built from registry defaults."""
        defaults, _ = self.registry.defaults_for(cell_type)
        cell = {"type": cell_type, "title": title, "config": {**defaults, **(config_overrides or {})}}
        self.set_cell(widget_id, index, cell)
        self.selection.select_widget(widget_id)
        self.selection.select_cell(index)

    def set_cell_custom_code(self, widget_id: str, index: int, code: Optional[str]):
        if code is not None:
            error = validate_custom_code(code)
            if error:
                raise CustomCodeError(error)

        def apply(draft: DashboardDocument, widget: WidgetSpec):
            if widget.type != WidgetType.CONTAINER:
                return
            cols, rows = containers.grid_size(widget.config)
            cells = containers.normalize_cells(widget.config.get("cells"), cols, rows)
            if not 0 <= index < len(cells) or cells[index] is None:
                return
            widget.config = containers.replace_cell(widget.config, index, containers.with_cell_code(cells[index], code))

        self._widget_op(widget_id, "set cell custom code", apply)

    # ── 历史 ──────────────────────────────────────────

    def undo(self) -> bool:
        previous = self.history.undo(self._spec)
        if previous is None:
            return False
        self._spec = previous
        return True

    def redo(self) -> bool:
        following = self.history.redo(self._spec)
        if following is None:
            return False
        self._spec = following
        return True

    def select_widget(self, widget_id: Optional[str]):
        self.selection.select_widget(widget_id)


def _replace(draft: DashboardDocument, fresh: DashboardDocument):
    for name in DashboardDocument.model_fields:
        setattr(draft, name, copy.deepcopy(getattr(fresh, name)))


def widget_summaries(document: DashboardDocument) -> List[Dict[str, Any]]:
    return [{"id": w.id, "type": w.type.value, "title": w.title} for w in document.widgets]
