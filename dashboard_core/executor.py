"""
执行器：把 ToolCall 校验后映射到 DashboardStore 操作。

Every call follows the same contract: unknown name, then parameter
validation, then application through the store. Nothing raises out of
``execute``; failures come back as ``ToolResult(success=False)``.
"""

import logging
from typing import Any, Awaitable, Callable, Dict

from pydantic import ValidationError

from dashboard_core.models import DataBinding
from dashboard_core.providers import DatasetProvider
from dashboard_core.registry import WidgetRegistry
from dashboard_core.store import DashboardStore, widget_summaries
from dashboard_core.tools import (
    AddFilterWidgetParams,
    AddWidgetParams,
    SetDataBindingParams,
    SetNameParams,
    ToolCall,
    ToolResult,
    UpdateConfigParams,
    UpdateLayoutParams,
    UpdateTitleParams,
    WidgetRef,
    params_model,
)

logger = logging.getLogger(__name__)


def format_validation_error(error: ValidationError) -> str:
    """First error as ``"<field>: <message>"``."""
    first = error.errors()[0]
    loc = ".".join(str(part) for part in first.get("loc", ())) or "params"
    return f"{loc}: {first.get('msg', 'invalid value')}"


class ToolExecutor:
    """Applies agent tool calls to one dashboard store."""

    def __init__(self, store: DashboardStore, provider: DatasetProvider, registry: WidgetRegistry = None):
        self.store = store
        self.provider = provider
        self.registry = registry if registry is not None else store.registry
        self._handlers: Dict[str, Callable[[Any], Awaitable[Any]]] = {
            "add_widget": self._add_widget,
            "add_filter_widget": self._add_filter_widget,
            "remove_widget": self._remove_widget,
            "update_widget_config": self._update_widget_config,
            "update_widget_title": self._update_widget_title,
            "set_data_binding": self._set_data_binding,
            "update_layout": self._update_layout,
            "set_dashboard_name": self._set_dashboard_name,
            "list_widgets": self._list_widgets,
            "list_datasets": self._list_datasets,
            "get_dashboard_spec": self._get_dashboard_spec,
        }

    async def execute(self, call: ToolCall) -> ToolResult:
        handler = self._handlers.get(call.name)
        model = params_model(call.name)
        if handler is None or model is None:
            logger.warning(f"Unknown tool: {call.name}")
            return ToolResult(success=False, error=f"Unknown tool: {call.name}")

        try:
            params = model.model_validate(call.params or {})
        except ValidationError as e:
            message = format_validation_error(e)
            logger.warning(f"[{call.name}] Invalid params: {message}")
            return ToolResult(success=False, error=message)

        try:
            data = await handler(params)
        except ValidationError as e:
            message = format_validation_error(e)
            logger.warning(f"[{call.name}] Rejected: {message}")
            return ToolResult(success=False, error=message)
        except Exception as e:
            logger.warning(f"[{call.name}] Failed: {e}")
            return ToolResult(success=False, error=str(e) or e.__class__.__name__)

        logger.debug(f"[{call.name}] ok")
        return ToolResult(success=True, data=data)

    # ── 变更命令 ──────────────────────────────────────

    async def _add_widget(self, p: AddWidgetParams):
        defaults, _ = self.registry.defaults_for(p.type)
        self.registry.validate_config(p.type, {**defaults, **p.config})
        binding = DataBinding(dataset_id=p.dataset_id) if p.dataset_id else None
        widget_id = self.store.add_widget(
            p.type, p.config, title=p.title, data_binding=binding, x=p.x, y=p.y, w=p.w, h=p.h,
        )
        return {"id": widget_id}

    async def _add_filter_widget(self, p: AddFilterWidgetParams):
        config: Dict[str, Any] = {"datasetId": p.dataset_id, "field": p.field}
        if p.display_type:
            config["displayType"] = p.display_type
        if p.options:
            config["options"] = list(p.options)
        if p.title:
            config["label"] = p.title
        defaults, _ = self.registry.defaults_for("filter")
        self.registry.validate_config("filter", {**defaults, **config})
        widget_id = self.store.add_widget(
            "filter", config, title=p.title or "Filter", x=p.x, y=p.y, w=p.w, h=p.h,
        )
        return {"id": widget_id}

    async def _remove_widget(self, p: WidgetRef):
        self.store.remove_widget(p.id)

    async def _update_widget_config(self, p: UpdateConfigParams):
        widget = self.store.spec.get_widget(p.id)
        if widget is not None:
            self.registry.validate_config(widget.type, {**widget.config, **p.config})
        self.store.update_config(p.id, p.config)

    async def _update_widget_title(self, p: UpdateTitleParams):
        self.store.update_title(p.id, p.title)

    async def _set_data_binding(self, p: SetDataBindingParams):
        self.store.set_data_binding(p.id, DataBinding(dataset_id=p.dataset_id))

    async def _update_layout(self, p: UpdateLayoutParams):
        patch = {key: value for key, value in p.model_dump(include={"x", "y", "w", "h"}).items() if value is not None}
        layout = [
            item.model_copy(update=patch) if item.widget_id == p.id else item
            for item in self.store.spec.layout
        ]
        self.store.update_layout(layout)

    async def _set_dashboard_name(self, p: SetNameParams):
        self.store.set_name(p.name)

    # ── 只读命令 ──────────────────────────────────────

    async def _list_widgets(self, p):
        return widget_summaries(self.store.spec)

    async def _list_datasets(self, p):
        datasets = []
        for info in await self.provider.list_datasets():
            fields = await self.provider.get_fields(info.id)
            datasets.append({
                "id": info.id,
                "name": info.name,
                "fields": [f.model_dump() for f in fields],
            })
        return datasets

    async def _get_dashboard_spec(self, p):
        return self.store.spec.to_wire()
