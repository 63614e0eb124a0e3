"""
Widget type registry: binds a type tag to its config schema, defaults and renderer.

New widget types are added by registering an entry, not by subclassing.
"""

import copy
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple, Type

from pydantic import BaseModel

from dashboard_core import renderers
from dashboard_core.elements import Element
from dashboard_core.schemas import (
    ChartConfig,
    ContainerConfig,
    FilterConfig,
    KpiConfig,
    TableConfig,
    TextConfig,
)

logger = logging.getLogger(__name__)

RenderFn = Callable[[Dict[str, Any], Optional[Dict[str, Any]], int, int], Element]

FALLBACK_SIZE = {"w": 4, "h": 3}


@dataclass
class WidgetRegistryEntry:
    type: str
    label: str
    config_schema: Type[BaseModel]
    renderer: RenderFn
    default_size: Dict[str, int] = field(default_factory=lambda: dict(FALLBACK_SIZE))
    default_config: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if not self.default_config:
            self.default_config = self.config_schema().model_dump()


class WidgetRegistry:
    """Process-wide table of widget types. Populated once, read-only afterwards."""

    def __init__(self):
        self._entries: Dict[str, WidgetRegistryEntry] = {}

    def register(self, entry: WidgetRegistryEntry):
        """Insert or replace the entry for ``entry.type`` (last write wins)."""
        if entry.type in self._entries:
            logger.debug(f"Replacing widget type '{entry.type}'")
        self._entries[entry.type] = entry

    def lookup(self, widget_type: str) -> Optional[WidgetRegistryEntry]:
        return self._entries.get(str(getattr(widget_type, "value", widget_type)))

    def types(self) -> List[str]:
        return list(self._entries)

    def entries(self) -> List[WidgetRegistryEntry]:
        return list(self._entries.values())

    def defaults_for(self, widget_type: str) -> Tuple[Dict[str, Any], Dict[str, int]]:
        """Default config and grid size, or generic fallbacks for unknown types."""
        entry = self.lookup(widget_type)
        if entry is None:
            return {}, dict(FALLBACK_SIZE)
        return copy.deepcopy(entry.default_config), dict(entry.default_size)

    def validate_config(self, widget_type: str, config: Dict[str, Any]):
        """Raise ``ValidationError`` if ``config`` violates the type's schema.

        Unknown keys are allowed. Unknown widget types are not checked.
        """
        entry = self.lookup(widget_type)
        if entry is not None:
            entry.config_schema.model_validate(config)


def register_builtin_widgets(registry: WidgetRegistry) -> WidgetRegistry:
    registry.register(WidgetRegistryEntry(
        type="kpi", label="KPI", config_schema=KpiConfig,
        renderer=renderers.render_kpi, default_size={"w": 3, "h": 2},
    ))
    registry.register(WidgetRegistryEntry(
        type="chart", label="Chart", config_schema=ChartConfig,
        renderer=renderers.render_chart, default_size={"w": 6, "h": 4},
    ))
    registry.register(WidgetRegistryEntry(
        type="table", label="Table", config_schema=TableConfig,
        renderer=renderers.render_table, default_size={"w": 6, "h": 4},
    ))
    registry.register(WidgetRegistryEntry(
        type="text", label="Text", config_schema=TextConfig,
        renderer=renderers.render_text, default_size={"w": 4, "h": 2},
    ))
    registry.register(WidgetRegistryEntry(
        type="container", label="Container", config_schema=ContainerConfig,
        renderer=renderers.render_container, default_size={"w": 6, "h": 4},
    ))
    registry.register(WidgetRegistryEntry(
        type="filter", label="Filter", config_schema=FilterConfig,
        renderer=renderers.render_filter, default_size={"w": 4, "h": 1},
    ))
    return registry


default_registry = register_builtin_widgets(WidgetRegistry())
