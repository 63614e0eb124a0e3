"""
Data models for dashboard documents (JSON-based management).

Attributes are snake_case; the wire / persisted form is camelCase through
field aliases, so ``model_dump(by_alias=True)`` is the Document JSON.
"""

import uuid
from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


def new_id() -> str:
    """Generate an opaque unique id for documents and widgets."""
    return uuid.uuid4().hex[:12]


# ── 枚举 ──────────────────────────────────────────────

class WidgetType(str, Enum):
    KPI = "kpi"
    CHART = "chart"
    TABLE = "table"
    TEXT = "text"
    CONTAINER = "container"
    FILTER = "filter"


class FilterOp(str, Enum):
    EQ = "eq"
    NEQ = "neq"
    GT = "gt"
    LT = "lt"
    GTE = "gte"
    LTE = "lte"
    CONTAINS = "contains"


class LayoutMode(str, Enum):
    SCROLLABLE = "scrollable"
    PORTRAIT_FIXED = "portrait-fixed"
    LANDSCAPE_FIXED = "landscape-fixed"


class _Model(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


# ── 数据绑定 ──────────────────────────────────────────

class Filter(_Model):
    """A row filter: ``field <op> value``."""
    field: str
    op: FilterOp
    value: Union[str, int, float]


class DataBinding(_Model):
    """Association of a widget to a dataset plus stored row filters."""
    dataset_id: str = Field(alias="datasetId", description="Dataset to query")
    field_map: Dict[str, str] = Field(default_factory=dict, alias="fieldMap")
    filters: List[Filter] = Field(default_factory=list)


# ── 文档 ──────────────────────────────────────────────

class LayoutItem(_Model):
    """Grid placement of one widget."""
    widget_id: str = Field(
        alias="widgetId",
        validation_alias=AliasChoices("widgetId", "i", "widget_id"),
        description="Id of the widget this entry places",
    )
    x: int = Field(default=0, description="X position in grid columns")
    y: int = Field(default=0, description="Y position in grid rows")
    w: int = Field(default=4, description="Width in grid columns")
    h: int = Field(default=3, description="Height in grid rows")


class WidgetSpec(_Model):
    """One placed widget. ``config`` shape is defined by the type's registered schema."""
    id: str
    type: WidgetType
    title: str = "Untitled"
    config: Dict[str, Any] = Field(default_factory=dict)
    data_binding: Optional[DataBinding] = Field(default=None, alias="dataBinding")
    custom_code: Optional[str] = Field(default=None, alias="customCode")


class PageSettings(_Model):
    layout_mode: LayoutMode = Field(default=LayoutMode.SCROLLABLE, alias="layoutMode")
    page_width: int = Field(default=1200, alias="pageWidth")
    row_height: int = Field(default=80, alias="rowHeight")


class DashboardDocument(_Model):
    """Root aggregate: one dashboard's full persisted state."""
    id: str = Field(default_factory=new_id)
    name: str = "Untitled Dashboard"
    version: Literal[1] = 1
    layout: List[LayoutItem] = Field(default_factory=list)
    widgets: List[WidgetSpec] = Field(default_factory=list)
    page_settings: PageSettings = Field(default_factory=PageSettings, alias="pageSettings")

    def get_widget(self, widget_id: str) -> Optional[WidgetSpec]:
        for w in self.widgets:
            if w.id == widget_id:
                return w
        return None

    def get_layout_item(self, widget_id: str) -> Optional[LayoutItem]:
        for item in self.layout:
            if item.widget_id == widget_id:
                return item
        return None

    def widget_ids(self) -> set[str]:
        return {w.id for w in self.widgets}

    def layout_ids(self) -> set[str]:
        return {item.widget_id for item in self.layout}

    def next_row(self) -> int:
        """First free row below all current content."""
        return max((item.y + item.h for item in self.layout), default=0)

    def to_wire(self) -> Dict[str, Any]:
        """Document JSON as a plain dict."""
        return self.model_dump(mode="json", by_alias=True)
