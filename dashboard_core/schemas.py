"""
Per-widget-type configuration schemas.

Every field carries a default so that ``Model().model_dump()`` is the zero-value
config for that widget type. Config is open: unknown keys are allowed and kept,
which is where bookkeeping fields such as ``_customCode`` live.
"""

from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from dashboard_core.models import DataBinding


class WidgetConfig(BaseModel):
    """Base for all widget config schemas."""
    model_config = ConfigDict(extra="allow")


# ── 组件配置 ──────────────────────────────────────────

class KpiConfig(WidgetConfig):
    label: str = "KPI"
    prefix: str = ""
    suffix: str = ""
    trendField: Optional[str] = None
    color: str = "#3b82f6"
    valueField: str = ""
    fontSize: Literal["sm", "base", "lg", "xl"] = "lg"
    showTrend: bool = True


class ChartConfig(WidgetConfig):
    chartType: Literal["bar", "line", "pie", "area", "stacked-bar", "donut", "scatter"] = "bar"
    xField: str = ""
    yField: str = ""
    color: str = "#3b82f6"
    showLegend: bool = False
    showDataLabels: bool = False
    showGrid: bool = True
    showTooltip: bool = True
    sortOrder: Literal["none", "asc", "desc"] = "none"
    xAxisLabel: str = ""
    yAxisLabel: str = ""


class TableConfig(WidgetConfig):
    columns: List[str] = Field(default_factory=list)
    pageSize: int = Field(default=10, ge=1)
    striped: bool = True
    showRowNumbers: bool = False
    compact: bool = False


class TextConfig(WidgetConfig):
    content: str = "Enter text here..."
    fontSize: Literal["sm", "base", "lg", "xl", "2xl"] = "base"


class CellSpec(BaseModel):
    """A nested widget living in one slot of a container grid."""
    model_config = ConfigDict(populate_by_name=True)

    type: str
    title: str = ""
    config: Dict[str, Any] = Field(default_factory=dict)
    data_binding: Optional[DataBinding] = Field(default=None, alias="dataBinding")


class ContainerConfig(WidgetConfig):
    cols: int = Field(default=2, ge=1, le=6)
    rows: int = Field(default=2, ge=1, le=6)
    cells: List[Optional[CellSpec]] = Field(default_factory=list)


class FilterConfig(WidgetConfig):
    displayType: Literal["dropdown", "button-group", "date-range"] = "dropdown"
    datasetId: str = ""
    field: str = ""
    label: str = "Filter"
    options: List[Union[str, int, float]] = Field(default_factory=list)
