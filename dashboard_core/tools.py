"""
Command catalog: the named, schema-validated operations an agent may issue.

Each command has one parameter model; ``get_tools()`` derives the catalog
(name, description, JSON schema) from those models.
"""

from typing import Any, Dict, List, Literal, Optional, Type, Union

from pydantic import BaseModel, ConfigDict, Field

from dashboard_core.models import WidgetType


class ToolCall(BaseModel):
    name: str
    params: Dict[str, Any] = Field(default_factory=dict)


class ToolResult(BaseModel):
    success: bool
    data: Optional[Any] = None
    error: Optional[str] = None


class _Params(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class _Placement(_Params):
    x: Optional[int] = Field(default=None, ge=0, description="Grid x position (0-11)")
    y: Optional[int] = Field(default=None, ge=0, description="Grid y position")
    w: Optional[int] = Field(default=None, ge=1, le=12, description="Grid width (1-12)")
    h: Optional[int] = Field(default=None, ge=1, description="Grid height")


class AddWidgetParams(_Placement):
    type: WidgetType = Field(description="Widget type")
    title: Optional[str] = Field(default=None, description="Widget title")
    config: Dict[str, Any] = Field(
        default_factory=dict,
        description="Widget configuration (chartType, xField, yField, color, label, prefix, suffix, etc.)",
    )
    dataset_id: Optional[str] = Field(default=None, alias="datasetId", description="Dataset to bind to")


class AddFilterWidgetParams(_Placement):
    title: Optional[str] = Field(default=None, description="Widget title")
    dataset_id: str = Field(alias="datasetId", description="Dataset to filter")
    field: str = Field(description="Field to filter on")
    display_type: Optional[Literal["dropdown", "button-group", "date-range"]] = Field(
        default=None, alias="displayType", description="Display type",
    )
    options: Optional[List[Union[str, int, float]]] = Field(
        default=None, description="Explicit options (auto-populated if empty)",
    )


class WidgetRef(_Params):
    id: str = Field(description="Widget ID")


class UpdateConfigParams(WidgetRef):
    config: Dict[str, Any] = Field(description="Config fields to update")


class UpdateTitleParams(WidgetRef):
    title: str = Field(description="New title")


class SetDataBindingParams(WidgetRef):
    dataset_id: str = Field(alias="datasetId", description="Dataset ID")


class UpdateLayoutParams(WidgetRef, _Placement):
    pass


class SetNameParams(_Params):
    name: str = Field(description="New dashboard name")


class NoParams(_Params):
    pass


TOOL_DEFINITIONS: Dict[str, tuple] = {
    "add_widget": ("Add a new widget to the dashboard", AddWidgetParams),
    "add_filter_widget": (
        "Add a filter widget that controls data filtering for other widgets on the same dataset",
        AddFilterWidgetParams,
    ),
    "remove_widget": ("Remove a widget by ID", WidgetRef),
    "update_widget_config": ("Update configuration fields on a widget", UpdateConfigParams),
    "update_widget_title": ("Set widget title", UpdateTitleParams),
    "set_data_binding": ("Bind a widget to a dataset", SetDataBindingParams),
    "update_layout": ("Move or resize a widget", UpdateLayoutParams),
    "set_dashboard_name": ("Rename the dashboard", SetNameParams),
    "list_widgets": ("Return current widget list (read-only)", NoParams),
    "list_datasets": ("Return available datasets (read-only)", NoParams),
    "get_dashboard_spec": ("Return full current dashboard spec as JSON", NoParams),
}

READ_ONLY_TOOLS = frozenset({"list_widgets", "list_datasets", "get_dashboard_spec"})


def params_model(name: str) -> Optional[Type[_Params]]:
    definition = TOOL_DEFINITIONS.get(name)
    return definition[1] if definition else None


def get_tools() -> List[Dict[str, Any]]:
    """Tool catalog for agent consumption."""
    return [
        {"name": name, "description": description, "parameters": model.model_json_schema(by_alias=True)}
        for name, (description, model) in TOOL_DEFINITIONS.items()
    ]
