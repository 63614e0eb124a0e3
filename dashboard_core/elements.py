"""
Render tree: the renderable result produced by widget renderers and override code.

The concrete drawing layer (charts, grid, styling) consumes this tree; the core
only builds it.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class Element(BaseModel):
    """A node of the render tree."""
    tag: str
    props: Dict[str, Any] = Field(default_factory=dict)
    children: List["Element"] = Field(default_factory=list)

    def find(self, tag: str) -> Optional["Element"]:
        """Depth-first search for the first node with ``tag``."""
        if self.tag == tag:
            return self
        for child in self.children:
            found = child.find(tag)
            if found is not None:
                return found
        return None

    def find_all(self, tag: str) -> List["Element"]:
        found = [self] if self.tag == tag else []
        for child in self.children:
            found.extend(child.find_all(tag))
        return found


def h(tag: str, props: Optional[Dict[str, Any]] = None, *children: Any) -> Element:
    """Generic element builder. Non-element children become text nodes."""
    nodes = []
    for child in children:
        if child is None:
            continue
        if isinstance(child, (list, tuple)):
            nodes.extend(c if isinstance(c, Element) else Text(c) for c in child if c is not None)
        elif isinstance(child, Element):
            nodes.append(child)
        else:
            nodes.append(Text(child))
    return Element(tag=tag, props=dict(props or {}), children=nodes)


# ── 渲染原语 ──────────────────────────────────────────

def Text(value: Any, **props: Any) -> Element:
    return Element(tag="text", props={"value": "" if value is None else str(value), **props})


def Metric(label: str, value: Any, prefix: str = "", suffix: str = "", trend: Any = None, **props: Any) -> Element:
    return Element(
        tag="metric",
        props={"label": label, "value": value, "prefix": prefix, "suffix": suffix, "trend": trend, **props},
    )


def Chart(chart_type: str, rows: List[Dict[str, Any]], x: str, y: str, **props: Any) -> Element:
    return Element(tag="chart", props={"chartType": chart_type, "rows": list(rows), "x": x, "y": y, **props})


def Table(columns: List[str], rows: List[Dict[str, Any]], **props: Any) -> Element:
    return Element(tag="table", props={"columns": list(columns), "rows": list(rows), **props})


def Row(*children: Any, **props: Any) -> Element:
    return h("row", props, *children)


def Column(*children: Any, **props: Any) -> Element:
    return h("column", props, *children)


def Error(message: str) -> Element:
    """Inline error state for a single widget or cell."""
    return Element(tag="error", props={"message": message})
