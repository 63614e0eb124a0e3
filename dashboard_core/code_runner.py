"""
Custom widget code: compiles user-supplied override source into a render function.

Override source is the *body* of a function with the fixed parameter list
``(config, data, width, height)``. It runs with a restricted set of builtins and
a closed capability set (element builders, formatting and state primitives);
nothing else from the host program is reachable by name.
"""

import ast
import builtins
import copy
import functools
import logging
import textwrap
from typing import Any, Callable, Dict, List, Optional

from dashboard_core import elements
from dashboard_core.elements import Element

logger = logging.getLogger(__name__)

PARAMS = ("config", "data", "width", "height")

_SAFE_BUILTIN_NAMES = (
    "abs", "all", "any", "bool", "dict", "enumerate", "filter", "float", "int", "isinstance",
    "len", "list", "map", "max", "min", "next", "range", "reversed", "round", "set", "sorted", "str",
    "sum", "tuple", "zip", "ValueError", "KeyError", "TypeError",
)
SAFE_BUILTINS: Dict[str, Any] = {name: getattr(builtins, name) for name in _SAFE_BUILTIN_NAMES}

_FUNC_NAME = "__widget__"


class CustomCodeError(ValueError):
    """Override source that cannot be compiled."""


def fmt_number(value: Any, decimals: int = 0) -> str:
    """Thousands-separated number, or an em-dash placeholder for missing values."""
    if value is None or isinstance(value, bool) or not isinstance(value, (int, float)):
        return "—" if value is None else str(value)
    return f"{value:,.{decimals}f}"


# ── 状态原语 ──────────────────────────────────────────

class RenderState:
    """Per-widget hook slots for ``use_state`` / ``use_memo``, kept across renders."""

    def __init__(self):
        self._slots: List[Any] = []
        self._cursor = 0

    def begin(self):
        self._cursor = 0

    def _next_slot(self, factory: Callable[[], Any]) -> int:
        index = self._cursor
        self._cursor += 1
        if index >= len(self._slots):
            self._slots.append(factory())
        return index

    def use_state(self, initial: Any = None):
        index = self._next_slot(lambda: initial)

        def set_value(value: Any):
            self._slots[index] = value(self._slots[index]) if callable(value) else value

        return self._slots[index], set_value

    def use_memo(self, compute: Callable[[], Any], deps: Optional[list] = None):
        index = self._next_slot(lambda: None)
        slot = self._slots[index]
        deps = list(deps) if deps is not None else None
        if slot is None or deps is None or slot[0] != deps:
            slot = (deps, compute())
            self._slots[index] = slot
        return slot[1]


def capabilities(state: Optional[RenderState] = None) -> Dict[str, Any]:
    """The closed set of names available to override code."""
    state = state or RenderState()
    return {
        "h": elements.h,
        "Text": elements.Text,
        "Metric": elements.Metric,
        "Chart": elements.Chart,
        "Table": elements.Table,
        "Row": elements.Row,
        "Column": elements.Column,
        "Error": elements.Error,
        "fmt_number": fmt_number,
        "use_state": state.use_state,
        "use_memo": state.use_memo,
    }


CAPABILITY_NAMES = tuple(capabilities())


# ── 编译 ──────────────────────────────────────────────

def _wrap(code: str) -> str:
    body = textwrap.indent(textwrap.dedent(code).strip("\n") or "pass", "    ")
    return f"def {_FUNC_NAME}({', '.join(PARAMS)}):\n{body}\n"


def _check_tree(tree: ast.AST) -> Optional[str]:
    for node in ast.walk(tree):
        if isinstance(node, (ast.Import, ast.ImportFrom)):
            return f"Line {node.lineno - 1}: imports are not available in widget code"
        if isinstance(node, (ast.Global, ast.Nonlocal)):
            return f"Line {node.lineno - 1}: global/nonlocal are not available in widget code"
        if isinstance(node, ast.Attribute) and node.attr.startswith("__"):
            return f"Line {node.lineno - 1}: access to '{node.attr}' is not allowed"
        if isinstance(node, ast.Name) and node.id.startswith("__"):
            return f"Line {node.lineno - 1}: name '{node.id}' is not allowed"
    return None


def _parse(code: str) -> ast.Module:
    source = _wrap(code)
    try:
        tree = ast.parse(source, filename="<custom-widget>")
    except SyntaxError as e:
        line = (e.lineno or 1) - 1
        raise CustomCodeError(f"Line {max(line, 1)}: {e.msg}") from e
    error = _check_tree(tree.body[0])
    if error:
        raise CustomCodeError(error)
    return tree


def validate_custom_code(code: str) -> Optional[str]:
    """Return a human-readable error message, or None when the code compiles."""
    try:
        _parse(code)
    except CustomCodeError as e:
        return str(e)
    return None


def unresolved_names(code: str) -> List[str]:
    """Names read by ``code`` that are neither parameters, capabilities, builtins nor locals."""
    tree = _parse(code)
    known = set(PARAMS) | set(CAPABILITY_NAMES) | set(SAFE_BUILTINS)
    assigned = set()
    loaded = []
    for node in ast.walk(tree.body[0]):
        if isinstance(node, ast.Name):
            if isinstance(node.ctx, ast.Load):
                loaded.append(node.id)
            else:
                assigned.add(node.id)
        elif isinstance(node, ast.arg):
            assigned.add(node.arg)
        elif isinstance(node, ast.FunctionDef):
            assigned.add(node.name)
    missing = []
    for name in loaded:
        if name not in known and name not in assigned and name not in missing:
            missing.append(name)
    return missing


class CompiledWidget:
    """A compiled override. Calling it may raise; callers wrap it in a fault boundary."""

    def __init__(self, code: str, fn: Callable[..., Any], scope: Dict[str, Any]):
        self.code = code
        self._fn = fn
        self._scope = scope

    def render(self, config: Dict[str, Any], data: Optional[Dict[str, Any]], width: int = 0,
               height: int = 0, state: Optional[RenderState] = None) -> Element:
        state = state or RenderState()
        state.begin()
        self._scope.update(capabilities(state))
        result = self._fn(copy.deepcopy(config), data, width, height)
        if isinstance(result, Element):
            return result
        if isinstance(result, (str, int, float)):
            return elements.Text(result)
        raise TypeError(f"Widget code must return an element, got {type(result).__name__}")


@functools.lru_cache(maxsize=256)
def _compile(code: str) -> CompiledWidget:
    tree = _parse(code)
    scope: Dict[str, Any] = {"__builtins__": SAFE_BUILTINS, **capabilities()}
    exec(compile(tree, "<custom-widget>", "exec"), scope)
    return CompiledWidget(code, scope[_FUNC_NAME], scope)


def compile_custom_widget(code: str) -> Optional[CompiledWidget]:
    """Compile override source; returns None on failure so callers can fall back."""
    try:
        return _compile(code)
    except CustomCodeError as e:
        logger.warning(f"Custom code compilation error: {e}")
        return None
