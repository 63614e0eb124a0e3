"""
Container grid helpers.

A container holds ``cols * rows`` slots in row-major order, each ``None`` or a
cell dict ``{type, title, config, dataBinding?}``.
"""

import copy
from typing import Any, Dict, List, Optional

Cell = Optional[Dict[str, Any]]

CELL_CODE_KEY = "_customCode"


def grid_size(config: Dict[str, Any]) -> tuple[int, int]:
    return max(1, int(config.get("cols", 2))), max(1, int(config.get("rows", 2)))


def normalize_cells(cells: Optional[List[Cell]], cols: int, rows: int) -> List[Cell]:
    """Pad or truncate ``cells`` to exactly ``cols * rows`` slots."""
    cells = list(cells or [])
    total = cols * rows
    return (cells + [None] * total)[:total]


def reflow_cells(cells: List[Cell], old_cols: int, old_rows: int, new_cols: int, new_rows: int) -> List[Cell]:
    """Re-index cells into a resized grid.

    A cell keeps its (row, col) position; cells outside the new bounds are
    dropped and new slots are empty.
    """
    cells = normalize_cells(cells, old_cols, old_rows)
    result: List[Cell] = [None] * (new_cols * new_rows)
    for index, cell in enumerate(cells):
        if cell is None:
            continue
        row, col = divmod(index, old_cols)
        if row < new_rows and col < new_cols:
            result[row * new_cols + col] = cell
    return result


def apply_container_update(old: Dict[str, Any], partial: Dict[str, Any]) -> Dict[str, Any]:
    """Shallow-merge ``partial`` into a container config, keeping the cell grid consistent."""
    merged = {**old, **partial}
    old_cols, old_rows = grid_size(old)
    new_cols, new_rows = grid_size(merged)
    if "cells" in partial:
        merged["cells"] = normalize_cells(partial["cells"], new_cols, new_rows)
    elif (old_cols, old_rows) != (new_cols, new_rows):
        merged["cells"] = reflow_cells(old.get("cells") or [], old_cols, old_rows, new_cols, new_rows)
    else:
        merged["cells"] = normalize_cells(old.get("cells"), new_cols, new_rows)
    return merged


def replace_cell(config: Dict[str, Any], index: int, cell: Cell) -> Dict[str, Any]:
    cols, rows = grid_size(config)
    if not 0 <= index < cols * rows:
        raise IndexError(f"Cell index {index} out of range for {cols}x{rows} container")
    cells = normalize_cells(config.get("cells"), cols, rows)
    cells[index] = copy.deepcopy(cell)
    return {**config, "cells": cells}


def with_cell_code(cell: Dict[str, Any], code: Optional[str]) -> Dict[str, Any]:
    """Return ``cell`` with its override code set (or removed when ``code`` is None)."""
    config = dict(cell.get("config") or {})
    if code is None:
        config.pop(CELL_CODE_KEY, None)
    else:
        config[CELL_CODE_KEY] = code
    return {**cell, "config": config}
