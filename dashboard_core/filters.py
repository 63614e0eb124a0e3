"""
Session-scoped active filters contributed by filter widgets.

The store is shared mutable state: every filter widget writes to it and every
bound widget reads from it. Readers take a ``snapshot()`` once per render pass.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field

from dashboard_core.models import Filter, FilterOp
from dashboard_core.providers import DataQuery, DatasetProvider

logger = logging.getLogger(__name__)

CLEAR_VALUES = ("", "__all__")


class ActiveFilter(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    field: str
    dataset_id: str = Field(alias="datasetId")
    op: FilterOp = FilterOp.EQ
    value: Union[str, int, float]

    def as_filter(self) -> Filter:
        return Filter(field=self.field, op=self.op, value=self.value)


FilterSnapshot = Tuple[Tuple[str, ActiveFilter], ...]


class FilterStore:
    """Active filters keyed by an externally chosen filter key (last write wins per key)."""

    def __init__(self):
        self._filters: Dict[str, ActiveFilter] = {}

    def set_filter(self, key: str, active: ActiveFilter):
        self._filters[key] = active
        logger.debug(f"Filter '{key}' -> {active.field} {active.op.value} {active.value!r}")

    def clear_filter(self, key: str):
        self._filters.pop(key, None)

    def clear_all(self):
        """Reset at the end of a viewing session (e.g. on navigation)."""
        self._filters.clear()

    def get(self, key: str) -> Optional[ActiveFilter]:
        return self._filters.get(key)

    def snapshot(self) -> FilterSnapshot:
        """Immutable view of the current filter set."""
        return tuple(self._filters.items())

    def __len__(self) -> int:
        return len(self._filters)


# ── 过滤器组件 ────────────────────────────────────────

def filter_key(config: Dict[str, Any]) -> str:
    """Key under which a filter widget publishes its selection."""
    return f"filter_{config.get('datasetId', '')}_{config.get('field', '')}"


def select_value(store: FilterStore, config: Dict[str, Any], value: Any):
    """Dropdown / button-group selection: an ``eq`` filter, cleared by ''/'__all__'."""
    key = filter_key(config)
    if value is None or value in CLEAR_VALUES:
        store.clear_filter(key)
        return
    store.set_filter(key, ActiveFilter(
        field=config["field"], dataset_id=config["datasetId"], op=FilterOp.EQ, value=value,
    ))


def select_date_range(store: FilterStore, config: Dict[str, Any], date_from: Optional[str], date_to: Optional[str]):
    """Date range selection: two filters on the same field (``gte`` and ``lte``)."""
    key = filter_key(config)
    store.clear_filter(f"{key}_gte")
    store.clear_filter(f"{key}_lte")
    if date_from:
        store.set_filter(f"{key}_gte", ActiveFilter(
            field=config["field"], dataset_id=config["datasetId"], op=FilterOp.GTE, value=date_from,
        ))
    if date_to:
        store.set_filter(f"{key}_lte", ActiveFilter(
            field=config["field"], dataset_id=config["datasetId"], op=FilterOp.LTE, value=date_to,
        ))


async def load_filter_options(provider: DatasetProvider, config: Dict[str, Any]) -> List[Any]:
    """Explicit options, or the sorted distinct values of the field in the dataset."""
    if config.get("options"):
        return list(config["options"])
    dataset_id, field = config.get("datasetId"), config.get("field")
    if not dataset_id or not field:
        return []
    result = await provider.query(DataQuery(dataset_id=dataset_id))
    values = {row.get(field) for row in result.rows if row.get(field) is not None}
    return sorted(values, key=lambda v: (isinstance(v, str), v))
