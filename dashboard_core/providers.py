"""
Dataset provider boundary and the in-memory local provider.
"""

import copy
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from dashboard_core.datasets import SAMPLE_DATASETS
from dashboard_core.models import Filter, FilterOp

logger = logging.getLogger(__name__)


class FieldDef(BaseModel):
    name: str
    type: Literal["string", "number", "date"] = "string"


class DatasetInfo(BaseModel):
    id: str
    name: str


class Dataset(DatasetInfo):
    fields: List[FieldDef] = Field(default_factory=list)
    rows: List[Dict[str, Any]] = Field(default_factory=list)


class DataQuery(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    dataset_id: str = Field(alias="datasetId")
    fields: Optional[List[str]] = None
    filters: List[Filter] = Field(default_factory=list)


class DataResult(BaseModel):
    rows: List[Dict[str, Any]] = Field(default_factory=list)
    fields: List[FieldDef] = Field(default_factory=list)


class DatasetProvider(ABC):
    """Source of rows for bound widgets. Implemented outside the core."""

    @abstractmethod
    async def list_datasets(self) -> List[DatasetInfo]:
        ...

    @abstractmethod
    async def get_fields(self, dataset_id: str) -> List[FieldDef]:
        ...

    @abstractmethod
    async def query(self, query: DataQuery) -> DataResult:
        ...


# ── 过滤 ──────────────────────────────────────────────

def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _as_float(value: Any) -> Optional[float]:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def matches(row: Dict[str, Any], flt: Filter) -> bool:
    """Evaluate one filter against a row."""
    v = row.get(flt.field)
    op = FilterOp(flt.op)
    if op == FilterOp.EQ:
        return v == flt.value
    if op == FilterOp.NEQ:
        return v != flt.value
    if op == FilterOp.CONTAINS:
        return str(flt.value).lower() in str(v).lower()
    if op in (FilterOp.GT, FilterOp.LT):
        target = _as_float(flt.value)
        if not _is_number(v) or target is None:
            return False
        return v > target if op == FilterOp.GT else v < target
    # gte / lte: numeric when the row value is numeric, lexical otherwise (ISO dates)
    if _is_number(v):
        target = _as_float(flt.value)
        if target is None:
            return False
        return v >= target if op == FilterOp.GTE else v <= target
    return str(v) >= str(flt.value) if op == FilterOp.GTE else str(v) <= str(flt.value)


class LocalDatasetProvider(DatasetProvider):
    """Serves in-memory datasets; filters are applied in order (logical AND)."""

    def __init__(self, datasets: Optional[List[Dict[str, Any]]] = None):
        raw = SAMPLE_DATASETS if datasets is None else datasets
        self._datasets: Dict[str, Dataset] = {}
        for item in raw:
            self.add_dataset(Dataset.model_validate(item))
        self.query_count = 0

    def add_dataset(self, dataset: Dataset):
        self._datasets[dataset.id] = dataset

    async def list_datasets(self) -> List[DatasetInfo]:
        return [DatasetInfo(id=d.id, name=d.name) for d in self._datasets.values()]

    async def get_fields(self, dataset_id: str) -> List[FieldDef]:
        ds = self._datasets.get(dataset_id)
        return list(ds.fields) if ds else []

    async def query(self, query: DataQuery) -> DataResult:
        self.query_count += 1
        ds = self._datasets.get(query.dataset_id)
        if ds is None:
            logger.warning(f"[{query.dataset_id}] Unknown dataset, returning no rows")
            return DataResult()

        rows = [row for row in ds.rows if all(matches(row, f) for f in query.filters)]
        fields = ds.fields
        if query.fields:
            fields = [f for f in ds.fields if f.name in query.fields]
            rows = [{name: row.get(name) for name in query.fields} for row in rows]
        return DataResult(rows=copy.deepcopy(rows), fields=list(fields))
