"""
Data binding resolver: merges a widget's stored filters with the active global
filters for its dataset and fetches rows, with a content-keyed query cache.
"""

import asyncio
import json
import logging
import time
from typing import Dict, List, Optional, Tuple

from dashboard_core.filters import FilterSnapshot
from dashboard_core.models import DataBinding, Filter
from dashboard_core.providers import DataQuery, DataResult, DatasetProvider

logger = logging.getLogger(__name__)

DEFAULT_TTL = 30.0


def global_filters_for(binding: DataBinding, snapshot: FilterSnapshot) -> List[Filter]:
    """Active filters whose dataset matches the binding, in registration order."""
    return [active.as_filter() for _, active in snapshot if active.dataset_id == binding.dataset_id]


def merge_filters(binding: DataBinding, snapshot: FilterSnapshot) -> List[Filter]:
    """Stored filters followed by matching global filters (logical AND, no dedup)."""
    return [*binding.filters, *global_filters_for(binding, snapshot)]


def cache_key(binding: DataBinding, snapshot: FilterSnapshot) -> str:
    binding_part = binding.model_dump_json(by_alias=True)
    global_part = sorted(
        json.dumps(f.model_dump(mode="json"), sort_keys=True) for f in global_filters_for(binding, snapshot)
    )
    return f"{binding_part}|{'|'.join(global_part)}"


class DataResolver:
    """
    Resolves widget bindings to rows.

    A fresh cache entry (younger than ``ttl`` seconds) is returned without
    querying; concurrent resolutions of the same key share one request.
    """

    def __init__(self, provider: DatasetProvider, ttl: float = DEFAULT_TTL):
        self.provider = provider
        self.ttl = ttl
        self._cache: Dict[str, Tuple[float, DataResult]] = {}
        self._inflight: Dict[str, asyncio.Future] = {}

    async def resolve(self, binding: Optional[DataBinding], snapshot: FilterSnapshot = ()) -> DataResult:
        if binding is None or not binding.dataset_id:
            return DataResult()

        key = cache_key(binding, snapshot)
        cached = self._cache.get(key)
        if cached is not None and time.monotonic() - cached[0] < self.ttl:
            return cached[1]

        pending = self._inflight.get(key)
        if pending is not None:
            return await asyncio.shield(pending)

        future = asyncio.get_running_loop().create_future()
        self._inflight[key] = future
        try:
            query = DataQuery(dataset_id=binding.dataset_id, filters=merge_filters(binding, snapshot))
            logger.debug(f"[{binding.dataset_id}] Query with {len(query.filters)} filter(s)")
            result = await self.provider.query(query)
            self._cache[key] = (time.monotonic(), result)
            future.set_result(result)
            return result
        except Exception as e:
            future.set_exception(e)
            # 已被等待方消费；未被等待时避免 "never retrieved" 警告
            future.exception()
            raise
        finally:
            if not future.done():
                future.cancel()
            self._inflight.pop(key, None)

    def invalidate(self):
        self._cache.clear()
