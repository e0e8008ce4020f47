"""
Cache region manager for the Catalog Service.

Results are cached per named region (one entity kind and query shape) and
key. A miss runs the loader on the caller's thread and stores whatever it
returns, ``None`` included. Regions are only ever emptied by invalidation;
there is no expiry.

Concurrent misses on the same key are not coalesced: each caller runs its own
loader and the last store wins. A loader that started before its region was
invalidated still returns its value to its own caller, but the value is not
stored, so no read after an invalidation sees data loaded before it.
"""

import copy
import threading
from typing import Any, Callable, Dict, Hashable, Iterable, List, Optional, TYPE_CHECKING, Union

from shared.logging import get_logger

from ..domain.models import RecordKind

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


PRODUCTS = "products"
PRODUCT_STATS = "product_stats"
USERS = "users"
USER_STATS = "user_stats"

KIND_REGIONS: Dict[RecordKind, List[str]] = {
    RecordKind.PRODUCT: [PRODUCTS, PRODUCT_STATS],
    RecordKind.USER: [USERS, USER_STATS],
}


def key_for_id(record_id: int) -> str:
    return f"id:{record_id}"


def key_for_name(name: str) -> str:
    return f"name:{name}"


ALL_KEY = "all"
COUNT_KEY = "count"
TOTAL_VALUE_KEY = "total_value"


class CacheRegionManager:
    """In-process cache partitioned into named regions."""

    def __init__(self, metrics: Optional["MetricsCollector"] = None):
        self.logger = get_logger("catalog.cache.regions")
        self.metrics = metrics
        self._lock = threading.Lock()
        self._regions: Dict[str, Dict[Hashable, Any]] = {}
        self._generations: Dict[str, int] = {}
        self._stats = {"hits": 0, "misses": 0, "invalidations": 0}

    def read_through(self, region: str, key: Hashable, loader: Callable[[], Any]) -> Any:
        """Return the cached value for ``key`` in ``region``, loading it on a miss."""
        with self._lock:
            entries = self._regions.get(region)
            if entries is not None and key in entries:
                self._stats["hits"] += 1
                value = entries[key]
                hit = True
            else:
                self._stats["misses"] += 1
                generation = self._generations.get(region, 0)
                hit = False

        if hit:
            self._record("cache_hits_total", region)
            self.logger.debug("Cache hit", region=region, key=key)
            return copy.deepcopy(value)

        self._record("cache_misses_total", region)
        self.logger.debug("Cache miss", region=region, key=key)

        value = loader()
        stored = copy.deepcopy(value)

        with self._lock:
            if self._generations.get(region, 0) == generation:
                self._regions.setdefault(region, {})[key] = stored
            else:
                self.logger.debug("Region invalidated during load, result not cached", region=region, key=key)

        return value

    def invalidate(self, regions: Union[str, Iterable[str]]) -> None:
        """Drop every entry of one region or of several regions at once."""
        names = [regions] if isinstance(regions, str) else list(regions)

        with self._lock:
            for name in names:
                self._regions.pop(name, None)
                self._generations[name] = self._generations.get(name, 0) + 1
            self._stats["invalidations"] += len(names)

        for name in names:
            self._record("cache_invalidations_total", name)
        self.logger.info("Cache regions invalidated", regions=names)

    def invalidate_kind(self, kind: RecordKind) -> None:
        """Drop every region that can hold a result over ``kind``, aggregates included."""
        self.invalidate(KIND_REGIONS[RecordKind(kind)])

    def clear_all(self) -> bool:
        """Drop every region of every kind."""
        with self._lock:
            names = set(self._regions) | {name for regions in KIND_REGIONS.values() for name in regions}
        self.invalidate(sorted(names))
        return True

    def contains(self, region: str, key: Hashable) -> bool:
        with self._lock:
            return key in self._regions.get(region, {})

    def stats(self) -> Dict[str, Any]:
        with self._lock:
            return {
                **self._stats,
                "regions": {name: len(entries) for name, entries in self._regions.items()},
            }

    def _record(self, metric_name: str, region: str) -> None:
        if self.metrics:
            self.metrics.increment_counter(metric_name, region=region)
