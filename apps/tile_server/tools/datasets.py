"""In-memory dataset registry with TTL-cached tile rendering."""

from __future__ import annotations

import itertools
import logging
import threading
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from cachetools import TTLCache

from geocluster.clustering import ClusterIndex, ClusterOptions

logger = logging.getLogger(__name__)

TILE_TTL_SEC = 600

_TILE_CACHE: TTLCache[Tuple[int, int, int, int], Optional[Dict[str, Any]]] = TTLCache(
    maxsize=4096, ttl=TILE_TTL_SEC
)
# Held for every _TILE_CACHE access; tile endpoints run on worker threads.
_TILE_LOCK = threading.Lock()
_MISSING = object()
_GENERATION = itertools.count(1)


@dataclass
class Dataset:
    """A loaded cluster index and the generation used in tile cache keys."""

    name: str
    index: ClusterIndex
    generation: int


class DatasetRegistry:
    """Named cluster indexes. A reload swaps in a fully built index."""

    def __init__(self) -> None:
        self._datasets: Dict[str, Dataset] = {}
        self._lock = threading.Lock()

    def load(self, name: str, features: List[Dict[str, Any]], options: ClusterOptions) -> Dataset:
        # Built outside the lock; readers keep using the previous index meanwhile.
        index = ClusterIndex(options).load(features)
        dataset = Dataset(name=name, index=index, generation=next(_GENERATION))
        with self._lock:
            self._datasets[name] = dataset
        logger.info("Loaded dataset %s: %d points, options=%s", name, len(features), options.to_dict())
        return dataset

    def get(self, name: str) -> Optional[Dataset]:
        with self._lock:
            return self._datasets.get(name)

    def clear(self) -> None:
        with self._lock:
            self._datasets.clear()
        with _TILE_LOCK:
            _TILE_CACHE.clear()


def render_tile_cached(dataset: Dataset, z: int, x: int, y: int) -> Optional[Dict[str, Any]]:
    """Render a tile as a dict, caching by dataset generation and tile address."""

    key = (dataset.generation, z, x, y)
    with _TILE_LOCK:
        cached = _TILE_CACHE.get(key, _MISSING)
    if cached is not _MISSING:
        return cached

    # Rendered outside the lock; a concurrent miss on the same key renders twice.
    tile = dataset.index.get_tile(z, x, y)
    payload = tile.to_dict() if tile is not None else None
    with _TILE_LOCK:
        _TILE_CACHE[key] = payload
    return payload


def tile_cache_size() -> int:
    with _TILE_LOCK:
        return len(_TILE_CACHE)
