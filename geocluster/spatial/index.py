"""
Static spatial index for fast bounding-box and radius queries.

Points are appended once, then ``finish()`` sorts them along a Hilbert curve
so that spatially close points sit in the same contiguous block of
``node_size`` items. Each block keeps its bounding box; queries scan the
points of every block whose box can contain a match, in block order.

The index never changes after ``finish()``. Queries return the slot indices
handed out by ``add()``, so callers can keep per-point data in a parallel
buffer (see :attr:`SpatialIndex.data`).
"""

from __future__ import annotations

import math
from typing import Optional

import numpy as np

from .hilbert import HILBERT_MAX, hilbert_values


DEFAULT_NODE_SIZE = 64
MIN_NODE_SIZE = 2
MAX_NODE_SIZE = 65535


class IndexBuildError(RuntimeError):
    """Raised when the index is built or queried out of order."""


class SpatialIndex:
    """
    Build-once, query-many point index ordered by Hilbert value.

    Small indexes (``num_items <= node_size + 1``) are left unsorted and
    queried with a single linear scan.
    """

    def __init__(self, num_items: int, node_size: int = DEFAULT_NODE_SIZE):
        """
        Allocate an index for exactly ``num_items`` points.

        Args:
            num_items: Number of points that will be added before ``finish()``
            node_size: Number of points per leaf block, clamped to [2, 65535]
        """
        if num_items < 0:
            raise ValueError(f"num_items must be non-negative, got {num_items}")

        self.num_items = int(num_items)
        self.node_size = max(MIN_NODE_SIZE, min(MAX_NODE_SIZE, int(node_size)))
        self.num_nodes = 0

        self.ids = np.arange(self.num_items, dtype=np.int64)
        self.coords = np.zeros(2 * self.num_items, dtype=np.float64)

        # Packed per-point records owned by the caller, kept alongside the index.
        self.data: Optional[np.ndarray] = None

        self._num_added = 0
        self._finished = False
        self._block_bounds: Optional[np.ndarray] = None

    # ------------------------------------------------------------------
    # Building
    # ------------------------------------------------------------------

    def add(self, x: float, y: float) -> int:
        """Append a point and return its slot index."""
        self._check_writable(1)
        index = self._num_added
        self.coords[2 * index] = x
        self.coords[2 * index + 1] = y
        self._num_added += 1
        return index

    def add_many(self, xs: np.ndarray, ys: np.ndarray) -> np.ndarray:
        """Append a batch of points; returns their slot indices in order."""
        xs = np.asarray(xs, dtype=np.float64)
        ys = np.asarray(ys, dtype=np.float64)
        if xs.shape != ys.shape:
            raise ValueError("x and y arrays must have the same shape")

        count = xs.size
        self._check_writable(count)
        start = self._num_added
        self.coords[2 * start : 2 * (start + count) : 2] = xs.ravel()
        self.coords[2 * start + 1 : 2 * (start + count) : 2] = ys.ravel()
        self._num_added += count
        return np.arange(start, start + count, dtype=np.int64)

    def finish(self) -> "SpatialIndex":
        """
        Sort the points along the Hilbert curve and compute block bounds.

        Raises:
            IndexBuildError: If the number of added points differs from the
                number declared at construction
        """
        if self._num_added != self.num_items:
            raise IndexBuildError(
                f"Added {self._num_added} items out of expected {self.num_items}."
            )
        self._finished = True

        if self.num_items <= self.node_size + 1:
            return self

        points = self.coords.reshape(-1, 2)
        xs, ys = points[:, 0], points[:, 1]
        min_x, min_y = xs.min(), ys.min()
        width = (xs.max() - min_x) or 1.0
        height = (ys.max() - min_y) or 1.0

        hx = np.floor(HILBERT_MAX * (xs - min_x) / width)
        hy = np.floor(HILBERT_MAX * (ys - min_y) / height)
        values = hilbert_values(hx, hy)

        # Equal Hilbert values keep their insertion order.
        order = np.argsort(values, kind="stable")
        self.ids = self.ids[order]
        points = points[order]
        self.coords = points.ravel()

        self.num_nodes = math.ceil(self.num_items / self.node_size)
        starts = np.arange(0, self.num_items, self.node_size)
        self._block_bounds = np.column_stack(
            [
                np.minimum.reduceat(points[:, 0], starts),
                np.minimum.reduceat(points[:, 1], starts),
                np.maximum.reduceat(points[:, 0], starts),
                np.maximum.reduceat(points[:, 1], starts),
            ]
        )
        return self

    def _check_writable(self, count: int) -> None:
        if self._finished:
            raise IndexBuildError("Cannot add points to a finished index.")
        if self._num_added + count > self.num_items:
            raise IndexBuildError(
                f"Adding {count} items would exceed the declared {self.num_items}."
            )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def is_sorted(self) -> bool:
        """Whether ``finish()`` reordered the points into Hilbert blocks."""
        return self._block_bounds is not None

    def range(self, min_x: float, min_y: float, max_x: float, max_y: float) -> np.ndarray:
        """
        Return slot indices of all points inside the closed box.

        Args:
            min_x, min_y, max_x, max_y: Query box in index coordinates

        Returns:
            ``int64`` array of slot indices in index order
        """
        candidates = self._candidates_in_box(min_x, min_y, max_x, max_y)
        xs, ys = self._candidate_coords(candidates)
        mask = (xs >= min_x) & (xs <= max_x) & (ys >= min_y) & (ys <= max_y)
        return self._select(candidates, mask)

    def within(self, qx: float, qy: float, r: float) -> np.ndarray:
        """Return slot indices of all points within distance ``r`` of (qx, qy)."""
        r2 = r * r
        candidates = self._candidates_near(qx, qy, r2)
        xs, ys = self._candidate_coords(candidates)
        dx = xs - qx
        dy = ys - qy
        mask = dx * dx + dy * dy <= r2
        return self._select(candidates, mask)

    def _require_finished(self) -> None:
        if not self._finished:
            raise IndexBuildError("Index must be finished before querying.")

    def _candidates_in_box(self, min_x, min_y, max_x, max_y) -> Optional[np.ndarray]:
        self._require_finished()
        if self._block_bounds is None:
            return None
        b = self._block_bounds
        hit = (b[:, 0] <= max_x) & (b[:, 2] >= min_x) & (b[:, 1] <= max_y) & (b[:, 3] >= min_y)
        return self._block_positions(np.flatnonzero(hit))

    def _candidates_near(self, qx, qy, r2) -> Optional[np.ndarray]:
        self._require_finished()
        if self._block_bounds is None:
            return None
        b = self._block_bounds
        dx = np.maximum(np.maximum(b[:, 0] - qx, qx - b[:, 2]), 0.0)
        dy = np.maximum(np.maximum(b[:, 1] - qy, qy - b[:, 3]), 0.0)
        hit = dx * dx + dy * dy <= r2
        return self._block_positions(np.flatnonzero(hit))

    def _block_positions(self, blocks: np.ndarray) -> np.ndarray:
        """Expand block numbers into the point positions they cover, in order."""
        positions = (blocks[:, None] * self.node_size + np.arange(self.node_size)).ravel()
        return positions[positions < self.num_items]

    def _candidate_coords(self, candidates: Optional[np.ndarray]):
        if candidates is None:
            return self.coords[0::2], self.coords[1::2]
        return self.coords[2 * candidates], self.coords[2 * candidates + 1]

    def _select(self, candidates: Optional[np.ndarray], mask: np.ndarray) -> np.ndarray:
        if candidates is None:
            return self.ids[mask]
        return self.ids[candidates[mask]]

    def __len__(self) -> int:
        return self.num_items

    def __repr__(self) -> str:
        return (
            f"SpatialIndex(num_items={self.num_items}, node_size={self.node_size}, "
            f"num_nodes={self.num_nodes})"
        )


__all__ = ["SpatialIndex", "IndexBuildError", "DEFAULT_NODE_SIZE"]
