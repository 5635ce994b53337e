"""
Hierarchical point clustering over zoom levels.

This module provides:
1. Bottom-up cluster construction, one spatial index per zoom level
2. Bounding-box queries with antimeridian handling
3. Cluster expansion (children, paginated leaves, expansion zoom)
4. Tile extraction in tile-local pixel coordinates

Each zoom level stores its points and clusters as packed float64 records
(one row per record):

    [x, y, zoom_processed, id, parent_id, num_points, (prop_index)]

``x``/``y`` are unit-square coordinates. A synthesized cluster's id encodes
the position of its seed record in the next finer level and that level's
zoom: ``(seed_index << 5) + (zoom + 1) + number_of_input_points``. The
encoding is inverted by :meth:`ClusterIndex.get_origin_id` and
:meth:`ClusterIndex.get_origin_zoom`, which lets the children of any cluster
be found with a single radius query at its origin level.
"""

from __future__ import annotations

import dataclasses
import logging
import math
import time
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

import numpy as np

from geocluster.spatial import SpatialIndex, lat_y, lng_x, project_lng_lat, x_lng, y_lat

from .config import ClusterOptions
from .features import (
    Feature,
    cluster_feature,
    cluster_properties,
    feature_coordinates,
    is_cluster,
)
from .tiles import Tile, encode_tile_feature


logger = logging.getLogger(__name__)


OFFSET_ZOOM = 2
OFFSET_ID = 3
OFFSET_PARENT = 4
OFFSET_NUM = 5
OFFSET_PROP = 6

NOT_PROCESSED = math.inf
NO_PARENT = -1.0


class ClusterNotFoundError(LookupError):
    """Raised when a cluster id does not resolve to a cluster with children."""

    def __init__(self, cluster_id: int, message: str = "No cluster with the specified id."):
        super().__init__(message)
        self.cluster_id = cluster_id


class ClusterIndex:
    """
    Multi-resolution cluster index over a fixed set of point features.

    Example:
        >>> index = ClusterIndex(radius=60, max_zoom=16).load(features)
        >>> index.get_clusters([-180, -85, 180, 85], zoom=2)

    Queries are read-only and may run concurrently once :meth:`load` has
    returned; they must not overlap a ``load`` on the same instance.
    """

    def __init__(self, options: Optional[ClusterOptions] = None, **overrides: Any):
        """
        Initialize the index.

        Args:
            options: Cluster options (uses defaults if None)
            **overrides: Individual option values, applied on top of ``options``
        """
        if options is None:
            options = ClusterOptions(**overrides)
        elif overrides:
            options = dataclasses.replace(options, **overrides)

        self.options = options
        self.stride = options.stride
        self.points: List[Feature] = []
        self.cluster_props: List[Dict[str, Any]] = []
        self.trees: List[Optional[SpatialIndex]] = [None] * (options.max_zoom + 2)

    # ------------------------------------------------------------------
    # Building
    # ------------------------------------------------------------------

    def load(self, points: Iterable[Feature]) -> "ClusterIndex":
        """
        Index ``points`` and build clusters for every zoom level.

        Features without geometry are skipped but keep their position, so
        point ids always refer to the index in ``points``.
        """
        opts = self.options
        started = time.perf_counter()

        self.points = list(points)
        self.cluster_props = []
        self.trees = [None] * (opts.max_zoom + 2)

        self._log("prepare %d points", len(self.points))

        data = self._prepare(self.points)
        tree = self._create_tree(data)
        self.trees[opts.max_zoom + 1] = tree

        self._log(
            "prepare %d points: %.1fms", len(self.points), (time.perf_counter() - started) * 1000
        )

        for zoom in range(opts.max_zoom, opts.min_zoom - 1, -1):
            zoom_started = time.perf_counter()
            tree = self._create_tree(self._cluster(tree, zoom))
            self.trees[zoom] = tree
            self._log(
                "z%d: %d clusters in %.1fms",
                zoom,
                tree.num_items,
                (time.perf_counter() - zoom_started) * 1000,
            )

        self._log("total time: %.1fms", (time.perf_counter() - started) * 1000)
        return self

    def _prepare(self, points: Sequence[Feature]) -> np.ndarray:
        """Project input points into packed records for the finest level."""
        present: List[int] = []
        coords: List[Sequence[float]] = []
        for i, feature in enumerate(points):
            lnglat = feature_coordinates(feature)
            if lnglat is None:
                continue
            present.append(i)
            coords.append(lnglat)

        data = np.empty((len(present), self.stride), dtype=np.float64)
        if present:
            lnglat = np.asarray(coords, dtype=np.float64)
            data[:, 0], data[:, 1] = project_lng_lat(lnglat[:, 0], lnglat[:, 1])
        data[:, OFFSET_ZOOM] = NOT_PROCESSED
        data[:, OFFSET_ID] = present
        data[:, OFFSET_PARENT] = NO_PARENT
        data[:, OFFSET_NUM] = 1
        if self.stride > OFFSET_PROP:
            data[:, OFFSET_PROP] = -1
        return data

    def _create_tree(self, data: np.ndarray) -> SpatialIndex:
        tree = SpatialIndex(len(data), self.options.node_size)
        tree.add_many(data[:, 0], data[:, 1])
        tree.finish()
        tree.data = data
        return tree

    def _cluster(self, tree: SpatialIndex, zoom: int) -> np.ndarray:
        """Derive the records of ``zoom`` from the next finer level's index."""
        opts = self.options
        reduce = opts.reduce
        stride = self.stride
        r = opts.radius / (opts.extent * 2 ** zoom)
        num_input = len(self.points)

        data = tree.data
        # Column lists are much faster to walk than numpy scalars; the
        # zoom/parent columns are written back to ``data`` at the end.
        columns = [data[:, j].tolist() for j in range(stride)]
        xs, ys = columns[0], columns[1]
        zooms, ids, parents, nums = (
            columns[OFFSET_ZOOM],
            columns[OFFSET_ID],
            columns[OFFSET_PARENT],
            columns[OFFSET_NUM],
        )
        props = columns[OFFSET_PROP] if stride > OFFSET_PROP else None

        def record(k: int) -> List[float]:
            return [columns[j][k] for j in range(stride)]

        next_data: List[List[float]] = []

        for i in range(len(data)):
            if zooms[i] <= zoom:
                continue
            zooms[i] = zoom

            x, y = xs[i], ys[i]
            neighbor_ids = tree.within(x, y, r).tolist()

            num_points_origin = nums[i]
            num_points = num_points_origin
            for k in neighbor_ids:
                if zooms[k] > zoom:
                    num_points += nums[k]

            if num_points > num_points_origin and num_points >= opts.min_points:
                wx = x * num_points_origin
                wy = y * num_points_origin

                accumulated: Optional[Dict[str, Any]] = None
                prop_index = -1

                cluster_id = (i << 5) + (zoom + 1) + num_input

                for k in neighbor_ids:
                    if zooms[k] <= zoom:
                        continue
                    zooms[k] = zoom

                    weight = nums[k]
                    wx += xs[k] * weight
                    wy += ys[k] * weight
                    parents[k] = cluster_id

                    if reduce is not None:
                        if accumulated is None:
                            accumulated = self._map(nums[i], ids[i], props[i], clone=True)
                            prop_index = len(self.cluster_props)
                            self.cluster_props.append(accumulated)
                        reduce(accumulated, self._map(nums[k], ids[k], props[k]))

                parents[i] = cluster_id
                row = [wx / num_points, wy / num_points, NOT_PROCESSED, cluster_id, NO_PARENT, num_points]
                if reduce is not None:
                    row.append(prop_index)
                next_data.append(row)

            else:
                next_data.append(record(i))

                if num_points > 1:
                    for k in neighbor_ids:
                        if zooms[k] <= zoom:
                            continue
                        zooms[k] = zoom
                        next_data.append(record(k))

        data[:, OFFSET_ZOOM] = zooms
        data[:, OFFSET_PARENT] = parents

        if not next_data:
            return np.empty((0, stride), dtype=np.float64)
        return np.asarray(next_data, dtype=np.float64)

    def _map(self, num_points: float, record_id: float, prop_index: float, clone: bool = False) -> Mapping[str, Any]:
        """Properties fed to ``reduce`` for a record: cluster props or mapped input props."""
        if num_points > 1:
            props = self.cluster_props[int(prop_index)]
            return dict(props) if clone else props
        original = self.points[int(record_id)].get("properties") or {}
        result = self.options.map(original)
        return dict(result) if clone else result

    def _log(self, message: str, *args: Any) -> None:
        level = logging.INFO if self.options.log else logging.DEBUG
        if logger.isEnabledFor(level):
            logger.log(level, message, *args)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_clusters(self, bbox: Sequence[float], zoom: float) -> List[Feature]:
        """
        Return clusters and points inside a bounding box at a zoom level.

        Args:
            bbox: ``[west, south, east, north]`` in degrees. ``west > east``
                  selects a box crossing the antimeridian.
            zoom: Zoom level; fractional zooms are floored

        Returns:
            Input features for unclustered points and cluster features for
            clusters

        Raises:
            ValueError: If ``bbox`` does not have four values
        """
        if len(bbox) != 4:
            raise ValueError(f"bbox must have 4 values, got {len(bbox)}")

        west, south, east, north = (float(v) for v in bbox)
        min_lng = (west + 180) % 360 - 180
        min_lat = max(-90.0, min(90.0, south))
        max_lng = 180.0 if east == 180 else (east + 180) % 360 - 180
        max_lat = max(-90.0, min(90.0, north))

        if east - west >= 360:
            min_lng = -180.0
            max_lng = 180.0
        elif min_lng > max_lng:
            eastern = self.get_clusters([min_lng, min_lat, 180.0, max_lat], zoom)
            western = self.get_clusters([-180.0, min_lat, max_lng, max_lat], zoom)
            return eastern + western

        tree = self._tree(self._limit_zoom(zoom))
        ids = tree.range(lng_x(min_lng), lat_y(max_lat), lng_x(max_lng), lat_y(min_lat))
        data = tree.data
        return [self._record_feature(data[k]) for k in ids.tolist()]

    def get_children(self, cluster_id: int) -> List[Feature]:
        """
        Return the direct children of a cluster at its origin zoom.

        Raises:
            ClusterNotFoundError: If the id does not decode to an existing
                record or the record has no children
        """
        cluster_id = int(cluster_id)
        origin_id = self.get_origin_id(cluster_id)
        origin_zoom = self.get_origin_zoom(cluster_id)

        tree = self.trees[origin_zoom] if 0 <= origin_zoom < len(self.trees) else None
        if tree is None:
            raise ClusterNotFoundError(cluster_id)
        data = tree.data
        if origin_id < 0 or origin_id >= len(data):
            raise ClusterNotFoundError(cluster_id)

        r = self.options.radius / (self.options.extent * 2 ** (origin_zoom - 1))
        ids = tree.within(data[origin_id, 0], data[origin_id, 1], r)
        ids = ids[data[ids, OFFSET_PARENT] == cluster_id]

        children = [self._record_feature(data[k]) for k in ids.tolist()]
        if not children:
            raise ClusterNotFoundError(cluster_id)
        return children

    def get_leaves(self, cluster_id: int, limit: Optional[int] = 10, offset: int = 0) -> List[Feature]:
        """
        Return the input points of a cluster, paginated.

        Args:
            cluster_id: Cluster to expand
            limit: Maximum number of points to return; None returns all
            offset: Number of points to skip

        Raises:
            ClusterNotFoundError: If the cluster does not exist
        """
        leaves: List[Feature] = []
        if limit is not None and limit <= 0:
            # Still validates the id.
            self.get_children(cluster_id)
            return leaves
        self._append_leaves(leaves, cluster_id, limit, offset, 0)
        return leaves

    def _append_leaves(
        self,
        result: List[Feature],
        cluster_id: int,
        limit: Optional[int],
        offset: int,
        skipped: int,
    ) -> int:
        for child in self.get_children(cluster_id):
            props = child["properties"]
            if is_cluster(child):
                if skipped + props["point_count"] <= offset:
                    # Skip the whole sub-cluster.
                    skipped += props["point_count"]
                else:
                    skipped = self._append_leaves(result, props["cluster_id"], limit, offset, skipped)
            elif skipped < offset:
                skipped += 1
            else:
                result.append(child)

            if limit is not None and len(result) == limit:
                break
        return skipped

    def get_cluster_expansion_zoom(self, cluster_id: int) -> int:
        """Return the zoom at which a cluster splits into more than one child."""
        expansion_zoom = self.get_origin_zoom(cluster_id) - 1
        while expansion_zoom <= self.options.max_zoom:
            children = self.get_children(cluster_id)
            expansion_zoom += 1
            if len(children) != 1 or not is_cluster(children[0]):
                break
            cluster_id = children[0]["properties"]["cluster_id"]
        return expansion_zoom

    def get_tile(self, z: int, x: int, y: int) -> Optional[Tile]:
        """
        Return the points and clusters of tile ``z/x/y`` in pixel coordinates.

        The tile is padded by the cluster radius on every side; in the first
        and last columns the padding wraps across the antimeridian.

        Returns:
            The tile, or None if it contains no features
        """
        opts = self.options
        tree = self._tree(self._limit_zoom(z))
        data = tree.data
        z2 = 2 ** z
        p = opts.radius / opts.extent
        top = (y - p) / z2
        bottom = (y + 1 + p) / z2

        tile = Tile()
        self._add_tile_features(
            tree.range((x - p) / z2, top, (x + 1 + p) / z2, bottom), data, x, y, z2, tile
        )
        if x == 0:
            self._add_tile_features(tree.range(1 - p / z2, top, 1, bottom), data, z2, y, z2, tile)
        if x == z2 - 1:
            self._add_tile_features(tree.range(0, top, p / z2, bottom), data, -1, y, z2, tile)

        return tile if tile.features else None

    def _add_tile_features(
        self, ids: np.ndarray, data: np.ndarray, x: int, y: int, z2: int, tile: Tile
    ) -> None:
        extent = self.options.extent
        for k in ids.tolist():
            row = data[k]
            record_id = int(row[OFFSET_ID])

            if row[OFFSET_NUM] > 1:
                tags = self._cluster_properties(row)
                px, py = float(row[0]), float(row[1])
                feature_id: Any = record_id
            else:
                point = self.points[record_id]
                tags = point.get("properties") or {}
                lng, lat = feature_coordinates(point)
                px, py = lng_x(lng), lat_y(lat)
                feature_id = record_id if self.options.generate_id else point.get("id")

            tile.features.append(
                encode_tile_feature(px, py, tags, feature_id, z2=z2, tile_x=x, tile_y=y, extent=extent)
            )

    def get_origin_id(self, cluster_id: int) -> int:
        """Position of the cluster's seed record in its origin level."""
        return (int(cluster_id) - len(self.points)) >> 5

    def get_origin_zoom(self, cluster_id: int) -> int:
        """Zoom level holding the cluster's children."""
        return (int(cluster_id) - len(self.points)) % 32

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _limit_zoom(self, zoom: float) -> int:
        if not math.isfinite(zoom):
            raise ValueError(f"zoom must be a finite number, got {zoom}")
        return max(self.options.min_zoom, min(math.floor(zoom), self.options.max_zoom + 1))

    def _tree(self, zoom: int) -> SpatialIndex:
        tree = self.trees[zoom]
        if tree is None:
            raise RuntimeError("ClusterIndex has no data; call load() first.")
        return tree

    def _record_feature(self, row: np.ndarray) -> Feature:
        if row[OFFSET_NUM] > 1:
            return cluster_feature(x_lng(float(row[0])), y_lat(float(row[1])), self._cluster_properties(row))
        return self.points[int(row[OFFSET_ID])]

    def _cluster_properties(self, row: np.ndarray) -> Dict[str, Any]:
        reduced = None
        if self.stride > OFFSET_PROP and row[OFFSET_PROP] != -1:
            reduced = self.cluster_props[int(row[OFFSET_PROP])]
        return cluster_properties(int(row[OFFSET_ID]), int(row[OFFSET_NUM]), reduced)


__all__ = [
    "ClusterIndex",
    "ClusterNotFoundError",
    "OFFSET_ID",
    "OFFSET_NUM",
    "OFFSET_PARENT",
    "OFFSET_PROP",
    "OFFSET_ZOOM",
]
