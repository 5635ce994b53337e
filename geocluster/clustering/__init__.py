"""
geocluster.clustering: multi-zoom point clustering and tile extraction.

This module builds one spatial index per zoom level, merging nearby points
into weighted clusters, and answers map queries against those levels.
"""

from .config import ClusterOptions, MAX_SUPPORTED_ZOOM
from .engine import ClusterIndex, ClusterNotFoundError
from .features import (
    abbreviate_count,
    features_from_dataframe,
    is_cluster,
    point_feature,
)
from .reducers import CompositeReducer, FieldReducer, PropertyReducer, build_reducer
from .tiles import Tile, TileFeature

__all__ = [
    "ClusterIndex",
    "ClusterNotFoundError",
    "ClusterOptions",
    "CompositeReducer",
    "FieldReducer",
    "MAX_SUPPORTED_ZOOM",
    "PropertyReducer",
    "Tile",
    "TileFeature",
    "abbreviate_count",
    "build_reducer",
    "features_from_dataframe",
    "is_cluster",
    "point_feature",
]
