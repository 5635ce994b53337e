"""
geocluster.spatial: projection, Hilbert ordering and the static point index.
"""

from .index import DEFAULT_NODE_SIZE, IndexBuildError, SpatialIndex
from .projection import lat_y, lng_x, project_lng_lat, x_lng, y_lat

__all__ = [
    "DEFAULT_NODE_SIZE",
    "IndexBuildError",
    "SpatialIndex",
    "lat_y",
    "lng_x",
    "project_lng_lat",
    "x_lng",
    "y_lat",
]
