"""Configuration for the multi-zoom cluster index."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Any, Callable, Dict, Mapping, Optional

from .reducers import PropertyReducer, build_reducer


# Cluster ids keep the origin zoom in 5 bits, so zoom + 1 must stay below 32.
MAX_SUPPORTED_ZOOM = 30


def _identity(properties: Mapping[str, Any]) -> Mapping[str, Any]:
    return properties


@dataclass
class ClusterOptions:
    """Options applied when building a :class:`ClusterIndex`."""

    min_zoom: int = 0
    """Minimum zoom level at which clusters are generated."""

    max_zoom: int = 16
    """Maximum zoom level at which clusters are generated."""

    min_points: int = 2
    """Minimum number of points to form a cluster."""

    radius: float = 40
    """Cluster radius in pixels."""

    extent: int = 512
    """Tile extent; the radius is calculated relative to it."""

    node_size: int = 64
    """Size of the spatial index leaf blocks."""

    generate_id: bool = False
    """Use the record id instead of the input feature id for tile features."""

    log: bool = False
    """Log build timings at INFO instead of DEBUG."""

    map: Callable[[Mapping[str, Any]], Mapping[str, Any]] = field(default=_identity, repr=False)
    """Projects point properties before aggregation."""

    reduce: Optional[Callable[[Dict[str, Any], Mapping[str, Any]], None]] = field(
        default=None, repr=False
    )
    """Folds mapped properties into a cluster accumulator in place. None disables aggregation."""

    def __post_init__(self) -> None:
        if self.min_zoom < 0:
            raise ValueError(f"min_zoom must be >= 0, got {self.min_zoom}")
        if self.max_zoom > MAX_SUPPORTED_ZOOM:
            raise ValueError(f"max_zoom must be <= {MAX_SUPPORTED_ZOOM}, got {self.max_zoom}")
        if self.min_zoom > self.max_zoom:
            raise ValueError(
                f"min_zoom ({self.min_zoom}) must not exceed max_zoom ({self.max_zoom})"
            )
        if self.min_points < 1:
            raise ValueError(f"min_points must be >= 1, got {self.min_points}")
        if self.radius <= 0:
            raise ValueError(f"radius must be positive, got {self.radius}")
        if self.extent <= 0:
            raise ValueError(f"extent must be positive, got {self.extent}")

    @property
    def stride(self) -> int:
        """Number of fields per packed record."""
        return 7 if self.reduce is not None else 6

    @classmethod
    def from_reducer(cls, reducer: PropertyReducer, **kwargs: Any) -> "ClusterOptions":
        """Create options whose ``map``/``reduce`` come from ``reducer``."""
        return cls(map=reducer.map, reduce=reducer.reduce, **kwargs)

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "ClusterOptions":
        """
        Create options from a profile mapping.

        Accepts either a full profile (with ``cluster`` and optional
        ``reducer`` sections) or the bare ``cluster`` section. Unknown keys
        are rejected so typos in YAML profiles surface early.

        Raises:
            ValueError: On unknown keys or invalid values
        """
        data = dict(data or {})
        if "cluster" in data or "reducer" in data:
            cluster_cfg = dict(data.get("cluster") or {})
            reducer_cfg = data.get("reducer")
        else:
            cluster_cfg = data
            reducer_cfg = None

        allowed = {f.name for f in fields(cls)} - {"map", "reduce"}
        unknown = sorted(set(cluster_cfg) - allowed)
        if unknown:
            raise ValueError(f"Unknown cluster option(s): {', '.join(unknown)}")

        reducer = build_reducer(reducer_cfg)
        if reducer is not None:
            return cls.from_reducer(reducer, **cluster_cfg)
        return cls(**cluster_cfg)

    def to_dict(self) -> Dict[str, Any]:
        """Plain settings (callbacks excluded) for logging and responses."""
        return {
            "min_zoom": self.min_zoom,
            "max_zoom": self.max_zoom,
            "min_points": self.min_points,
            "radius": self.radius,
            "extent": self.extent,
            "node_size": self.node_size,
            "generate_id": self.generate_id,
            "log": self.log,
            "reduces": self.reduce is not None,
        }


__all__ = ["ClusterOptions", "MAX_SUPPORTED_ZOOM"]
