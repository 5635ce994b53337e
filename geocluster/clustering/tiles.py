"""Encoding of index records into tile-local point features."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

POINT_FEATURE_TYPE = 1


@dataclass
class TileFeature:
    """A point feature in tile pixel coordinates."""

    geometry: List[List[int]]
    tags: Dict[str, Any]
    type: int = POINT_FEATURE_TYPE
    id: Optional[Any] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {"type": self.type, "geometry": self.geometry, "tags": self.tags}
        if self.id is not None:
            data["id"] = self.id
        return data


@dataclass
class Tile:
    """Features of a single ``z/x/y`` tile."""

    features: List[TileFeature] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"features": [f.to_dict() for f in self.features]}

    def __len__(self) -> int:
        return len(self.features)


def tile_pixel(x: float, y: float, z2: int, tile_x: int, tile_y: int, extent: int) -> List[int]:
    """
    Convert unit-square coordinates to pixel coordinates inside a tile.

    ``tile_x`` may be ``-1`` or ``z2`` when encoding points mirrored across
    the antimeridian into the first or last tile column.
    """
    px = math.floor(extent * (x * z2 - tile_x) + 0.5)
    py = math.floor(extent * (y * z2 - tile_y) + 0.5)
    return [px, py]


def encode_tile_feature(
    x: float,
    y: float,
    tags: Dict[str, Any],
    feature_id: Optional[Any],
    *,
    z2: int,
    tile_x: int,
    tile_y: int,
    extent: int,
) -> TileFeature:
    return TileFeature(
        geometry=[tile_pixel(x, y, z2, tile_x, tile_y, extent)],
        tags=tags,
        id=feature_id,
    )


__all__ = [
    "POINT_FEATURE_TYPE",
    "Tile",
    "TileFeature",
    "encode_tile_feature",
    "tile_pixel",
]
