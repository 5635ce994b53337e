"""GeoJSON-style point records consumed and produced by the cluster index."""

from __future__ import annotations

import math
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

import numpy as np
import pandas as pd


Feature = Dict[str, Any]


def point_feature(
    lng: float,
    lat: float,
    properties: Optional[Mapping[str, Any]] = None,
    id: Any = None,
) -> Feature:
    """Build a GeoJSON point feature."""
    feature: Feature = {
        "type": "Feature",
        "geometry": {"type": "Point", "coordinates": [lng, lat]},
        "properties": dict(properties or {}),
    }
    if id is not None:
        feature["id"] = id
    return feature


def feature_coordinates(feature: Mapping[str, Any]) -> Optional[Tuple[float, float]]:
    """Return ``(lng, lat)`` of a point feature, or None if it has no geometry."""
    geometry = feature.get("geometry")
    if not geometry:
        return None
    lng, lat = geometry["coordinates"][:2]
    return float(lng), float(lat)


def abbreviate_count(count: int) -> str:
    """
    Short label for a cluster size.

    Examples:
        >>> abbreviate_count(950)
        '950'
        >>> abbreviate_count(1500)
        '1.5k'
        >>> abbreviate_count(25300)
        '25k'
    """
    if count >= 10000:
        return f"{math.floor(count / 1000 + 0.5)}k"
    if count >= 1000:
        return f"{math.floor(count / 100 + 0.5) / 10:g}k"
    return str(count)


def cluster_properties(
    cluster_id: int,
    point_count: int,
    reduced: Optional[Mapping[str, Any]] = None,
) -> Dict[str, Any]:
    """Summary properties of a cluster, layered over its reduced properties."""
    properties = dict(reduced or {})
    properties.update(
        cluster=True,
        cluster_id=cluster_id,
        point_count=point_count,
        point_count_abbreviated=abbreviate_count(point_count),
    )
    return properties


def cluster_feature(lng: float, lat: float, properties: Dict[str, Any]) -> Feature:
    """Build the output feature of a cluster from its summary properties."""
    return {
        "type": "Feature",
        "id": properties["cluster_id"],
        "properties": properties,
        "geometry": {"type": "Point", "coordinates": [lng, lat]},
    }


def is_cluster(feature: Mapping[str, Any]) -> bool:
    properties = feature.get("properties") or {}
    return bool(properties.get("cluster"))


def features_from_dataframe(
    df: pd.DataFrame,
    *,
    lat: str = "lat",
    lng: str = "lng",
    id_column: Optional[str] = None,
    properties: Optional[Iterable[str]] = None,
) -> List[Feature]:
    """
    Convert a dataframe of points into GeoJSON point features.

    Args:
        df: DataFrame with latitude/longitude columns
        lat: Name of the latitude column
        lng: Name of the longitude column
        id_column: Optional column copied into each feature's ``id``
        properties: Columns copied into ``properties``; defaults to every
                    column except the coordinate and id columns

    Returns:
        List of features in dataframe row order. Rows with a missing
        coordinate become features without geometry.

    Raises:
        KeyError: If a coordinate column is missing
    """
    for column in (lat, lng):
        if column not in df.columns:
            raise KeyError(f"Column '{column}' not present in dataframe")

    if properties is None:
        excluded = {lat, lng, id_column}
        properties = [c for c in df.columns if c not in excluded]
    else:
        properties = list(properties)

    # NaN in property columns becomes None so downstream JSON stays valid.
    props_df = df[properties].astype(object).where(df[properties].notna(), None)
    records = props_df.to_dict(orient="records")
    lats = df[lat].to_numpy(dtype=np.float64)
    lngs = df[lng].to_numpy(dtype=np.float64)
    ids = df[id_column].tolist() if id_column else [None] * len(df)

    features: List[Feature] = []
    for row_lat, row_lng, row_id, row_props in zip(lats, lngs, ids, records):
        if np.isnan(row_lat) or np.isnan(row_lng):
            feature: Feature = {"type": "Feature", "geometry": None, "properties": row_props}
            if row_id is not None:
                feature["id"] = row_id
            features.append(feature)
            continue
        features.append(point_feature(float(row_lng), float(row_lat), row_props, id=row_id))
    return features


__all__ = [
    "Feature",
    "abbreviate_count",
    "cluster_feature",
    "cluster_properties",
    "feature_coordinates",
    "features_from_dataframe",
    "is_cluster",
    "point_feature",
]
