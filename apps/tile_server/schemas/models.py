"""Pydantic models for the cluster tile server."""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator


class PointGeometry(BaseModel):
    type: Literal["Point"] = "Point"
    coordinates: List[float] = Field(..., min_length=2, description="[lng, lat] in degrees")


class FeatureIn(BaseModel):
    """GeoJSON point feature accepted when loading a dataset."""

    type: Literal["Feature"] = "Feature"
    id: Optional[Any] = None
    geometry: Optional[PointGeometry] = None
    properties: Dict[str, Any] = Field(default_factory=dict)

    def to_feature(self) -> Dict[str, Any]:
        feature: Dict[str, Any] = {
            "type": "Feature",
            "geometry": self.geometry.model_dump() if self.geometry else None,
            "properties": dict(self.properties),
        }
        if self.id is not None:
            feature["id"] = self.id
        return feature


class ClusterOptionsIn(BaseModel):
    """Option overrides applied on top of the selected profile."""

    min_zoom: Optional[int] = Field(default=None, ge=0, le=30, alias="minZoom")
    max_zoom: Optional[int] = Field(default=None, ge=0, le=30, alias="maxZoom")
    min_points: Optional[int] = Field(default=None, ge=1, alias="minPoints")
    radius: Optional[float] = Field(default=None, gt=0)
    extent: Optional[int] = Field(default=None, gt=0)
    node_size: Optional[int] = Field(default=None, ge=2, le=65535, alias="nodeSize")
    generate_id: Optional[bool] = Field(default=None, alias="generateId")

    model_config = {"populate_by_name": True}


class LoadDatasetRequest(BaseModel):
    features: List[FeatureIn]
    profile: Optional[str] = Field(default=None, description="Cluster profile name under configs/")
    options: ClusterOptionsIn = Field(default_factory=ClusterOptionsIn)


class LoadDatasetResponse(BaseModel):
    name: str
    num_points: int = Field(..., alias="numPoints")
    min_zoom: int = Field(..., alias="minZoom")
    max_zoom: int = Field(..., alias="maxZoom")
    options: Dict[str, Any]

    model_config = {"populate_by_name": True}


class FeatureCollection(BaseModel):
    type: Literal["FeatureCollection"] = "FeatureCollection"
    features: List[Dict[str, Any]]


class ExpansionZoomResponse(BaseModel):
    cluster_id: int = Field(..., alias="clusterId")
    expansion_zoom: int = Field(..., alias="expansionZoom")

    model_config = {"populate_by_name": True}


class BBoxQuery(BaseModel):
    bbox: List[float] = Field(..., min_length=4, max_length=4)
    zoom: float = Field(..., ge=0)

    @field_validator("bbox", mode="before")
    @classmethod
    def _split_bbox(cls, value: Any) -> Any:
        if isinstance(value, str):
            try:
                return [float(part) for part in value.split(",")]
            except ValueError as exc:
                raise ValueError("bbox must be four comma-separated numbers") from exc
        return value
