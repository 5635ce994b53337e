"""FastAPI server exposing cluster queries and tiles for loaded datasets."""

from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import FastAPI, HTTPException, Query, Response
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError

from geocluster.clustering import ClusterNotFoundError, ClusterOptions
from geocluster.tools.config_loader import ConfigLoader

from .schemas.models import (
    BBoxQuery,
    ExpansionZoomResponse,
    FeatureCollection,
    LoadDatasetRequest,
    LoadDatasetResponse,
)
from .tools.datasets import Dataset, DatasetRegistry, render_tile_cached

app = FastAPI(title="Geo Cluster Tile Server", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

registry = DatasetRegistry()


@app.get("/health")
async def health_check() -> Dict[str, str]:
    return {"status": "ok"}


def _load_profile(name: Optional[str]) -> Dict[str, Any]:
    if name:
        return ConfigLoader.load_profile(name)
    return ConfigLoader.load_default_or_env_profile()


def _build_options(request: LoadDatasetRequest) -> ClusterOptions:
    try:
        profile = _load_profile(request.profile)
    except FileNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc

    profile = dict(profile)
    cluster_cfg = dict(profile.get("cluster") or {})
    cluster_cfg.update(request.options.model_dump(exclude_none=True))
    profile["cluster"] = cluster_cfg

    try:
        return ClusterOptions.from_dict(profile)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


def _get_dataset(name: str) -> Dataset:
    dataset = registry.get(name)
    if dataset is None:
        raise HTTPException(status_code=404, detail=f"Dataset '{name}' not found.")
    return dataset


@app.post("/datasets/{name}")
def load_dataset(name: str, request: LoadDatasetRequest) -> Dict[str, Any]:
    options = _build_options(request)
    features = [feature.to_feature() for feature in request.features]
    dataset = registry.load(name, features, options)

    response = LoadDatasetResponse(
        name=name,
        num_points=len(dataset.index.points),
        min_zoom=options.min_zoom,
        max_zoom=options.max_zoom,
        options=options.to_dict(),
    )
    return response.model_dump(by_alias=True)


@app.get("/datasets/{name}/clusters")
def get_clusters(
    name: str,
    bbox: str = Query(..., description="west,south,east,north in degrees"),
    zoom: float = Query(..., ge=0),
) -> Dict[str, Any]:
    dataset = _get_dataset(name)
    try:
        query = BBoxQuery(bbox=bbox, zoom=zoom)
    except ValidationError as exc:
        raise HTTPException(status_code=422, detail="bbox must be four comma-separated numbers") from exc

    try:
        features = dataset.index.get_clusters(query.bbox, query.zoom)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return FeatureCollection(features=features).model_dump()


@app.get("/datasets/{name}/clusters/{cluster_id}/children")
def get_children(name: str, cluster_id: int) -> Dict[str, Any]:
    dataset = _get_dataset(name)
    try:
        children = dataset.index.get_children(cluster_id)
    except ClusterNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return FeatureCollection(features=children).model_dump()


@app.get("/datasets/{name}/clusters/{cluster_id}/leaves")
def get_leaves(
    name: str,
    cluster_id: int,
    limit: int = Query(10, ge=1, le=10000),
    offset: int = Query(0, ge=0),
) -> Dict[str, Any]:
    dataset = _get_dataset(name)
    try:
        leaves = dataset.index.get_leaves(cluster_id, limit=limit, offset=offset)
    except ClusterNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return FeatureCollection(features=leaves).model_dump()


@app.get("/datasets/{name}/clusters/{cluster_id}/expansion-zoom")
def get_expansion_zoom(name: str, cluster_id: int) -> Dict[str, Any]:
    dataset = _get_dataset(name)
    try:
        zoom = dataset.index.get_cluster_expansion_zoom(cluster_id)
    except ClusterNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return ExpansionZoomResponse(cluster_id=cluster_id, expansion_zoom=zoom).model_dump(by_alias=True)


@app.get("/datasets/{name}/tiles/{z}/{x}/{y}")
def get_tile(name: str, z: int, x: int, y: int) -> Any:
    dataset = _get_dataset(name)
    if z < 0 or not (0 <= x < 2 ** z and 0 <= y < 2 ** z):
        raise HTTPException(status_code=400, detail=f"Invalid tile {z}/{x}/{y}.")

    payload = render_tile_cached(dataset, z, x, y)
    if payload is None:
        return Response(status_code=204)
    return payload


__all__ = ["app", "registry"]
