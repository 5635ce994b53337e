"""
Pytest configuration and shared fixtures for geocluster tests.

This file provides:
- Reference point sets (two city pairs, a random cloud)
- DataFrame inputs for the pandas loader
- Common test utilities
"""

from typing import Any, Dict, List

import numpy as np
import pandas as pd
import pytest

from geocluster.clustering import point_feature


# ==============================================================================
# Sample Points
# ==============================================================================

@pytest.fixture
def city_points() -> List[Dict[str, Any]]:
    """Two pairs of nearby points: San Francisco and New York."""
    return [
        point_feature(-122.4194, 37.7749, {"name": "San Francisco", "population": 883305}),
        point_feature(-122.4294, 37.7849, {"name": "Near SF", "population": 50000}),
        point_feature(-74.0059, 40.7128, {"name": "New York", "population": 8336817}),
        point_feature(-74.0159, 40.7228, {"name": "Near NYC", "population": 120000}),
    ]


@pytest.fixture
def random_points() -> List[Dict[str, Any]]:
    """Deterministic cloud of 2000 points with a few dense hot spots."""
    rng = np.random.default_rng(42)

    uniform_lng = rng.uniform(-180, 180, 1200)
    uniform_lat = rng.uniform(-80, 80, 1200)

    centers = np.array([[2.35, 48.85], [139.69, 35.68], [-58.38, -34.60], [179.5, -16.5]])
    hot = centers[rng.integers(0, len(centers), 800)] + rng.normal(0, 0.5, (800, 2))

    lngs = np.concatenate([uniform_lng, hot[:, 0]])
    lats = np.concatenate([uniform_lat, hot[:, 1]])
    lngs = (lngs + 180) % 360 - 180

    return [
        point_feature(float(lng), float(lat), {"idx": i, "weight": int(i % 7) + 1}, id=f"p{i}")
        for i, (lng, lat) in enumerate(zip(lngs, lats))
    ]


@pytest.fixture
def places_df() -> pd.DataFrame:
    """Sample places as DataFrame."""
    return pd.DataFrame({
        'id': ['p1', 'p2', 'p3', 'p4'],
        'name': ['Tokyo Station', 'Shinjuku', 'Meiji Shrine', 'Senso-ji'],
        'lat': [35.6812, 35.6895, 35.6764, 35.7148],
        'lng': [139.7671, 139.6917, 139.6993, 139.7967],
        'population': [1200, 3400, np.nan, 2100],
    })


# ==============================================================================
# Utilities
# ==============================================================================

def point_count(feature: Dict[str, Any]) -> int:
    """Number of input points represented by a returned feature."""
    props = feature.get("properties") or {}
    return props["point_count"] if props.get("cluster") else 1


def leaf_names(features: List[Dict[str, Any]]) -> List[str]:
    return sorted(f["properties"]["name"] for f in features)
