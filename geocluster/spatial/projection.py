"""Spherical Mercator projection onto the unit square.

Longitude maps linearly onto ``x`` in ``[0, 1]`` and latitude onto ``y`` in
``[0, 1]`` (north at the top), with the poles clamped to the square's edges.
The vectorised variant is used when loading large point sets.
"""

from __future__ import annotations

import math
from typing import Tuple

import numpy as np


def lng_x(lng: float) -> float:
    """Project a longitude in degrees onto the unit x axis."""
    return lng / 360.0 + 0.5


def lat_y(lat: float) -> float:
    """Project a latitude in degrees onto the unit y axis, clamped to [0, 1]."""
    sin = math.sin(lat * math.pi / 180.0)
    if sin >= 1.0:
        return 0.0
    if sin <= -1.0:
        return 1.0
    y = 0.5 - 0.25 * math.log((1 + sin) / (1 - sin)) / math.pi
    return 0.0 if y < 0 else 1.0 if y > 1 else y


def x_lng(x: float) -> float:
    """Inverse of :func:`lng_x`."""
    return (x - 0.5) * 360.0


def y_lat(y: float) -> float:
    """Inverse of :func:`lat_y`."""
    y2 = (180.0 - y * 360.0) * math.pi / 180.0
    return 360.0 * math.atan(math.exp(y2)) / math.pi - 90.0


def project_lng_lat(lngs: np.ndarray, lats: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Vectorised :func:`lng_x` / :func:`lat_y` over coordinate arrays."""

    lngs = np.asarray(lngs, dtype=np.float64)
    lats = np.asarray(lats, dtype=np.float64)

    xs = lngs / 360.0 + 0.5
    sin = np.sin(lats * np.pi / 180.0)
    # Poles produce +/-inf inside the log; the clip below pins them to the edges.
    with np.errstate(divide="ignore", invalid="ignore"):
        ys = 0.5 - 0.25 * np.log((1 + sin) / (1 - sin)) / np.pi
    ys = np.where(sin >= 1.0, 0.0, ys)
    ys = np.where(sin <= -1.0, 1.0, ys)
    return xs, np.clip(ys, 0.0, 1.0)


__all__ = ["lng_x", "lat_y", "x_lng", "y_lat", "project_lng_lat"]
