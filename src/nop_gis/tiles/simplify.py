"""Zoom to simplification tolerance for ST_SimplifyPreserveTopology.

Tolerance halves every zoom level so the rendered vertex count stays
roughly constant across the pyramid.
"""
from __future__ import annotations

METERS_PER_DEGREE = 111320.0
MVT_FULL_DETAIL_ZOOM = 18


def geojson_tolerance(z: int) -> float:
    """Tolerance in degrees for the SRID 4326 GeoJSON path."""
    return 2.0 ** (20 - z) / METERS_PER_DEGREE


def mvt_tolerance_degrees(z: int) -> float:
    if z >= MVT_FULL_DETAIL_ZOOM:
        return 0.0
    return 2.0 ** (MVT_FULL_DETAIL_ZOOM - z) * 0.00001


def mvt_tolerance_meters(z: int) -> float:
    """Tolerance for geometry already projected to SRID 3857."""
    return mvt_tolerance_degrees(z) * METERS_PER_DEGREE
