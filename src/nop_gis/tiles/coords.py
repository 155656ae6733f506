"""XYZ tile index to WGS84 bounds (spherical mercator inverse)."""
from __future__ import annotations

import math

MAX_ZOOM = 30

BBox = tuple[float, float, float, float]


def _tile_lat(y: float, n: float) -> float:
    return math.degrees(math.atan(math.sinh(math.pi * (1 - 2 * y / n))))


def tile_to_bbox(z: int, x: int, y: int) -> BBox:
    """Return ``(lon_min, lat_min, lon_max, lat_max)`` of tile ``z/x/y``.

    Out-of-pyramid indexes are not rejected here; callers that need strict
    tiles check :func:`is_valid_tile` first.
    """
    n = 2.0**z
    lon_min = x / n * 360.0 - 180.0
    lon_max = (x + 1) / n * 360.0 - 180.0
    lat_max = _tile_lat(y, n)
    lat_min = _tile_lat(y + 1, n)
    return (lon_min, lat_min, lon_max, lat_max)


def bbox_to_wkt(bbox: BBox) -> str:
    lon_min, lat_min, lon_max, lat_max = bbox
    ring = [
        (lon_min, lat_min),
        (lon_max, lat_min),
        (lon_max, lat_max),
        (lon_min, lat_max),
        (lon_min, lat_min),
    ]
    return "POLYGON((" + ", ".join(f"{lon!r} {lat!r}" for lon, lat in ring) + "))"


def is_valid_tile(z: int, x: int, y: int) -> bool:
    if z < 0 or z > MAX_ZOOM:
        return False
    n = 1 << z
    return 0 <= x < n and 0 <= y < n
