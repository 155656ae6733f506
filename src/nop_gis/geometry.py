from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

MIN_RING_POSITIONS = 4


class InvalidRingError(ValueError):
    """Raised when client-drawn coordinates do not form a usable polygon ring."""


Position = tuple[float, float]


def _to_position(index: int, raw: Any) -> Position:
    if not isinstance(raw, Sequence) or isinstance(raw, (str, bytes)) or len(raw) < 2:
        raise InvalidRingError(f"Position {index} must be a [lng, lat] pair.")
    lng, lat = raw[0], raw[1]
    if isinstance(lng, bool) or isinstance(lat, bool):
        raise InvalidRingError(f"Position {index} must contain numbers.")
    try:
        lng_f, lat_f = float(lng), float(lat)
    except (TypeError, ValueError) as exc:
        raise InvalidRingError(f"Position {index} must contain numbers.") from exc
    if not (math.isfinite(lng_f) and math.isfinite(lat_f)):
        raise InvalidRingError(f"Position {index} is not finite.")
    if not (-180.0 <= lng_f <= 180.0 and -90.0 <= lat_f <= 90.0):
        raise InvalidRingError(f"Position {index} is outside WGS84 bounds.")
    return (lng_f, lat_f)


@dataclass(frozen=True)
class PolygonRing:
    """Closed exterior ring of ``(lng, lat)`` positions in SRID 4326."""

    positions: tuple[Position, ...]

    @classmethod
    def from_coordinates(cls, coordinates: Any) -> PolygonRing:
        if not isinstance(coordinates, Sequence) or isinstance(coordinates, (str, bytes)):
            raise InvalidRingError("Coordinates must be an array of [lng, lat] pairs.")
        positions = tuple(_to_position(index, raw) for index, raw in enumerate(coordinates))
        if len(positions) < MIN_RING_POSITIONS:
            raise InvalidRingError(
                f"A polygon ring needs at least {MIN_RING_POSITIONS} positions, got {len(positions)}."
            )
        if positions[0] != positions[-1]:
            raise InvalidRingError("Polygon ring is not closed: first and last positions differ.")
        if len(set(positions)) < MIN_RING_POSITIONS - 1:
            raise InvalidRingError("Polygon ring needs at least three distinct positions.")
        return cls(positions)

    def to_wkt(self) -> str:
        points = ", ".join(f"{lng!r} {lat!r}" for lng, lat in self.positions)
        return f"POLYGON(({points}))"

    def as_coordinates(self) -> list[list[float]]:
        return [[lng, lat] for lng, lat in self.positions]
