from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

from sqlalchemy import text
from sqlalchemy.exc import DBAPIError
from sqlalchemy.orm import Session
from sqlalchemy.sql.elements import TextClause

from nop_gis.logging import get_logger
from nop_gis.tiles.coords import bbox_to_wkt, tile_to_bbox
from nop_gis.tiles.layers import LayerConfig
from nop_gis.tiles.simplify import geojson_tolerance, mvt_tolerance_meters

MAX_TILE_FEATURES = 500
MVT_EXTENT = 4096
MVT_BUFFER = 64

# undefined_table, undefined_column
_MISSING_RELATION_SQLSTATES = frozenset({"42P01", "42703"})

logger = get_logger(__name__)


@dataclass(frozen=True)
class TileFeature:
    id: int
    properties: dict[str, Any]
    geometry: dict[str, Any]

    def as_geojson(self) -> dict[str, Any]:
        return {
            "type": "Feature",
            "id": self.id,
            "properties": self.properties,
            "geometry": self.geometry,
        }


def parse_geojson(raw: Any) -> dict[str, Any]:
    if isinstance(raw, dict):
        return raw
    if not raw:
        return {"type": "GeometryCollection", "geometries": []}
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        return {"type": "GeometryCollection", "geometries": []}
    return parsed if isinstance(parsed, dict) else {"type": "GeometryCollection", "geometries": []}


def is_missing_relation(exc: DBAPIError) -> bool:
    return getattr(exc.orig, "sqlstate", None) in _MISSING_RELATION_SQLSTATES


def fetch_geojson_features(
    db: Session,
    layer: LayerConfig,
    z: int,
    x: int,
    y: int,
    desa_kode: str | None,
) -> list[TileFeature]:
    if desa_kode is None and layer.requires_filter:
        return []

    columns = ", ".join(layer.properties)
    sql = text(
        f"""
        SELECT
            id,
            {columns},
            ST_AsGeoJSON(ST_SimplifyPreserveTopology(geom, :tolerance)) AS geometry
        FROM {layer.table}
        WHERE ST_Intersects(ST_SetSRID(geom, 4326), ST_GeomFromText(:bbox, 4326))
          AND (CAST(:desa_kode AS TEXT) IS NULL
               OR SUBSTRING({layer.code_column}, 1, 10) = CAST(:desa_kode AS TEXT))
        ORDER BY id
        LIMIT :limit
        """
    )
    rows = db.execute(
        sql,
        {
            "tolerance": geojson_tolerance(z),
            "bbox": bbox_to_wkt(tile_to_bbox(z, x, y)),
            "desa_kode": desa_kode,
            "limit": MAX_TILE_FEATURES,
        },
    ).mappings().all()

    return [
        TileFeature(
            id=row["id"],
            properties={name: row[name] for name in layer.properties},
            geometry=parse_geojson(row["geometry"]),
        )
        for row in rows
    ]


def _mvt_sql(layer: LayerConfig, source: str, geom_expr: str) -> TextClause:
    base_columns = "".join(f"t.{name}, " for name in layer.mvt_properties)
    feature_columns = "".join(f"base.{name}, " for name in layer.mvt_properties)
    return text(
        f"""
        WITH tile_extent AS (
            SELECT ST_TileEnvelope(:z, :x, :y) AS envelope
        ),
        base AS (
            SELECT
                t.id,
                {base_columns}SUBSTRING(t.{layer.code_column} FROM 14 FOR 4) AS view_nop,
                {geom_expr} AS geom_3857
            FROM {source} t
            CROSS JOIN tile_extent te
            WHERE ST_Intersects({geom_expr}, te.envelope)
              AND LEFT(t.{layer.code_column}, 10) = :desa_kode
            ORDER BY t.id
            LIMIT :limit
        ),
        features AS (
            SELECT
                base.id,
                {feature_columns}base.view_nop,
                ST_AsMVTGeom(
                    ST_SimplifyPreserveTopology(base.geom_3857, :tolerance_meters),
                    te.envelope,
                    {MVT_EXTENT},
                    {MVT_BUFFER},
                    true
                ) AS geom
            FROM base
            CROSS JOIN tile_extent te
        )
        SELECT ST_AsMVT(features.*, :layer_name, {MVT_EXTENT}, 'geom' ORDER BY features.id) AS mvt
        FROM features
        WHERE features.geom IS NOT NULL
        """
    )


def _scalar_bytes(execution: Any) -> bytes:
    scalar_one_or_none = getattr(execution, "scalar_one_or_none", None)
    if callable(scalar_one_or_none):
        result = scalar_one_or_none()
    else:
        result = execution.scalar()
    return bytes(result) if result else b""


def fetch_mvt_tile(
    db: Session,
    layer: LayerConfig,
    z: int,
    x: int,
    y: int,
    desa_kode: str | None,
) -> bytes:
    """Build one ST_AsMVT blob for the tile; empty bytes when nothing matches.

    The pre-projected ``_mvt`` view is tried first. Only a missing view (or
    column) falls back to the raw table with an inline transform; any other
    database error propagates.
    """
    if desa_kode is None and layer.requires_filter:
        return b""

    params: dict[str, object] = {
        "z": z,
        "x": x,
        "y": y,
        "desa_kode": desa_kode,
        "tolerance_meters": mvt_tolerance_meters(z),
        "layer_name": layer.name,
        "limit": MAX_TILE_FEATURES,
    }

    if layer.mvt_view:
        try:
            return _scalar_bytes(db.execute(_mvt_sql(layer, layer.mvt_view, "t.geom_3857"), params))
        except DBAPIError as exc:
            if not is_missing_relation(exc):
                raise
            db.rollback()
            logger.warning(
                "mvt_view_fallback",
                layer=layer.name,
                view=layer.mvt_view,
                error=str(exc.orig),
            )

    return _scalar_bytes(db.execute(_mvt_sql(layer, layer.table, "ST_Transform(t.geom, 3857)"), params))
