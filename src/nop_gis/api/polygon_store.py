"""SQL for polygon create/read/update/delete.

Every write is a single autocommit statement; concurrent edits of the same
row are last-writer-wins. Writes to a layer with a pre-projected ``_mvt``
view refresh that view once the row change is committed.
"""
from __future__ import annotations

from typing import Any

from sqlalchemy import text
from sqlalchemy.exc import DBAPIError
from sqlalchemy.orm import Session

from nop_gis.geometry import PolygonRing
from nop_gis.logging import get_logger
from nop_gis.tiles.executor import is_missing_relation, parse_geojson
from nop_gis.tiles.layers import LAYERS, LayerConfig

NOPS = LAYERS["nops"]

logger = get_logger(__name__)


def _geom_expr(layer: LayerConfig) -> str:
    if layer.multi:
        return "ST_Multi(ST_GeomFromText(:wkt, 4326))"
    return "ST_GeomFromText(:wkt, 4326)"


def refresh_mvt_view(db: Session, layer: LayerConfig) -> None:
    if not layer.mvt_view:
        return
    try:
        db.execute(text(f"REFRESH MATERIALIZED VIEW CONCURRENTLY {layer.mvt_view}"))
    except DBAPIError as exc:
        if not is_missing_relation(exc):
            raise
        # Tiles read the raw table while the view is absent.
        db.rollback()
        logger.warning("mvt_view_refresh_skipped", view=layer.mvt_view, error=str(exc.orig))
        return
    db.commit()


def _row_to_feature(layer: LayerConfig, row: Any) -> dict[str, Any]:
    properties = {"id": row["id"]}
    properties.update({name: row[name] for name in layer.properties})
    return {
        "type": "Feature",
        "properties": properties,
        "geometry": parse_geojson(row["geometry"]),
    }


def insert_polygon(db: Session, layer: LayerConfig, code: str, ring: PolygonRing) -> int:
    columns = [layer.code_column]
    values = [":code"]
    if "d_luas" in layer.properties:
        # Area in square metres on the WGS84 spheroid.
        columns.append("d_luas")
        values.append("ROUND(ST_Area(ST_GeomFromText(:wkt, 4326)::geography))::bigint::text")
    new_id = db.execute(
        text(
            f"""
            INSERT INTO {layer.table} ({", ".join(columns)}, geom, created_at, updated_at)
            VALUES ({", ".join(values)}, {_geom_expr(layer)}, now(), now())
            RETURNING id
            """
        ),
        {"code": code, "wkt": ring.to_wkt()},
    ).scalar_one()
    db.commit()
    refresh_mvt_view(db, layer)
    return int(new_id)


def update_polygon_by_id(
    db: Session,
    layer: LayerConfig,
    feature_id: int,
    ring: PolygonRing,
    code: str | None = None,
) -> bool:
    row = db.execute(
        text(
            f"""
            UPDATE {layer.table}
            SET geom = {_geom_expr(layer)},
                {layer.code_column} = COALESCE(CAST(:code AS TEXT), {layer.code_column}),
                updated_at = now()
            WHERE id = :id
            RETURNING id
            """
        ),
        {"id": feature_id, "code": code or None, "wkt": ring.to_wkt()},
    ).first()
    db.commit()
    if row is None:
        return False
    refresh_mvt_view(db, layer)
    return True


def update_nop_geometry(db: Session, nop: str, ring: PolygonRing) -> bool:
    rows = db.execute(
        text(
            f"""
            UPDATE nops
            SET geom = {_geom_expr(NOPS)},
                updated_at = now()
            WHERE d_nop = :nop
            RETURNING id
            """
        ),
        {"nop": nop, "wkt": ring.to_wkt()},
    ).all()
    db.commit()
    if not rows:
        return False
    refresh_mvt_view(db, NOPS)
    return True


def delete_by_id(db: Session, layer: LayerConfig, feature_id: int) -> bool:
    row = db.execute(
        text(f"DELETE FROM {layer.table} WHERE id = :id RETURNING id"),
        {"id": feature_id},
    ).first()
    db.commit()
    if row is None:
        return False
    refresh_mvt_view(db, layer)
    return True


def delete_nop(db: Session, nop: str) -> bool:
    rows = db.execute(
        text("DELETE FROM nops WHERE d_nop = :nop RETURNING id"),
        {"nop": nop},
    ).all()
    db.commit()
    if not rows:
        return False
    refresh_mvt_view(db, NOPS)
    return True


def fetch_feature_by_id(db: Session, layer: LayerConfig, feature_id: int) -> dict[str, Any] | None:
    row = db.execute(
        text(
            f"""
            SELECT id, {", ".join(layer.properties)}, ST_AsGeoJSON(geom) AS geometry
            FROM {layer.table}
            WHERE id = :id
            LIMIT 1
            """
        ),
        {"id": feature_id},
    ).mappings().first()
    if row is None:
        return None
    return _row_to_feature(layer, row)


def fetch_nop_feature(db: Session, nop: str) -> dict[str, Any] | None:
    row = db.execute(
        text(
            """
            SELECT id, d_nop, d_luas, ST_AsGeoJSON(geom) AS geometry
            FROM nops
            WHERE d_nop = :nop
            LIMIT 1
            """
        ),
        {"nop": nop},
    ).mappings().first()
    if row is None:
        return None
    return _row_to_feature(NOPS, row)


def fetch_nop_features(db: Session, nops: list[str]) -> list[dict[str, Any]]:
    rows = db.execute(
        text(
            """
            SELECT id, d_nop, d_luas, ST_AsGeoJSON(ST_Transform(geom, 4326)) AS geometry
            FROM nops
            WHERE d_nop = ANY(:nops)
            ORDER BY id
            """
        ),
        {"nops": list(nops)},
    ).mappings().all()
    return [_row_to_feature(NOPS, row) for row in rows]
