from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from nop_gis.api.deps import get_db
from nop_gis.logging import get_logger
from nop_gis.tiles.executor import TileFeature, parse_geojson
from nop_gis.tiles.layers import GEOJSON
from nop_gis.tiles.serializers import CACHE_DATASET, CACHE_FALLBACK, SERIALIZERS

router = APIRouter(tags=["regions"])
logger = get_logger(__name__)

DESA_OUTLINE_TOLERANCE = 0.0001


@router.get("/kecamatans")
def list_kecamatans(db: Session = Depends(get_db)) -> dict:
    rows = db.execute(
        text(
            """
            SELECT d_kd_kec, d_nm_kec
            FROM kecamatans
            ORDER BY d_nm_kec
            """
        )
    ).mappings().all()
    return {"success": True, "data": [dict(row) for row in rows]}


@router.get("/desas/list")
def list_desas(
    kecamatan: str | None = Query(default=None),
    db: Session = Depends(get_db),
) -> dict:
    rows = db.execute(
        text(
            """
            SELECT d_kd_kel, d_nm_kel
            FROM desas
            WHERE (CAST(:kecamatan AS TEXT) IS NULL
                   OR LEFT(d_kd_kel, char_length(CAST(:kecamatan AS TEXT))) = CAST(:kecamatan AS TEXT))
            ORDER BY d_nm_kel
            """
        ),
        {"kecamatan": kecamatan or None},
    ).mappings().all()
    return {"success": True, "data": [dict(row) for row in rows]}


@router.get("/desas/all")
def get_all_desas(
    kecamatan: str | None = Query(default=None),
    desa: str | None = Query(default=None),
    db: Session = Depends(get_db),
) -> Response:
    """Village outlines as one gzip FeatureCollection; ``desa`` wins over ``kecamatan``."""
    serializer = SERIALIZERS[GEOJSON]
    params = {
        "tolerance": DESA_OUTLINE_TOLERANCE,
        "desa": desa or None,
        "kecamatan": None if desa else (kecamatan or None),
    }
    try:
        rows = db.execute(
            text(
                """
                SELECT
                    id,
                    d_kd_kel,
                    d_nm_kel,
                    ST_AsGeoJSON(ST_SimplifyPreserveTopology(geom, :tolerance)) AS geometry
                FROM desas
                WHERE (CAST(:desa AS TEXT) IS NULL OR d_kd_kel = CAST(:desa AS TEXT))
                  AND (CAST(:kecamatan AS TEXT) IS NULL
                       OR LEFT(d_kd_kel, char_length(CAST(:kecamatan AS TEXT))) = CAST(:kecamatan AS TEXT))
                ORDER BY id
                """
            ),
            params,
        ).mappings().all()
    except SQLAlchemyError as exc:
        logger.warning("desas_all_failed", error=str(exc))
        return serializer.to_response([], cache_control=CACHE_FALLBACK)

    features = [
        TileFeature(
            id=row["id"],
            properties={"d_kd_kel": row["d_kd_kel"], "d_nm_kel": row["d_nm_kel"]},
            geometry=parse_geojson(row["geometry"]),
        )
        for row in rows
    ]
    return serializer.to_response(features, cache_control=CACHE_DATASET)
