from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse, Response
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from nop_gis.api.deps import get_db
from nop_gis.logging import get_logger
from nop_gis.tiles.coords import is_valid_tile
from nop_gis.tiles.executor import fetch_geojson_features, fetch_mvt_tile
from nop_gis.tiles.layers import GEOJSON, MVT, get_layer
from nop_gis.tiles.serializers import CACHE_FALLBACK, CACHE_MVT, CACHE_TILE, SERIALIZERS

router = APIRouter(prefix="/tiles", tags=["tiles"])
logger = get_logger(__name__)


@router.get("/nops/labels")
def get_nop_labels(
    desa_kode: str | None = Query(default=None, alias="desaKode"),
    db: Session = Depends(get_db),
) -> JSONResponse:
    if not desa_kode:
        return JSONResponse({"labels": [], "count": 0})

    try:
        rows = db.execute(
            text(
                """
                SELECT
                    id,
                    SUBSTRING(d_nop FROM 14 FOR 4) AS view_nop,
                    ST_Y(ST_Centroid(ST_Transform(geom, 4326))) AS centroid_lat,
                    ST_X(ST_Centroid(ST_Transform(geom, 4326))) AS centroid_lng
                FROM nops
                WHERE SUBSTRING(d_nop, 1, 10) = :desa_kode
                ORDER BY id
                """
            ),
            {"desa_kode": desa_kode},
        ).mappings().all()
    except SQLAlchemyError as exc:
        logger.warning("nop_labels_failed", desa_kode=desa_kode, error=str(exc))
        return JSONResponse(
            {"labels": [], "count": 0, "error": "Failed to fetch labels"},
            status_code=500,
        )

    labels = [dict(row) for row in rows]
    return JSONResponse(
        {"labels": labels, "count": len(labels)},
        headers={"Cache-Control": CACHE_TILE},
    )


@router.get(
    "/{layer}/mvt/{z}/{x}/{y}",
    responses={
        200: {"content": {"application/x-protobuf": {}}},
        204: {"description": "Empty tile"},
        404: {"description": "Unknown layer"},
    },
)
def get_mvt_tile(
    layer: str,
    z: int,
    x: int,
    y: int,
    request: Request,
    desa_kode: str | None = Query(default=None, alias="desaKode"),
    db: Session = Depends(get_db),
) -> Response:
    config = get_layer(layer, MVT)
    serializer = SERIALIZERS[MVT]
    if not is_valid_tile(z, x, y):
        return serializer.to_response(b"", cache_control=CACHE_MVT)

    mvt_bytes = fetch_mvt_tile(db, config, z, x, y, desa_kode or None)
    logger.debug("mvt_tile", layer=layer, z=z, x=x, y=y, bytes=len(mvt_bytes))
    return serializer.to_response(
        mvt_bytes,
        cache_control=CACHE_MVT,
        if_none_match=request.headers.get("if-none-match"),
    )


def _parse_tile_index(raw: str | None) -> int | None:
    if raw is None or raw == "":
        return 0
    try:
        return int(raw)
    except ValueError:
        return None


@router.get("/{layer}")
def get_geojson_tile(
    layer: str,
    z: str | None = Query(default=None),
    x: str | None = Query(default=None),
    y: str | None = Query(default=None),
    desa_kode: str | None = Query(default=None, alias="desaKode"),
    db: Session = Depends(get_db),
) -> Response:
    config = get_layer(layer, GEOJSON)
    serializer = SERIALIZERS[GEOJSON]
    tile = (_parse_tile_index(z), _parse_tile_index(x), _parse_tile_index(y))
    if None in tile or not is_valid_tile(*tile):
        logger.debug("geojson_tile_out_of_range", layer=layer, z=z, x=x, y=y)
        return serializer.to_response([], cache_control=CACHE_FALLBACK)
    tile_z, tile_x, tile_y = tile

    try:
        features = fetch_geojson_features(db, config, tile_z, tile_x, tile_y, desa_kode or None)
    except SQLAlchemyError as exc:
        logger.warning("geojson_tile_failed", layer=layer, z=tile_z, x=tile_x, y=tile_y, error=str(exc))
        return serializer.to_response([], cache_control=CACHE_FALLBACK)
    return serializer.to_response(features, cache_control=CACHE_TILE)
