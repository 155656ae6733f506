from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.orm import Session

from nop_gis.api import polygon_store
from nop_gis.api.deps import get_db
from nop_gis.geometry import PolygonRing
from nop_gis.logging import get_logger
from nop_gis.schemas.polygons import BlokUpdateRequest, DeleteByIdRequest, FeatureResponse, MutationResponse
from nop_gis.tiles.executor import parse_geojson
from nop_gis.tiles.layers import LAYERS

router = APIRouter(prefix="/bloks", tags=["bloks"])
logger = get_logger(__name__)

BLOKS = LAYERS["bloks"]


@router.get("")
def list_desa_bloks(
    desa_kode: str | None = Query(default=None, alias="desaKode"),
    db: Session = Depends(get_db),
) -> JSONResponse:
    """All blocks of one village, unsimplified, for the edit layer."""
    headers = {"Cache-Control": "no-store, no-cache, must-revalidate"}
    if not desa_kode:
        return JSONResponse({"type": "FeatureCollection", "features": []}, headers=headers)

    rows = db.execute(
        text(
            """
            SELECT id, d_blok, ST_AsGeoJSON(geom) AS geometry
            FROM bloks
            WHERE LEFT(d_blok, char_length(:desa_kode)) = :desa_kode
            ORDER BY id
            """
        ),
        {"desa_kode": desa_kode},
    ).mappings().all()
    logger.info("desa_bloks", desa_kode=desa_kode, count=len(rows))
    features = [
        {
            "type": "Feature",
            "id": row["id"],
            "properties": {"id": row["id"], "d_blok": row["d_blok"]},
            "geometry": parse_geojson(row["geometry"]),
        }
        for row in rows
    ]
    return JSONResponse({"type": "FeatureCollection", "features": features}, headers=headers)


@router.get("/{blok_id}", response_model=FeatureResponse)
def get_blok(blok_id: int, db: Session = Depends(get_db)) -> FeatureResponse:
    feature = polygon_store.fetch_feature_by_id(db, BLOKS, blok_id)
    if feature is None:
        raise HTTPException(status_code=404, detail="Blok not found")
    return FeatureResponse(data=feature)


@router.put("/update", response_model=MutationResponse)
def update_blok(payload: BlokUpdateRequest, db: Session = Depends(get_db)) -> MutationResponse:
    ring = PolygonRing.from_coordinates(payload.coordinates)
    if not polygon_store.update_polygon_by_id(db, BLOKS, payload.id, ring, code=payload.d_blok):
        raise HTTPException(status_code=404, detail="Blok not found")
    logger.info("polygon_updated", layer=BLOKS.name, id=payload.id)
    return MutationResponse(message="Blok updated successfully", id=payload.id)


@router.delete("/delete", response_model=MutationResponse)
def delete_blok(payload: DeleteByIdRequest, db: Session = Depends(get_db)) -> MutationResponse:
    if not polygon_store.delete_by_id(db, BLOKS, payload.id):
        raise HTTPException(status_code=404, detail="Blok not found")
    logger.info("polygon_deleted", layer=BLOKS.name, id=payload.id)
    return MutationResponse(message="Blok deleted successfully", id=payload.id)
