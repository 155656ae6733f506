from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import text
from sqlalchemy.orm import Session

from nop_gis.api import polygon_store
from nop_gis.api.deps import MutationPayload, get_db, get_photo_store, read_mutation_payload
from nop_gis.codes import clean_nop, desa_code_of
from nop_gis.geometry import PolygonRing
from nop_gis.logging import get_logger
from nop_gis.photos import PhotoStore
from nop_gis.schemas.polygons import FeatureResponse, MutationResponse, NopDeleteRequest, NopGeometriesRequest

router = APIRouter(prefix="/nops", tags=["nops"])
logger = get_logger(__name__)


def _list_photos(photos: PhotoStore, nop: str) -> list[str]:
    try:
        return photos.list_urls(nop)
    except (OSError, ValueError) as exc:
        logger.warning("nop_photo_list_failed", nop=nop, error=str(exc))
        return []


@router.get("/search")
def search_nop(
    nop: str | None = Query(default=None),
    db: Session = Depends(get_db),
) -> dict:
    if not nop:
        raise HTTPException(status_code=400, detail="NOP parameter is required")

    cleaned = clean_nop(nop)
    row = db.execute(
        text("SELECT d_nop FROM nops WHERE d_nop = :nop LIMIT 1"),
        {"nop": cleaned},
    ).mappings().first()
    if row is None:
        raise HTTPException(status_code=404, detail="NOP tidak ditemukan")
    return {
        "success": True,
        "data": {"d_nop": row["d_nop"], "d_kd_kel": desa_code_of(cleaned)},
    }


@router.post("/geometries")
def get_nop_geometries(payload: NopGeometriesRequest, db: Session = Depends(get_db)) -> dict:
    if not payload.nops:
        raise HTTPException(status_code=400, detail="NOP list is required")
    return {"success": True, "data": polygon_store.fetch_nop_features(db, payload.nops)}


@router.put("/update", response_model=MutationResponse)
def update_nop(
    payload: MutationPayload = Depends(read_mutation_payload),
    db: Session = Depends(get_db),
    photos: PhotoStore = Depends(get_photo_store),
) -> MutationResponse:
    """Replace a parcel's geometry, then sync its photo directory.

    The database write goes first. A photo failure afterwards does not undo
    it; the response is flagged ``partial`` instead.
    """
    nop = payload.get("nop")
    coordinates = payload.get("coordinates")
    if not nop or coordinates is None:
        raise HTTPException(status_code=400, detail="NOP and coordinates are required")
    deleted_images = payload.get("deletedImages") or []
    if not isinstance(deleted_images, list):
        raise HTTPException(status_code=400, detail="deletedImages must be an array")

    nop = str(nop)
    ring = PolygonRing.from_coordinates(coordinates)
    if not polygon_store.update_nop_geometry(db, nop, ring):
        raise HTTPException(status_code=404, detail="NOP not found")
    logger.info("polygon_updated", layer="nops", nop=nop)

    try:
        photos.delete(nop, deleted_images)
        photos.save(nop, payload.photos)
        images = photos.list_urls(nop)
    except (OSError, ValueError) as exc:
        logger.warning("nop_photo_sync_failed", nop=nop, error=str(exc))
        return MutationResponse(
            message=f"NOP updated but photo storage failed: {exc}",
            partial=True,
            images=_list_photos(photos, nop),
        )
    return MutationResponse(message="NOP updated successfully", images=images)


@router.delete("/delete", response_model=MutationResponse)
def delete_nop(
    payload: NopDeleteRequest,
    db: Session = Depends(get_db),
    photos: PhotoStore = Depends(get_photo_store),
) -> MutationResponse:
    if not payload.nop:
        raise HTTPException(status_code=400, detail="NOP is required")
    if not polygon_store.delete_nop(db, payload.nop):
        raise HTTPException(status_code=404, detail="NOP not found")
    logger.info("polygon_deleted", layer="nops", nop=payload.nop)

    try:
        photos.remove_all(payload.nop)
    except ValueError as exc:
        logger.warning("nop_photo_sync_failed", nop=payload.nop, error=str(exc))
        return MutationResponse(message=f"NOP deleted but photo removal failed: {exc}", partial=True)
    return MutationResponse(message="NOP deleted successfully")


@router.get("/{nop}", response_model=FeatureResponse)
def get_nop(
    nop: str,
    db: Session = Depends(get_db),
    photos: PhotoStore = Depends(get_photo_store),
) -> FeatureResponse:
    feature = polygon_store.fetch_nop_feature(db, nop)
    if feature is None:
        raise HTTPException(status_code=404, detail="NOP not found")
    feature["properties"]["images"] = _list_photos(photos, nop)
    return FeatureResponse(data=feature)
