from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from nop_gis.api import polygon_store
from nop_gis.api.deps import get_db
from nop_gis.geometry import PolygonRing
from nop_gis.logging import get_logger
from nop_gis.schemas.polygons import BangunanUpdateRequest, DeleteByIdRequest, FeatureResponse, MutationResponse
from nop_gis.tiles.layers import LAYERS

router = APIRouter(prefix="/bangunans", tags=["bangunans"])
logger = get_logger(__name__)

BANGUNANS = LAYERS["bangunans"]


@router.get("/{bangunan_id}", response_model=FeatureResponse)
def get_bangunan(bangunan_id: int, db: Session = Depends(get_db)) -> FeatureResponse:
    feature = polygon_store.fetch_feature_by_id(db, BANGUNANS, bangunan_id)
    if feature is None:
        raise HTTPException(status_code=404, detail="Bangunan not found")
    return FeatureResponse(data=feature)


@router.put("/update", response_model=MutationResponse)
def update_bangunan(payload: BangunanUpdateRequest, db: Session = Depends(get_db)) -> MutationResponse:
    ring = PolygonRing.from_coordinates(payload.coordinates)
    if not polygon_store.update_polygon_by_id(db, BANGUNANS, payload.id, ring, code=payload.d_nop):
        raise HTTPException(status_code=404, detail="Bangunan not found")
    logger.info("polygon_updated", layer=BANGUNANS.name, id=payload.id)
    return MutationResponse(message="Bangunan updated successfully", id=payload.id)


@router.delete("/delete", response_model=MutationResponse)
def delete_bangunan(payload: DeleteByIdRequest, db: Session = Depends(get_db)) -> MutationResponse:
    if not polygon_store.delete_by_id(db, BANGUNANS, payload.id):
        raise HTTPException(status_code=404, detail="Bangunan not found")
    logger.info("polygon_deleted", layer=BANGUNANS.name, id=payload.id)
    return MutationResponse(message="Bangunan deleted successfully", id=payload.id)
