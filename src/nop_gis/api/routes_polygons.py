from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from nop_gis.api import polygon_store
from nop_gis.api.deps import MutationPayload, get_db, get_photo_store, read_mutation_payload
from nop_gis.geometry import PolygonRing
from nop_gis.logging import get_logger
from nop_gis.photos import PhotoStore
from nop_gis.schemas.polygons import MutationResponse
from nop_gis.tiles.layers import LAYERS, POLYGON_TYPES

router = APIRouter(prefix="/polygons", tags=["polygons"])
logger = get_logger(__name__)


@router.post("/save", response_model=MutationResponse)
def save_polygon(
    payload: MutationPayload = Depends(read_mutation_payload),
    db: Session = Depends(get_db),
    photos: PhotoStore = Depends(get_photo_store),
) -> MutationResponse:
    polygon_type = payload.get("type")
    code = payload.get("code")
    coordinates = payload.get("coordinates")
    if not polygon_type or not code or coordinates is None:
        raise HTTPException(status_code=400, detail="Missing required fields")

    layer_name = POLYGON_TYPES.get(str(polygon_type))
    if layer_name is None:
        raise HTTPException(status_code=400, detail="Invalid polygon type")

    code = str(code)
    ring = PolygonRing.from_coordinates(coordinates)
    layer = LAYERS[layer_name]
    new_id = polygon_store.insert_polygon(db, layer, code, ring)
    logger.info("polygon_saved", layer=layer.name, code=code, id=new_id)

    message = f"{str(polygon_type).upper()} saved successfully"
    if layer.name == "nops" and payload.photos:
        try:
            photos.save(code, payload.photos)
        except (OSError, ValueError) as exc:
            logger.warning("nop_photo_sync_failed", nop=code, error=str(exc))
            return MutationResponse(
                message=f"{message} but photo storage failed: {exc}",
                id=new_id,
                partial=True,
            )
    return MutationResponse(message=message, id=new_id)
