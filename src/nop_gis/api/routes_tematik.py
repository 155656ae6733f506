from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, HTTPException

from nop_gis.api.deps import get_sismiop_client
from nop_gis.codes import DESA_CODE_LENGTH, split_desa_code
from nop_gis.logging import get_logger
from nop_gis.schemas.polygons import TematikRequest
from nop_gis.sismiop import TEMATIK_ENDPOINTS, TEMATIK_REQUIRES_YEAR, SismiopClient

router = APIRouter(prefix="/tematik", tags=["tematik"])
logger = get_logger(__name__)


@router.post("/{tematik_type}")
def get_tematik(
    tematik_type: str,
    payload: TematikRequest,
    client: SismiopClient = Depends(get_sismiop_client),
) -> dict:
    """Thematic overlay values for one village, re-shaped from SISMIOP."""
    if not payload.desa_kode:
        raise HTTPException(status_code=400, detail="desaKode is required")
    if len(payload.desa_kode) < DESA_CODE_LENGTH:
        raise HTTPException(status_code=400, detail="desaKode must have 10 digits")

    endpoint = TEMATIK_ENDPOINTS.get(tematik_type)
    if endpoint is None:
        raise HTTPException(status_code=400, detail=f"Invalid tematik type: {tematik_type}")

    fields = split_desa_code(payload.desa_kode)
    if tematik_type in TEMATIK_REQUIRES_YEAR:
        fields["THN_PAJAK_SPPT"] = payload.tahun or str(date.today().year)

    logger.info("tematik_request", tematik_type=tematik_type, endpoint=endpoint, **fields)
    data = client.post_form(endpoint, fields)
    return {
        "success": bool(data.get("status")),
        "message": data.get("msg"),
        "data": data.get("data"),
    }
