from __future__ import annotations

from contextlib import asynccontextmanager
from uuid import uuid4

from fastapi import APIRouter, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from nop_gis.api.cache_middleware import CacheHeaderMiddleware
from nop_gis.api.error_handlers import (
    http_exception_handler,
    invalid_ring_handler,
    unhandled_exception_handler,
    validation_exception_handler,
)
from nop_gis.api.routes_bangunans import router as bangunans_router
from nop_gis.api.routes_bloks import router as bloks_router
from nop_gis.api.routes_nops import router as nops_router
from nop_gis.api.routes_polygons import router as polygons_router
from nop_gis.api.routes_regions import router as regions_router
from nop_gis.api.routes_tematik import router as tematik_router
from nop_gis.api.routes_tiles import router as tiles_router
from nop_gis.db import dispose_engine, healthcheck
from nop_gis.geometry import InvalidRingError
from nop_gis.logging import configure_logging, get_logger
from nop_gis.settings import get_settings

settings = get_settings()
configure_logging(settings.log_level)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    settings.nop_photo_root.mkdir(parents=True, exist_ok=True)
    logger.info("app_started", app_env=settings.app_env)
    yield
    dispose_engine()
    logger.info("app_stopped")


app = FastAPI(title=settings.app_name, lifespan=lifespan)
api_router = APIRouter(prefix=settings.api_prefix)
api_router.include_router(tiles_router)
api_router.include_router(regions_router)
api_router.include_router(bloks_router)
api_router.include_router(bangunans_router)
api_router.include_router(nops_router)
api_router.include_router(polygons_router)
api_router.include_router(tematik_router)
app.include_router(api_router)
app.mount("/uploads", StaticFiles(directory=settings.upload_root, check_dir=False), name="uploads")

app.add_middleware(CacheHeaderMiddleware)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(InvalidRingError, invalid_ring_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    request_id = request.headers.get("x-request-id", str(uuid4()))
    request.state.request_id = request_id
    response = await call_next(request)
    response.headers["x-request-id"] = request_id
    return response


@app.get(f"{settings.api_prefix}/health")
def get_health() -> dict:
    return {"status": "ok", "db": healthcheck()}
