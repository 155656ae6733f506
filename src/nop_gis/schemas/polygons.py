from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class BlokUpdateRequest(BaseModel):
    id: int
    coordinates: list[Any]
    d_blok: str | None = None


class BangunanUpdateRequest(BaseModel):
    id: int
    coordinates: list[Any]
    d_nop: str | None = None


class DeleteByIdRequest(BaseModel):
    id: int


class NopDeleteRequest(BaseModel):
    nop: str | None = None


class NopGeometriesRequest(BaseModel):
    nops: list[str] | None = None


class TematikRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    desa_kode: str | None = Field(default=None, alias="desaKode")
    tahun: str | None = None


class MutationResponse(BaseModel):
    success: bool = True
    message: str
    id: int | None = None
    partial: bool = False
    images: list[str] | None = None


class FeatureResponse(BaseModel):
    success: bool = True
    data: dict[str, Any]
