from __future__ import annotations

import json
from collections.abc import Generator
from dataclasses import dataclass, field
from typing import Any

from fastapi import HTTPException, Request
from sqlalchemy.orm import Session
from starlette.datastructures import UploadFile

from nop_gis.db import get_session_factory
from nop_gis.photos import PhotoStore, UploadedPhoto
from nop_gis.settings import get_settings
from nop_gis.sismiop import SismiopClient

_FORM_CONTENT_TYPES = ("multipart/form-data", "application/x-www-form-urlencoded")
_JSON_FORM_FIELDS = ("coordinates", "deletedImages")


def get_db() -> Generator[Session, None, None]:
    session_factory = get_session_factory()
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


def get_photo_store() -> PhotoStore:
    return PhotoStore(get_settings().nop_photo_root)


def get_sismiop_client() -> Generator[SismiopClient, None, None]:
    client = SismiopClient.from_settings(get_settings())
    try:
        yield client
    finally:
        client.close()


@dataclass
class MutationPayload:
    """Body of a polygon mutation, sent either as JSON or as multipart form."""

    fields: dict[str, Any]
    photos: list[UploadedPhoto] = field(default_factory=list)

    def get(self, name: str, default: Any = None) -> Any:
        return self.fields.get(name, default)


def _load_json_field(name: str, raw: str) -> Any:
    try:
        return json.loads(raw)
    except json.JSONDecodeError as exc:
        raise HTTPException(status_code=400, detail=f"Field '{name}' must be valid JSON.") from exc


async def read_mutation_payload(request: Request) -> MutationPayload:
    content_type = request.headers.get("content-type", "")
    if content_type.startswith(_FORM_CONTENT_TYPES):
        form = await request.form()
        fields: dict[str, Any] = {}
        photos: list[UploadedPhoto] = []
        for key, value in form.multi_items():
            if isinstance(value, UploadFile):
                if key == "files":
                    photos.append(UploadedPhoto(filename=value.filename or "upload", content=await value.read()))
                continue
            fields[key] = value
        for name in _JSON_FORM_FIELDS:
            if isinstance(fields.get(name), str) and fields[name]:
                fields[name] = _load_json_field(name, fields[name])
        return MutationPayload(fields=fields, photos=photos)

    try:
        body = await request.json()
    except ValueError as exc:
        raise HTTPException(status_code=400, detail="Request body must be JSON or multipart form data.") from exc
    if not isinstance(body, dict):
        raise HTTPException(status_code=400, detail="Request body must be a JSON object.")
    return MutationPayload(fields=body)
