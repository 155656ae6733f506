from __future__ import annotations

import gzip
import hashlib
import json
from abc import ABC, abstractmethod
from collections.abc import Iterable
from typing import Any

from fastapi.responses import Response

from nop_gis.tiles.executor import TileFeature
from nop_gis.tiles.layers import GEOJSON, MVT

CACHE_DATASET = "public, max-age=86400"
CACHE_TILE = "public, max-age=3600"
CACHE_FALLBACK = "public, max-age=60"
CACHE_MVT = "public, max-age=604800, stale-while-revalidate=86400"


class TileSerializer(ABC):
    media_type: str
    content_encoding: str | None = None

    @abstractmethod
    def encode(self, payload: Any) -> bytes:
        raise NotImplementedError

    def headers(self, cache_control: str) -> dict[str, str]:
        headers = {
            "Cache-Control": cache_control,
            "Access-Control-Allow-Origin": "*",
        }
        if self.content_encoding:
            headers["Content-Encoding"] = self.content_encoding
        return headers

    def to_response(self, payload: Any, *, cache_control: str) -> Response:
        return Response(
            content=self.encode(payload),
            media_type=self.media_type,
            headers=self.headers(cache_control),
        )


def feature_collection(features: Iterable[TileFeature]) -> dict[str, Any]:
    return {
        "type": "FeatureCollection",
        "features": [feature.as_geojson() for feature in features],
    }


class GeoJsonTileSerializer(TileSerializer):
    """FeatureCollection, always gzip-wrapped."""

    media_type = "application/json"
    content_encoding = "gzip"

    def encode(self, payload: Iterable[TileFeature]) -> bytes:
        body = json.dumps(feature_collection(payload), separators=(",", ":"))
        # Fixed mtime keeps identical tiles byte-identical.
        return gzip.compress(body.encode("utf-8"), mtime=0)


class MvtTileSerializer(TileSerializer):
    """Binary ST_AsMVT output, passed through without a second compression."""

    media_type = "application/x-protobuf"

    def encode(self, payload: bytes) -> bytes:
        return bytes(payload)

    def to_response(
        self,
        payload: bytes,
        *,
        cache_control: str,
        if_none_match: str | None = None,
    ) -> Response:
        body = self.encode(payload)
        if not body:
            return Response(status_code=204, headers={"Access-Control-Allow-Origin": "*"})

        etag = f"\"{hashlib.sha256(body).hexdigest()}\""
        headers = {**self.headers(cache_control), "ETag": etag}
        if if_none_match == etag:
            return Response(status_code=304, headers=headers)
        return Response(content=body, media_type=self.media_type, headers=headers)


SERIALIZERS: dict[str, TileSerializer] = {
    GEOJSON: GeoJsonTileSerializer(),
    MVT: MvtTileSerializer(),
}
