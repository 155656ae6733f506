"""Cache-Control and ETag headers for cacheable list endpoints.

Routes that set their own Cache-Control (tiles, village geometry) are left
untouched.
"""

from __future__ import annotations

import hashlib
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response as StarletteResponse

# Paths eligible for caching with their max-age in seconds.
_CACHE_RULES: list[tuple[str, int]] = [
    ("/api/kecamatans", 300),
    ("/api/desas/list", 300),
]


def _match_cache_rule(path: str) -> int | None:
    """Return max-age if path matches a cache rule, else None."""
    for prefix, max_age in _CACHE_RULES:
        if path.startswith(prefix):
            return max_age
    return None


def _compute_etag(body: bytes) -> str:
    """Compute a weak ETag from the response body."""
    digest = hashlib.md5(body, usedforsecurity=False).hexdigest()[:16]
    return f'W/"{digest}"'


class CacheHeaderMiddleware(BaseHTTPMiddleware):
    """Injects Cache-Control and ETag headers for cacheable GET endpoints."""

    async def dispatch(
        self, request: Request, call_next: Callable
    ) -> StarletteResponse:
        if request.method != "GET":
            return await call_next(request)

        max_age = _match_cache_rule(request.url.path)
        if max_age is None:
            return await call_next(request)

        response: StarletteResponse = await call_next(request)

        if response.status_code != 200 or "cache-control" in response.headers:
            return response

        body_chunks: list[bytes] = []
        async for chunk in response.body_iterator:
            body_chunks.append(chunk if isinstance(chunk, bytes) else chunk.encode("utf-8"))
        body = b"".join(body_chunks)

        etag = _compute_etag(body)

        if_none_match = request.headers.get("if-none-match")
        if if_none_match and if_none_match == etag:
            return Response(
                status_code=304,
                headers={
                    "ETag": etag,
                    "Cache-Control": f"public, max-age={max_age}",
                },
            )

        headers = {key: value for key, value in response.headers.items() if key != "content-length"}
        return Response(
            content=body,
            status_code=response.status_code,
            headers={
                **headers,
                "Cache-Control": f"public, max-age={max_age}",
                "ETag": etag,
            },
            media_type=response.media_type,
        )
