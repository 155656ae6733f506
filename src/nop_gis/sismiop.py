from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import httpx

from nop_gis.settings import Settings

# Thematic type -> upstream endpoint below the SISMIOP base URL.
TEMATIK_ENDPOINTS: dict[str, str] = {
    "jenis_tanah": "GetsPublicData/jenisTanah",
    "kelas_tanah": "GetsPublicData/kelasTanah",
    "jenis_bangunan": "GetsPublicData/jenisPenggunaanBangunan",
    "kelas_bangunan": "GetsPublicData/kelasBangunan",
    "nilai_individu": "GetsPublicData/nilaiIndividu",
    "nik": "GetsPublicData/nik",
    "zona_nilai_tanah": "GetsPublicData/zonaNilaiTanah",
    "ketetapan_per_buku": "GetsPublicData/ketetapanPerBuku",
    "status_pembayaran": "GetsPublicData/statusPembayaran",
}

TEMATIK_REQUIRES_YEAR = frozenset(
    {"kelas_tanah", "kelas_bangunan", "zona_nilai_tanah", "status_pembayaran", "ketetapan_per_buku"}
)


@dataclass(frozen=True)
class SismiopClientConfig:
    base_url: str
    timeout_seconds: int
    verify_ssl: bool


class SismiopClient:
    """Form-encoded POST client for the SISMIOP public-data API. No retries."""

    def __init__(self, config: SismiopClientConfig, transport: httpx.BaseTransport | None = None):
        self.config = config
        self.client = httpx.Client(
            timeout=config.timeout_seconds,
            verify=config.verify_ssl,
            follow_redirects=True,
            trust_env=False,
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "SismiopClient":
        config = SismiopClientConfig(
            base_url=settings.sismiop_api_url.rstrip("/"),
            timeout_seconds=settings.request_timeout_seconds,
            verify_ssl=settings.sismiop_verify_ssl,
        )
        return cls(config)

    def close(self) -> None:
        self.client.close()

    def post_form(self, endpoint: str, fields: dict[str, str]) -> dict[str, Any]:
        url = f"{self.config.base_url}/{endpoint}"
        # (None, value) parts make httpx send multipart fields without filenames.
        files = {name: (None, value) for name, value in fields.items()}
        try:
            response = self.client.post(url, files=files)
            response.raise_for_status()
        except (httpx.RequestError, httpx.HTTPStatusError) as exc:
            raise RuntimeError(f"SISMIOP request failed for URL: {url}: {exc}") from exc
        try:
            payload = response.json()
        except ValueError as exc:
            raise RuntimeError("Invalid JSON response") from exc
        if not isinstance(payload, dict):
            raise RuntimeError("Invalid JSON response")
        return payload
