from __future__ import annotations

import re
import shutil
import time
from dataclasses import dataclass
from pathlib import Path, PurePath

IMAGE_SUFFIXES = frozenset({".jpg", ".jpeg", ".png", ".gif", ".webp"})
URL_PREFIX = "/uploads/nop"

_SAFE_SEGMENT = re.compile(r"^[0-9A-Za-z._-]+$")


@dataclass(frozen=True)
class UploadedPhoto:
    filename: str
    content: bytes


class PhotoStore:
    """One directory of uploaded photos per NOP under ``root``."""

    def __init__(self, root: Path):
        self.root = Path(root)

    def directory(self, nop: str) -> Path:
        if not _SAFE_SEGMENT.match(nop) or nop in {".", ".."}:
            raise ValueError(f"Invalid NOP for photo storage: {nop!r}")
        return self.root / nop

    def list_urls(self, nop: str) -> list[str]:
        directory = self.directory(nop)
        if not directory.is_dir():
            return []
        return [
            f"{URL_PREFIX}/{nop}/{path.name}"
            for path in sorted(directory.iterdir())
            if path.is_file() and path.suffix.lower() in IMAGE_SUFFIXES
        ]

    def save(self, nop: str, uploads: list[UploadedPhoto]) -> list[str]:
        uploads = [upload for upload in uploads if upload.content]
        if not uploads:
            return []
        directory = self.directory(nop)
        directory.mkdir(parents=True, exist_ok=True)
        saved: list[str] = []
        for upload in uploads:
            name = f"{int(time.time() * 1000)}_{PurePath(upload.filename).name}"
            (directory / name).write_bytes(upload.content)
            saved.append(name)
        return saved

    def delete(self, nop: str, images: list[str]) -> None:
        """Remove photos by name or URL; names that do not exist are ignored."""
        directory = self.directory(nop)
        for image in images:
            name = PurePath(str(image)).name
            if not name:
                continue
            (directory / name).unlink(missing_ok=True)

    def remove_all(self, nop: str) -> None:
        shutil.rmtree(self.directory(nop), ignore_errors=True)
