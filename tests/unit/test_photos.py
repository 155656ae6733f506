from __future__ import annotations

from pathlib import Path

import pytest

from nop_gis.photos import PhotoStore, UploadedPhoto

NOP = "357503000200080150"


def test_list_urls_returns_sorted_images_only(tmp_path: Path) -> None:
    directory = tmp_path / NOP
    directory.mkdir()
    (directory / "2_b.png").write_bytes(b"b")
    (directory / "1_a.JPG").write_bytes(b"a")
    (directory / "notes.txt").write_text("x")

    assert PhotoStore(tmp_path).list_urls(NOP) == [
        f"/uploads/nop/{NOP}/1_a.JPG",
        f"/uploads/nop/{NOP}/2_b.png",
    ]


def test_list_urls_without_directory(tmp_path: Path) -> None:
    assert PhotoStore(tmp_path).list_urls(NOP) == []


def test_save_prefixes_timestamp_and_skips_empty_files(tmp_path: Path) -> None:
    store = PhotoStore(tmp_path)

    saved = store.save(NOP, [UploadedPhoto("../../front.jpg", b"jpeg"), UploadedPhoto("empty.jpg", b"")])

    assert len(saved) == 1
    assert saved[0].endswith("_front.jpg")
    assert (tmp_path / NOP / saved[0]).read_bytes() == b"jpeg"


def test_delete_accepts_urls_and_ignores_missing(tmp_path: Path) -> None:
    store = PhotoStore(tmp_path)
    directory = tmp_path / NOP
    directory.mkdir()
    (directory / "1_a.jpg").write_bytes(b"a")

    store.delete(NOP, [f"/uploads/nop/{NOP}/1_a.jpg", "missing.jpg"])

    assert not (directory / "1_a.jpg").exists()


def test_remove_all(tmp_path: Path) -> None:
    store = PhotoStore(tmp_path)
    store.save(NOP, [UploadedPhoto("a.jpg", b"a")])

    store.remove_all(NOP)

    assert not (tmp_path / NOP).exists()


@pytest.mark.parametrize("nop", ["..", "35/75", ""])
def test_unsafe_nop_is_rejected(tmp_path: Path, nop: str) -> None:
    with pytest.raises(ValueError):
        PhotoStore(tmp_path).directory(nop)
