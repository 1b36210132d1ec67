"""Tests for the filesystem-backed asset store."""

from __future__ import annotations

import asyncio
import os
from datetime import datetime
from pathlib import Path

import pytest
from PIL import ExifTags, Image

from photo_sweep.assets import MediaSubtype
from photo_sweep.config import LibraryConfig
from photo_sweep.errors import AssetStoreError
from photo_sweep.library import FilesystemAssetStore, FileInfo, _parse_gps, describe_file, scan_roots


def _write_jpeg(path: Path, size: tuple[int, int] = (40, 30), **exif_values: object) -> Path:
    image = Image.new("RGB", size, color=(200, 120, 40))
    exif = Image.Exif()
    for name, value in exif_values.items():
        exif[getattr(ExifTags.Base, name)] = value
    path.parent.mkdir(parents=True, exist_ok=True)
    image.save(path, format="JPEG", exif=exif)
    return path


def _info(path: Path) -> FileInfo:
    stat = path.stat()
    return FileInfo(path=path.resolve(), size_bytes=stat.st_size, mtime=stat.st_mtime)


def test_scan_roots_filters_extensions_recursively(tmp_path: Path) -> None:
    _write_jpeg(tmp_path / "b.jpg")
    _write_jpeg(tmp_path / "nested" / "a.JPG")
    (tmp_path / "notes.txt").write_text("skip", encoding="utf-8")

    found = [info.path.name for info in scan_roots([tmp_path], [".jpg"])]

    assert sorted(found) == ["a.JPG", "b.jpg"]


def test_describe_file_reads_capture_time_and_orientation(tmp_path: Path) -> None:
    path = _write_jpeg(tmp_path / "rotated.jpg", size=(40, 20), DateTime="2023:07:14 09:30:00", Orientation=6)

    asset = describe_file(_info(path))

    assert asset.created_at == datetime(2023, 7, 14, 9, 30, 0)
    assert (asset.pixel_width, asset.pixel_height) == (20, 40)
    assert asset.asset_id == str(path.resolve())
    assert asset.location is None


def test_describe_file_marks_panoramas_and_favorites(tmp_path: Path) -> None:
    path = _write_jpeg(tmp_path / "wide.jpg", size=(100, 40))
    favorites = frozenset({str(path.resolve())})

    asset = describe_file(_info(path), favorites=favorites)

    assert MediaSubtype.PANORAMA in asset.subtypes
    assert asset.is_favorite
    assert asset.created_at == datetime.fromtimestamp(path.stat().st_mtime)


def test_describe_file_tolerates_undecodable_files(tmp_path: Path) -> None:
    path = tmp_path / "broken.jpg"
    path.write_bytes(b"not an image")

    asset = describe_file(_info(path))

    assert asset.pixel_count == 0
    assert asset.subtypes == frozenset()


def test_parse_gps_applies_hemisphere_refs() -> None:
    gps = {
        ExifTags.GPS.GPSLatitude: (33.0, 51.0, 36.0),
        ExifTags.GPS.GPSLatitudeRef: "S",
        ExifTags.GPS.GPSLongitude: (151.0, 12.0, 0.0),
        ExifTags.GPS.GPSLongitudeRef: "E",
    }

    location = _parse_gps(gps)

    assert location is not None
    assert location.latitude == pytest.approx(-33.86)
    assert location.longitude == pytest.approx(151.2)
    assert _parse_gps({}) is None


def test_store_lists_assets_in_capture_order(tmp_path: Path) -> None:
    _write_jpeg(tmp_path / "late.jpg", DateTime="2024:01:01 10:00:00")
    _write_jpeg(tmp_path / "early.jpg", DateTime="2024:01:01 09:00:00")
    store = FilesystemAssetStore([tmp_path])

    assets = asyncio.run(store.list_all_image_assets())

    assert [Path(asset.asset_id).name for asset in assets] == ["early.jpg", "late.jpg"]


def test_store_authorization_requires_accessible_roots(tmp_path: Path) -> None:
    assert asyncio.run(FilesystemAssetStore([tmp_path]).request_authorization())
    assert not asyncio.run(FilesystemAssetStore([]).request_authorization())
    assert not asyncio.run(FilesystemAssetStore([tmp_path / "missing"]).request_authorization())


def test_store_fetches_content_renders_and_sizes(tmp_path: Path) -> None:
    path = _write_jpeg(tmp_path / "photo.jpg", size=(80, 40))
    store = FilesystemAssetStore([tmp_path])
    asset_id = str(path.resolve())

    content = asyncio.run(store.fetch_raw_content(asset_id))
    image = asyncio.run(store.fetch_rendered_image(asset_id, (64, 32)))
    full = asyncio.run(store.fetch_rendered_image(asset_id, None))

    assert content == path.read_bytes()
    assert image.size == (64, 32)
    assert image.mode == "RGB"
    assert full.size == (80, 40)
    assert asyncio.run(store.fetch_file_size(asset_id)) == len(content)
    assert asyncio.run(store.fetch_file_size(str(tmp_path / "gone.jpg"))) == 0


def test_store_rejects_paths_outside_roots(tmp_path: Path) -> None:
    inside = tmp_path / "library"
    outside = _write_jpeg(tmp_path / "elsewhere" / "photo.jpg")
    inside.mkdir()
    store = FilesystemAssetStore([inside])

    with pytest.raises(AssetStoreError):
        asyncio.run(store.fetch_raw_content(str(outside)))
    assert asyncio.run(store.fetch_assets([str(outside)])) == []


def test_delete_moves_to_trash_when_configured(tmp_path: Path) -> None:
    library = tmp_path / "library"
    trash = tmp_path / "trash"
    first = _write_jpeg(library / "a" / "photo.jpg")
    second = _write_jpeg(library / "b" / "photo.jpg")
    store = FilesystemAssetStore([library], LibraryConfig(trash_dir=str(trash)))

    asyncio.run(store.delete_assets([str(first), str(second)]))

    assert not first.exists()
    assert not second.exists()
    assert sorted(os.listdir(trash)) == ["photo.jpg", "photo_1.jpg"]


def test_delete_unlinks_without_trash_and_fails_on_unknown(tmp_path: Path) -> None:
    path = _write_jpeg(tmp_path / "photo.jpg")
    store = FilesystemAssetStore([tmp_path])

    asyncio.run(store.delete_assets([str(path)]))

    assert not path.exists()
    with pytest.raises(AssetStoreError):
        asyncio.run(store.delete_assets([str(path)]))


def test_delete_tolerates_repeated_identifiers(tmp_path: Path) -> None:
    path = _write_jpeg(tmp_path / "photo.jpg")
    other = _write_jpeg(tmp_path / "other.jpg")
    store = FilesystemAssetStore([tmp_path])

    asyncio.run(store.delete_assets([str(path), str(path), f"{tmp_path}/./photo.jpg", str(other)]))

    assert not path.exists()
    assert not other.exists()
