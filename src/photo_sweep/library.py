"""Filesystem-backed photo library for local album directories."""

from __future__ import annotations

import asyncio
import os
import shutil
from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from PIL import ExifTags, Image, ImageOps, UnidentifiedImageError
from PIL.Image import Resampling

from photo_sweep.assets import GeoLocation, MediaSubtype, PhotoAsset
from photo_sweep.config import LibraryConfig, Settings
from photo_sweep.errors import AssetStoreError
from utils.logging import get_logger

LOGGER = get_logger(__name__, extra={"component": "library"})

_EXIF_DATETIME_FORMAT = "%Y:%m:%d %H:%M:%S"

# EXIF CompositeImage values 2 and 3 mark composite captures such as HDR.
_COMPOSITE_TAG = 0xA460
_COMPOSITE_VALUES = frozenset({2, 3})


@dataclass(frozen=True)
class FileInfo:
    """Lightweight file metadata for scanning results."""

    path: Path
    size_bytes: int
    mtime: float


@dataclass(frozen=True)
class ExifSummary:
    captured_at: datetime | None = None
    location: GeoLocation | None = None
    is_composite: bool = False
    swaps_axes: bool = False


def scan_roots(roots: Sequence[Path], extensions: Iterable[str]) -> Iterator[FileInfo]:
    """Recursively scan album roots and yield image file descriptors."""

    allowed = {ext.lower() for ext in extensions}

    for root in roots:
        if not root.exists() or not root.is_dir():
            LOGGER.warning("scan_root_missing", extra={"root": str(root)})
            continue

        for path in sorted(root.rglob("*")):
            if not path.is_file() or path.suffix.lower() not in allowed:
                continue
            stat = path.stat()
            yield FileInfo(path=path.resolve(), size_bytes=stat.st_size, mtime=stat.st_mtime)


def _to_degrees(value: object) -> float | None:
    if not isinstance(value, Sequence) or len(value) < 3:
        return None
    try:
        degrees, minutes, seconds = (float(part) for part in value[:3])
    except (TypeError, ValueError, ZeroDivisionError):
        return None
    return degrees + minutes / 60.0 + seconds / 3600.0


def _parse_gps(gps: dict[int, object]) -> GeoLocation | None:
    latitude = _to_degrees(gps.get(ExifTags.GPS.GPSLatitude))
    longitude = _to_degrees(gps.get(ExifTags.GPS.GPSLongitude))
    if latitude is None or longitude is None:
        return None

    lat_ref = gps.get(ExifTags.GPS.GPSLatitudeRef)
    lon_ref = gps.get(ExifTags.GPS.GPSLongitudeRef)
    if isinstance(lat_ref, str) and lat_ref.upper() == "S":
        latitude = -latitude
    if isinstance(lon_ref, str) and lon_ref.upper() == "W":
        longitude = -longitude
    return GeoLocation(latitude=latitude, longitude=longitude)


def read_exif_summary(image: Image.Image) -> ExifSummary:
    """Extract capture time, GPS location and the composite flag from EXIF."""

    try:
        exif = image.getexif()
    except Exception:
        return ExifSummary()
    if not exif:
        return ExifSummary()

    exif_ifd = exif.get_ifd(ExifTags.IFD.Exif)
    raw_dt = exif_ifd.get(ExifTags.Base.DateTimeOriginal) or exif.get(ExifTags.Base.DateTime)
    captured_at: datetime | None = None
    if isinstance(raw_dt, str):
        try:
            captured_at = datetime.strptime(raw_dt.strip("\x00 "), _EXIF_DATETIME_FORMAT)
        except ValueError:
            captured_at = None

    location = _parse_gps(exif.get_ifd(ExifTags.IFD.GPSInfo))
    composite = exif_ifd.get(_COMPOSITE_TAG) in _COMPOSITE_VALUES
    # Orientations 5-8 rotate by 90 degrees.
    swaps_axes = exif.get(ExifTags.Base.Orientation) in (5, 6, 7, 8)
    return ExifSummary(captured_at=captured_at, location=location, is_composite=composite, swaps_axes=swaps_axes)


def describe_file(
    info: FileInfo,
    *,
    favorites: frozenset[str] = frozenset(),
    panorama_aspect_ratio: float = 2.0,
) -> PhotoAsset:
    """Build a :class:`PhotoAsset` for a scanned file.

    Files Pillow cannot decode keep their mtime as capture time and zero
    dimensions; later stages treat them as unrenderable.
    """

    width = height = 0
    summary = ExifSummary()
    try:
        with Image.open(info.path) as image:
            summary = read_exif_summary(image)
            width, height = image.size
        if summary.swaps_axes:
            width, height = height, width
    except (OSError, UnidentifiedImageError) as exc:
        LOGGER.warning("image_metadata_error", extra={"path": str(info.path), "error": str(exc)})

    subtypes: set[MediaSubtype] = set()
    if width > 0 and height > 0 and max(width, height) / min(width, height) >= panorama_aspect_ratio:
        subtypes.add(MediaSubtype.PANORAMA)
    if summary.is_composite:
        subtypes.add(MediaSubtype.HDR)

    asset_id = str(info.path)
    return PhotoAsset(
        asset_id=asset_id,
        created_at=summary.captured_at or datetime.fromtimestamp(info.mtime),
        pixel_width=width,
        pixel_height=height,
        location=summary.location,
        is_favorite=asset_id in favorites,
        subtypes=frozenset(subtypes),
        size_bytes=info.size_bytes,
    )


def render_image(path: Path, target_size: tuple[int, int] | None) -> Image.Image:
    """Decode ``path`` upright in RGB, resized to ``target_size`` when given."""

    with Image.open(path) as source:
        image = ImageOps.exif_transpose(source).convert("RGB")
    if target_size is not None:
        width, height = (max(1, int(side)) for side in target_size)
        image = image.resize((width, height), resample=Resampling.LANCZOS)
    return image


class FilesystemAssetStore:
    """Asset store over one or more album root directories.

    Asset identifiers are resolved absolute file paths. Every blocking call
    runs in a worker thread.
    """

    def __init__(self, roots: Sequence[Path | str], config: LibraryConfig | None = None) -> None:
        self._config = config or LibraryConfig()
        self._roots = [Path(root).expanduser().resolve() for root in roots]
        self._favorites = frozenset(str(Path(item).expanduser().resolve()) for item in self._config.favorites)
        self._known: dict[str, PhotoAsset] = {}

    @classmethod
    def from_settings(cls, settings: Settings, roots: Sequence[Path | str] | None = None) -> FilesystemAssetStore:
        return cls(roots or settings.library.roots, settings.library)

    @property
    def roots(self) -> list[Path]:
        return list(self._roots)

    async def request_authorization(self) -> bool:
        return await asyncio.to_thread(self._has_access)

    def _has_access(self) -> bool:
        if not self._roots:
            return False
        for root in self._roots:
            if not root.is_dir() or not os.access(root, os.R_OK | os.W_OK | os.X_OK):
                LOGGER.warning("library_access_denied", extra={"root": str(root)})
                return False
        return True

    async def list_all_image_assets(self) -> list[PhotoAsset]:
        return await asyncio.to_thread(self._list_assets)

    def _list_assets(self) -> list[PhotoAsset]:
        assets = [self._describe(info) for info in scan_roots(self._roots, self._config.extensions)]
        assets.sort(key=lambda asset: (asset.created_at, asset.asset_id))
        return assets

    def _describe(self, info: FileInfo) -> PhotoAsset:
        asset = describe_file(
            info,
            favorites=self._favorites,
            panorama_aspect_ratio=self._config.panorama_aspect_ratio,
        )
        self._known[asset.asset_id] = asset
        return asset

    def _resolve_path(self, asset_id: str) -> Path:
        path = Path(asset_id).expanduser().resolve()
        if not any(path.is_relative_to(root) for root in self._roots):
            raise AssetStoreError(asset_id, f"Asset is outside the library roots: {asset_id}")
        if not path.is_file():
            raise AssetStoreError(asset_id, f"Asset not found: {asset_id}")
        return path

    async def fetch_assets(self, asset_ids: Sequence[str]) -> list[PhotoAsset]:
        return await asyncio.to_thread(self._fetch_assets, list(asset_ids))

    def _fetch_assets(self, asset_ids: list[str]) -> list[PhotoAsset]:
        assets: list[PhotoAsset] = []
        for asset_id in asset_ids:
            try:
                path = self._resolve_path(asset_id)
            except AssetStoreError:
                LOGGER.warning("asset_lookup_miss", extra={"asset_id": asset_id})
                continue
            known = self._known.get(str(path))
            if known is None:
                stat = path.stat()
                known = self._describe(FileInfo(path=path, size_bytes=stat.st_size, mtime=stat.st_mtime))
            assets.append(known)
        return assets

    async def fetch_raw_content(self, asset_id: str) -> bytes:
        return await asyncio.to_thread(self._read_bytes, asset_id)

    def _read_bytes(self, asset_id: str) -> bytes:
        path = self._resolve_path(asset_id)
        try:
            return path.read_bytes()
        except OSError as exc:
            raise AssetStoreError(asset_id, f"Failed to read {asset_id}: {exc}") from exc

    async def fetch_rendered_image(self, asset_id: str, target_size: tuple[int, int] | None) -> Image.Image:
        return await asyncio.to_thread(self._render, asset_id, target_size)

    def _render(self, asset_id: str, target_size: tuple[int, int] | None) -> Image.Image:
        path = self._resolve_path(asset_id)
        try:
            return render_image(path, target_size)
        except (OSError, UnidentifiedImageError) as exc:
            raise AssetStoreError(asset_id, f"Failed to render {asset_id}: {exc}") from exc

    async def fetch_file_size(self, asset_id: str) -> int:
        return await asyncio.to_thread(self._file_size, asset_id)

    def _file_size(self, asset_id: str) -> int:
        try:
            return self._resolve_path(asset_id).stat().st_size
        except (AssetStoreError, OSError) as exc:
            LOGGER.warning("file_size_error", extra={"asset_id": asset_id, "error": str(exc)})
            return 0

    async def delete_assets(self, asset_ids: Sequence[str]) -> None:
        await asyncio.to_thread(self._delete, list(asset_ids))

    def _delete(self, asset_ids: list[str]) -> None:
        # Keyed by resolved path so each file is removed once.
        targets: dict[Path, str] = {}
        for asset_id in asset_ids:
            targets.setdefault(self._resolve_path(asset_id), asset_id)
        trash_dir = Path(self._config.trash_dir).expanduser() if self._config.trash_dir else None
        if trash_dir is not None:
            trash_dir.mkdir(parents=True, exist_ok=True)

        for path, asset_id in targets.items():
            try:
                if trash_dir is None:
                    path.unlink()
                else:
                    shutil.move(str(path), str(_unique_destination(trash_dir, path.name)))
            except OSError as exc:
                raise AssetStoreError(asset_id, f"Failed to delete {asset_id}: {exc}") from exc
            self._known.pop(str(path), None)
            LOGGER.info("asset_removed", extra={"asset_id": asset_id, "trashed": trash_dir is not None})


def _unique_destination(directory: Path, name: str) -> Path:
    candidate = directory / name
    stem, suffix = Path(name).stem, Path(name).suffix
    counter = 1
    while candidate.exists():
        candidate = directory / f"{stem}_{counter}{suffix}"
        counter += 1
    return candidate


__all__ = [
    "FileInfo",
    "ExifSummary",
    "scan_roots",
    "read_exif_summary",
    "describe_file",
    "render_image",
    "FilesystemAssetStore",
]
