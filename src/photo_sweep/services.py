"""Protocols for the collaborators the pipeline consumes.

The pipeline only talks to these interfaces. Concrete implementations live in
:mod:`photo_sweep.library` (filesystem asset store) and :mod:`photo_sweep.ml`
(SigLIP / OWL-ViT services); tests substitute deterministic fakes.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Protocol

from photo_sweep.assets import Embedding, PhotoAsset

# A rendered raster image. Concrete stores return ``PIL.Image.Image``.
RasterImage = Any


class AssetStore(Protocol):
    """Access to the photo library. Failures raise :class:`AssetStoreError`."""

    async def request_authorization(self) -> bool:
        """Return ``True`` when read-write library access is granted."""

    async def list_all_image_assets(self) -> list[PhotoAsset]:
        """Return every image asset, ascending by capture time."""

    async def fetch_assets(self, asset_ids: Sequence[str]) -> list[PhotoAsset]:
        """Resolve identifiers to assets in input order, skipping unknown ids."""

    async def fetch_raw_content(self, asset_id: str) -> bytes:
        """Return the original file bytes for an asset."""

    async def fetch_rendered_image(self, asset_id: str, target_size: tuple[int, int] | None) -> RasterImage:
        """Return a rendered image scaled to ``target_size`` or full size when ``None``."""

    async def fetch_file_size(self, asset_id: str) -> int:
        """Return the on-disk size of an asset in bytes."""

    async def delete_assets(self, asset_ids: Sequence[str]) -> None:
        """Remove the given assets from the library."""


class EmbeddingService(Protocol):
    """Feature-vector extraction plus the metric used to compare vectors."""

    async def extract_feature_vector(self, image: RasterImage) -> Embedding:
        """Return the feature vector for a rendered image."""

    def distance(self, lhs: Embedding, rhs: Embedding) -> float:
        """Return a symmetric, non-negative distance between two vectors."""


class ClassificationService(Protocol):
    """Image classifiers used by the best-photo scorer."""

    async def classify_composition(self, image: RasterImage) -> dict[str, float]:
        """Return label -> confidence scores for composition labels."""

    async def detect_face_quality(self, image: RasterImage) -> list[float]:
        """Return one capture-quality score in [0, 1] per detected face."""


__all__ = ["RasterImage", "AssetStore", "EmbeddingService", "ClassificationService"]
