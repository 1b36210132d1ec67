"""Public entry points: scan, recommend_best and delete.

Every operation either returns its result or raises a
:class:`~photo_sweep.errors.PhotoCleanerError` subclass carrying a stable
``code`` and a human-readable ``message``.
"""

from __future__ import annotations

import time
from collections.abc import Sequence
from typing import Any

from photo_sweep.assets import SimilarPhotoGroup
from photo_sweep.config import Settings, load_settings
from photo_sweep.errors import (
    AssetStoreError,
    AuthorizationDeniedError,
    DeleteFailedError,
    InvalidArgumentsError,
    RecommendFailedError,
    ScanFailedError,
)
from photo_sweep.pipeline import SimilarPhotoPipeline
from photo_sweep.scoring import BestPhotoRecommendation, BestPhotoScorer
from photo_sweep.services import AssetStore, ClassificationService, EmbeddingService
from utils.logging import get_logger

LOGGER = get_logger(__name__, extra={"component": "cleaner"})


def _validate_identifiers(asset_ids: Any, operation: str) -> list[str]:
    if isinstance(asset_ids, (str, bytes)) or not isinstance(asset_ids, Sequence):
        raise InvalidArgumentsError(f"Invalid arguments for {operation}")
    identifiers = list(asset_ids)
    if not identifiers or not all(isinstance(item, str) and item for item in identifiers):
        raise InvalidArgumentsError(f"Invalid arguments for {operation}")
    return identifiers


class PhotoCleaner:
    """Facade over the scan pipeline, the scorer and asset deletion."""

    def __init__(
        self,
        store: AssetStore,
        embedding_service: EmbeddingService | None = None,
        classifier: ClassificationService | None = None,
        settings: Settings | None = None,
    ) -> None:
        """Wire the cleaner to its collaborators.

        Args:
            store: Photo library access.
            embedding_service: Required by :meth:`scan`.
            classifier: Required by the recommendation methods.
            settings: Optional pre-loaded settings; defaults to :func:`load_settings`.
        """

        self._settings = settings or load_settings()
        self._store = store
        self._pipeline = (
            SimilarPhotoPipeline(store, embedding_service, self._settings) if embedding_service is not None else None
        )
        self._scorer = BestPhotoScorer(store, classifier, self._settings.scoring) if classifier is not None else None

    async def scan(self) -> list[SimilarPhotoGroup]:
        """Scan the whole library and return near-duplicate groups.

        Raises:
            AuthorizationDeniedError: Library access was refused.
            ScanFailedError: The library could not be listed.
        """

        start = time.perf_counter()
        LOGGER.info("scan_start", extra={})

        if not await self._store.request_authorization():
            raise AuthorizationDeniedError()
        if self._pipeline is None:
            raise ScanFailedError("No embedding service is configured.")

        fetch_start = time.perf_counter()
        try:
            assets = await self._store.list_all_image_assets()
        except Exception as exc:
            raise ScanFailedError(f"Failed to list photo library: {exc}") from exc
        LOGGER.info(
            "library_fetched",
            extra={"assets": len(assets), "elapsed_seconds": round(time.perf_counter() - fetch_start, 3)},
        )

        groups = await self._pipeline.run(assets)
        LOGGER.info(
            "scan_complete",
            extra={"similar_groups": len(groups), "elapsed_seconds": round(time.perf_counter() - start, 3)},
        )
        return groups

    async def recommend(self, asset_ids: Sequence[str]) -> BestPhotoRecommendation:
        """Return the full recommendation (id, reason, score) for ``asset_ids``."""

        identifiers = _validate_identifiers(asset_ids, "recommendBestPhoto")
        try:
            assets = await self._store.fetch_assets(identifiers)
        except Exception as exc:
            raise RecommendFailedError(str(exc)) from exc
        if not assets:
            raise RecommendFailedError("None of the given photos could be found.")
        if self._scorer is None:
            raise RecommendFailedError("No classification service is configured.")

        try:
            return await self._scorer.recommend(assets)
        except Exception as exc:
            raise RecommendFailedError(str(exc)) from exc

    async def recommend_best(self, asset_ids: Sequence[str]) -> str:
        """Return the identifier of the photo to keep among ``asset_ids``."""

        recommendation = await self.recommend(asset_ids)
        return recommendation.asset_id

    async def recommend_for_group(self, group: SimilarPhotoGroup) -> SimilarPhotoGroup:
        """Return ``group`` with its best photo and reason filled in."""

        recommendation = await self.recommend(group.photo_ids)
        return group.with_recommendation(recommendation.asset_id, recommendation.reason)

    async def delete(self, asset_ids: Sequence[str]) -> None:
        """Delete the given assets from the library."""

        identifiers = _validate_identifiers(asset_ids, "deletePhotos")
        try:
            await self._store.delete_assets(identifiers)
        except AssetStoreError as exc:
            raise DeleteFailedError(exc.message or "Failed to delete assets") from exc
        except Exception as exc:
            raise DeleteFailedError(str(exc) or "Failed to delete assets") from exc
        LOGGER.info("assets_deleted", extra={"count": len(identifiers)})


__all__ = ["PhotoCleaner"]
