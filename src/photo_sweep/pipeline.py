"""Scan orchestration: grouping, dedup, extraction and clustering per group."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Sequence

from photo_sweep.assets import CandidateGroup, PhotoAsset, SimilarPhotoGroup
from photo_sweep.clustering import SimilarityClusterer
from photo_sweep.config import Settings, load_settings
from photo_sweep.dedup import deduplicate_by_content
from photo_sweep.extractor import FeatureExtractor
from photo_sweep.grouping import group_by_time_and_location
from photo_sweep.hasher import SUPPORTED_DIGEST_ALGOS
from photo_sweep.services import AssetStore, EmbeddingService
from utils.logging import get_logger


class SimilarPhotoPipeline:
    """Finds near-duplicate clusters in a time-ordered asset list.

    Candidate groups are processed one after another. Each group's failure is
    contained: it is logged, its output is dropped, and the scan moves on.
    """

    def __init__(
        self,
        store: AssetStore,
        embedding_service: EmbeddingService,
        settings: Settings | None = None,
    ) -> None:
        """Initialize the pipeline.

        Args:
            store: Asset store used for content, renders and file sizes.
            embedding_service: Feature extractor and distance metric.
            settings: Optional pre-loaded settings. When omitted,
                configuration is loaded from ``config/settings.yaml``.

        Raises:
            ValueError: ``dedup.digest_algo`` names an unsupported digest.
        """

        self._settings = settings or load_settings()
        if self._settings.dedup.digest_algo not in SUPPORTED_DIGEST_ALGOS:
            raise ValueError(f"Unsupported digest algorithm: {self._settings.dedup.digest_algo!r}")
        self._store = store
        self._extractor = FeatureExtractor(store, embedding_service, self._settings.extraction)
        self._clusterer = SimilarityClusterer(
            store,
            embedding_service.distance,
            self._settings.clustering.distance_threshold,
        )
        self._logger = get_logger(__name__, extra={"component": "pipeline"})

    def build_candidate_groups(self, assets: Sequence[PhotoAsset]) -> list[CandidateGroup]:
        grouping = self._settings.grouping
        return group_by_time_and_location(
            assets,
            time_interval=grouping.time_interval_seconds,
            distance_threshold=grouping.distance_threshold_meters,
        )

    async def run(self, assets: Sequence[PhotoAsset]) -> list[SimilarPhotoGroup]:
        """Return similar-photo groups for ``assets`` (ascending by capture time)."""

        grouping_start = time.perf_counter()
        candidate_groups = self.build_candidate_groups(assets)
        self._logger.info(
            "candidate_groups_built",
            extra={
                "assets": len(assets),
                "groups": len(candidate_groups),
                "elapsed_seconds": round(time.perf_counter() - grouping_start, 3),
            },
        )

        process_start = time.perf_counter()
        results: list[SimilarPhotoGroup] = []
        for index, group in enumerate(candidate_groups, start=1):
            results.extend(await self.process_group(index, group))

        self._logger.info(
            "similarity_processing_complete",
            extra={
                "groups": len(candidate_groups),
                "similar_groups": len(results),
                "elapsed_seconds": round(time.perf_counter() - process_start, 3),
            },
        )
        return results

    async def process_group(self, index: int, group: CandidateGroup) -> list[SimilarPhotoGroup]:
        """Process one candidate group; any failure yields an empty result."""

        group_start = time.perf_counter()
        try:
            hash_start = time.perf_counter()
            unique = await deduplicate_by_content(group, self._store, self._settings.dedup.digest_algo)
            if len(unique) <= 1:
                return []
            self._logger.info(
                "group_deduplicated",
                extra={
                    "group": index,
                    "before": len(group),
                    "after": len(unique),
                    "elapsed_seconds": round(time.perf_counter() - hash_start, 3),
                },
            )

            # Runs in its own task so cancelling the scan does not tear down a
            # half-finished extraction; the result is still awaited here.
            task = asyncio.ensure_future(self._find_similar(index, unique))
            try:
                return await asyncio.shield(task)
            except asyncio.CancelledError:
                task.add_done_callback(lambda done: self._log_detached_result(index, done))
                raise
        except Exception as exc:
            self._logger.error(
                "group_processing_error",
                extra={"group": index, "error": str(exc), "error_type": type(exc).__name__},
            )
            return []
        finally:
            self._logger.info(
                "group_processed",
                extra={"group": index, "elapsed_seconds": round(time.perf_counter() - group_start, 3)},
            )

    def _log_detached_result(self, index: int, task: asyncio.Future[list[SimilarPhotoGroup]]) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            self._logger.error(
                "detached_group_failed",
                extra={"group": index, "error": str(exc), "error_type": type(exc).__name__},
            )
            return
        self._logger.info("detached_group_discarded", extra={"group": index, "similar_groups": len(task.result())})

    async def _find_similar(self, index: int, assets: Sequence[PhotoAsset]) -> list[SimilarPhotoGroup]:
        feature_start = time.perf_counter()
        embeddings = await self._extractor.extract(assets)
        if len(embeddings) <= 1:
            return []
        self._logger.info(
            "group_features_extracted",
            extra={
                "group": index,
                "embedded": len(embeddings),
                "elapsed_seconds": round(time.perf_counter() - feature_start, 3),
            },
        )
        return await self._clusterer.cluster(assets, embeddings)


__all__ = ["SimilarPhotoPipeline"]
