"""Batched, time-bounded feature extraction for one deduplicated group."""

from __future__ import annotations

from collections.abc import Sequence

from photo_sweep.assets import Embedding, PhotoAsset
from photo_sweep.concurrency import run_in_batches, with_timeout
from photo_sweep.config import ExtractionConfig
from photo_sweep.services import AssetStore, EmbeddingService
from utils.logging import get_logger

LOGGER = get_logger(__name__, extra={"component": "extractor"})


def compute_render_size(pixel_width: int, pixel_height: int, target_min_side: int = 512) -> tuple[int, int]:
    """Return an aspect-preserving size whose shorter side is ``target_min_side``.

    Assets with unknown (zero) dimensions fall back to a square render.
    """

    side = int(target_min_side)
    if pixel_width <= 0 or pixel_height <= 0:
        return side, side
    if pixel_width < pixel_height:
        return side, max(side, round(pixel_height * side / pixel_width))
    return max(side, round(pixel_width * side / pixel_height)), side


class FeatureExtractor:
    """Turn assets into embeddings with bounded concurrency and per-call timeouts."""

    def __init__(
        self,
        store: AssetStore,
        service: EmbeddingService,
        config: ExtractionConfig | None = None,
    ) -> None:
        self._store = store
        self._service = service
        self._config = config or ExtractionConfig()

    async def extract(self, assets: Sequence[PhotoAsset]) -> dict[int, Embedding]:
        """Embed ``assets`` and return ``{index: embedding}`` for the successes.

        Keys are positions in ``assets``. Assets whose render or extraction
        fails or times out are left out of the mapping.
        """

        outcomes = await run_in_batches(assets, self._embed_one, self._config.batch_size)

        results: dict[int, Embedding] = {}
        for index, embedding in outcomes:
            if embedding is not None:
                results[index] = embedding
        return results

    async def _embed_one(self, index: int, asset: PhotoAsset) -> tuple[int, Embedding | None]:
        size = compute_render_size(asset.pixel_width, asset.pixel_height, self._config.target_min_side)
        try:
            image = await self._store.fetch_rendered_image(asset.asset_id, size)
        except Exception as exc:
            LOGGER.warning("render_fetch_error", extra={"asset_id": asset.asset_id, "error": str(exc)})
            return index, None

        if image is None:
            return index, None

        def _on_timeout() -> Embedding | None:
            LOGGER.error(
                "embedding_timeout",
                extra={"asset_id": asset.asset_id, "timeout_seconds": self._config.timeout_seconds},
            )
            return None

        try:
            embedding = await with_timeout(
                lambda: self._service.extract_feature_vector(image),
                self._config.timeout_seconds,
                _on_timeout,
            )
        except Exception as exc:
            LOGGER.warning("embedding_error", extra={"asset_id": asset.asset_id, "error": str(exc)})
            return index, None

        return index, embedding


__all__ = ["compute_render_size", "FeatureExtractor"]
