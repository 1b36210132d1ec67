"""Best-photo recommendation within a set of near-duplicates."""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass

from photo_sweep.assets import MediaSubtype, PhotoAsset
from photo_sweep.config import ScoringConfig
from photo_sweep.services import AssetStore, ClassificationService, RasterImage
from utils.logging import get_logger

LOGGER = get_logger(__name__, extra={"component": "scoring"})

REASON_FAVORITE = "favorite"
REASON_HIGHEST_SCORE = "highest_score"


@dataclass(frozen=True)
class PhotoScore:
    """Sub-scores and weighted total for one asset; never persisted."""

    asset_id: str
    clarity: float
    face: float
    metadata: float
    total: float


@dataclass(frozen=True)
class BestPhotoRecommendation:
    asset_id: str
    reason: str
    score: PhotoScore | None = None


def combine_scores(clarity: float, face: float, metadata: float, config: ScoringConfig | None = None) -> float:
    """Weighted sum of the three sub-scores."""

    cfg = config or ScoringConfig()
    return cfg.clarity_weight * clarity + cfg.face_weight * face + cfg.metadata_weight * metadata


def metadata_score(asset: PhotoAsset, config: ScoringConfig | None = None) -> float:
    """Score resolution, location and subtype metadata, clamped to [0, 1]."""

    cfg = config or ScoringConfig()
    score = asset.pixel_count / cfg.resolution_normalizer
    if asset.location is not None:
        score += cfg.location_bonus
    if MediaSubtype.PANORAMA in asset.subtypes:
        score += cfg.panorama_bonus
    if MediaSubtype.HDR in asset.subtypes:
        score += cfg.hdr_bonus
    return min(max(score, 0.0), 1.0)


class BestPhotoScorer:
    """Pick the photo to keep from an arbitrary list of assets.

    A favorite always wins. Otherwise each asset is scored from composition
    confidence, face capture quality and metadata, and the highest total wins
    (first encountered on ties).
    """

    def __init__(
        self,
        store: AssetStore,
        classifier: ClassificationService,
        config: ScoringConfig | None = None,
    ) -> None:
        self._store = store
        self._classifier = classifier
        self._config = config or ScoringConfig()

    async def recommend(self, assets: Sequence[PhotoAsset]) -> BestPhotoRecommendation:
        if not assets:
            raise ValueError("cannot recommend a photo from an empty list")

        for asset in assets:
            if asset.is_favorite:
                return BestPhotoRecommendation(asset_id=asset.asset_id, reason=REASON_FAVORITE)

        best: PhotoScore | None = None
        for asset in assets:
            score = await self.score(asset)
            if best is None or score.total > best.total:
                best = score

        if best is None:
            return BestPhotoRecommendation(asset_id=assets[0].asset_id, reason=REASON_HIGHEST_SCORE)
        return BestPhotoRecommendation(asset_id=best.asset_id, reason=REASON_HIGHEST_SCORE, score=best)

    async def score(self, asset: PhotoAsset) -> PhotoScore:
        """Score a single asset; an unavailable image scores 0.0 overall."""

        try:
            image = await self._store.fetch_rendered_image(asset.asset_id, None)
        except Exception as exc:
            LOGGER.warning("score_image_fetch_error", extra={"asset_id": asset.asset_id, "error": str(exc)})
            image = None

        if image is None:
            return PhotoScore(asset_id=asset.asset_id, clarity=0.0, face=0.0, metadata=0.0, total=0.0)

        clarity, face = await asyncio.gather(self._clarity_score(image), self._face_score(image))
        meta = metadata_score(asset, self._config)
        total = combine_scores(clarity, face, meta, self._config)

        LOGGER.debug(
            "photo_scored",
            extra={"asset_id": asset.asset_id, "clarity": clarity, "face": face, "metadata": meta, "total": total},
        )
        return PhotoScore(asset_id=asset.asset_id, clarity=clarity, face=face, metadata=meta, total=total)

    async def _clarity_score(self, image: RasterImage) -> float:
        try:
            labels = await self._classifier.classify_composition(image)
        except Exception as exc:
            LOGGER.warning("composition_classify_error", extra={"error": str(exc)})
            return self._config.default_clarity

        confidence = labels.get(self._config.composition_label)
        if confidence is None:
            return self._config.default_clarity
        return float(confidence)

    async def _face_score(self, image: RasterImage) -> float:
        try:
            qualities = await self._classifier.detect_face_quality(image)
        except Exception as exc:
            LOGGER.warning("face_quality_error", extra={"error": str(exc)})
            return self._config.default_face

        if not qualities:
            return self._config.default_face
        return float(sum(qualities)) / len(qualities)


__all__ = [
    "REASON_FAVORITE",
    "REASON_HIGHEST_SCORE",
    "PhotoScore",
    "BestPhotoRecommendation",
    "combine_scores",
    "metadata_score",
    "BestPhotoScorer",
]
