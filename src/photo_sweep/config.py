"""Configuration loader and typed settings for Photo Sweep."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from photo_sweep.hasher import SUPPORTED_DIGEST_ALGOS
from photo_sweep.ml.model_presets import (
    OWLVIT_BASE_PATCH32,
    OWLVIT_PRESETS,
    SIGLIP2_BASE_PATCH16_224,
    SIGLIP_PRESETS,
)
from utils.logging import get_logger

LOGGER = get_logger(__name__, extra={"component": "config"})


@dataclass
class GroupingConfig:
    """Thresholds for the temporal/spatial candidate grouping pass."""

    time_interval_seconds: float = 180.0
    distance_threshold_meters: float = 50.0


@dataclass
class DedupConfig:
    """Exact-duplicate elimination settings."""

    digest_algo: str = "sha256"


@dataclass
class ExtractionConfig:
    """Batching and timeout policy for feature extraction."""

    batch_size: int = 4
    timeout_seconds: float = 10.0
    target_min_side: int = 512


@dataclass
class ClusteringConfig:
    """Similarity graph threshold on the embedding distance metric."""

    distance_threshold: float = 0.3


@dataclass
class ScoringConfig:
    """Weights and constants for best-photo scoring."""

    clarity_weight: float = 0.5
    face_weight: float = 0.3
    metadata_weight: float = 0.2
    composition_label: str = "well composed"
    default_clarity: float = 0.5
    default_face: float = 0.5
    resolution_normalizer: float = 10_000_000.0
    location_bonus: float = 0.2
    panorama_bonus: float = 0.1
    hdr_bonus: float = 0.1


@dataclass
class EmbeddingModelConfig:
    """Configuration for the embedding model (SigLIP)."""

    model_name: str = SIGLIP2_BASE_PATCH16_224
    preset: str | None = None
    device: str = "auto"
    distance_metric: str = "euclidean"

    def resolved_model_name(self) -> str:
        """Return the concrete model name to load for embeddings.

        Resolution order:
        1. If ``preset`` is set, resolve via :data:`SIGLIP_PRESETS`.
        2. Otherwise, use ``model_name``.
        3. Fallback to the default SigLIP2 base checkpoint.
        """
        if self.preset:
            preset_name = SIGLIP_PRESETS.get(self.preset)
            if preset_name is None:
                raise ValueError(f"Unsupported SigLIP preset: {self.preset!r}")
            return preset_name

        if self.model_name:
            return self.model_name

        return SIGLIP2_BASE_PATCH16_224


@dataclass
class FaceModelConfig:
    """Configuration for the open-vocabulary face detector (OWL-ViT)."""

    model_name: str = OWLVIT_BASE_PATCH32
    preset: str | None = None
    device: str = "auto"
    prompts: list[str] = field(default_factory=lambda: ["a photo of a human face"])
    score_threshold: float = 0.2
    sharpness_normalizer: float = 500.0

    def resolved_model_name(self) -> str:
        """Return the concrete OWL-ViT checkpoint name."""

        if self.preset:
            preset_name = OWLVIT_PRESETS.get(self.preset)
            if preset_name is None:
                raise ValueError(f"Unsupported OWL-ViT preset: {self.preset!r}")
            return preset_name
        return self.model_name or OWLVIT_BASE_PATCH32


@dataclass
class ModelsConfig:
    """Model configuration grouped by role."""

    embedding: EmbeddingModelConfig = field(default_factory=EmbeddingModelConfig)
    face: FaceModelConfig = field(default_factory=FaceModelConfig)
    composition_labels: list[str] = field(
        default_factory=lambda: ["well composed", "poorly composed", "blurry photo"]
    )


@dataclass
class LibraryConfig:
    """Filesystem photo library settings."""

    roots: list[str] = field(default_factory=list)
    extensions: list[str] = field(
        default_factory=lambda: [".jpg", ".jpeg", ".png", ".heic", ".webp", ".gif", ".tif", ".tiff"]
    )
    favorites: list[str] = field(default_factory=list)
    trash_dir: str | None = None
    panorama_aspect_ratio: float = 2.0


@dataclass
class Settings:
    """Top-level application settings."""

    grouping: GroupingConfig = field(default_factory=GroupingConfig)
    dedup: DedupConfig = field(default_factory=DedupConfig)
    extraction: ExtractionConfig = field(default_factory=ExtractionConfig)
    clustering: ClusteringConfig = field(default_factory=ClusteringConfig)
    scoring: ScoringConfig = field(default_factory=ScoringConfig)
    models: ModelsConfig = field(default_factory=ModelsConfig)
    library: LibraryConfig = field(default_factory=LibraryConfig)


def _project_root() -> Path:
    """Best-effort detection of the repository root for config discovery."""

    module_path = Path(__file__).resolve()
    try:
        return module_path.parents[2]
    except IndexError:  # pragma: no cover
        return module_path.parent


def _default_settings_paths() -> list[Path]:
    """Return candidate settings paths ordered by preference."""

    cwd_candidate = (Path.cwd() / "config" / "settings.yaml").resolve()
    repo_candidate = (_project_root() / "config" / "settings.yaml").resolve()
    if cwd_candidate == repo_candidate:
        return [cwd_candidate]
    return [cwd_candidate, repo_candidate]


def _resolve_settings_path(settings_path: Path | str | None) -> Path:
    """Determine which settings file to load, honoring overrides."""

    if settings_path:
        return Path(settings_path).expanduser().resolve()

    env_override = os.getenv("PHOTO_SWEEP_SETTINGS")
    if env_override:
        return Path(env_override).expanduser().resolve()

    candidates = _default_settings_paths()
    for candidate in candidates:
        if candidate.exists():
            return candidate
    return candidates[0]


def _as_dict(value: Any) -> dict[str, Any]:
    if isinstance(value, dict):
        return value
    return {}


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _str_list(value: Any) -> list[str] | None:
    if not isinstance(value, list):
        return None
    return [str(item) for item in value if str(item)]


def load_settings(settings_path: Path | str | None = None) -> Settings:
    """Load application settings from a YAML file, falling back to defaults.

    If the file is missing, is not valid YAML, or its top level is not a
    mapping, a default :class:`Settings` instance is returned. Individual
    values with the wrong type or an unsupported value are ignored and keep
    their defaults.
    """

    path = _resolve_settings_path(settings_path)
    settings = Settings()

    if not path.exists() or not path.is_file():
        return settings

    try:
        with path.open("r", encoding="utf-8") as fp:
            raw = yaml.safe_load(fp) or {}
    except yaml.YAMLError as exc:
        LOGGER.warning("settings_parse_error", extra={"path": str(path), "error": str(exc)})
        return settings

    if not isinstance(raw, dict):
        return settings

    grouping_raw = _as_dict(raw.get("grouping"))
    grouping_cfg = settings.grouping
    if _is_number(grouping_raw.get("time_interval_seconds")):
        grouping_cfg.time_interval_seconds = float(grouping_raw["time_interval_seconds"])
    if _is_number(grouping_raw.get("distance_threshold_meters")):
        grouping_cfg.distance_threshold_meters = float(grouping_raw["distance_threshold_meters"])

    dedup_raw = _as_dict(raw.get("dedup"))
    digest_algo = dedup_raw.get("digest_algo")
    if isinstance(digest_algo, str) and digest_algo in SUPPORTED_DIGEST_ALGOS:
        settings.dedup.digest_algo = digest_algo

    extraction_raw = _as_dict(raw.get("extraction"))
    extraction_cfg = settings.extraction
    if isinstance(extraction_raw.get("batch_size"), int) and extraction_raw["batch_size"] > 0:
        extraction_cfg.batch_size = extraction_raw["batch_size"]
    if _is_number(extraction_raw.get("timeout_seconds")):
        extraction_cfg.timeout_seconds = float(extraction_raw["timeout_seconds"])
    if isinstance(extraction_raw.get("target_min_side"), int) and extraction_raw["target_min_side"] > 0:
        extraction_cfg.target_min_side = extraction_raw["target_min_side"]

    clustering_raw = _as_dict(raw.get("clustering"))
    if _is_number(clustering_raw.get("distance_threshold")):
        settings.clustering.distance_threshold = float(clustering_raw["distance_threshold"])

    scoring_raw = _as_dict(raw.get("scoring"))
    scoring_cfg = settings.scoring
    for key in (
        "clarity_weight",
        "face_weight",
        "metadata_weight",
        "default_clarity",
        "default_face",
        "resolution_normalizer",
        "location_bonus",
        "panorama_bonus",
        "hdr_bonus",
    ):
        if _is_number(scoring_raw.get(key)):
            setattr(scoring_cfg, key, float(scoring_raw[key]))
    if isinstance(scoring_raw.get("composition_label"), str):
        scoring_cfg.composition_label = scoring_raw["composition_label"]

    models_raw = _as_dict(raw.get("models"))
    embedding_raw = _as_dict(models_raw.get("embedding"))
    face_raw = _as_dict(models_raw.get("face"))

    embedding_cfg = settings.models.embedding
    if isinstance(embedding_raw.get("model_name"), str):
        embedding_cfg.model_name = embedding_raw["model_name"]
    if isinstance(embedding_raw.get("preset"), str):
        embedding_cfg.preset = embedding_raw["preset"]
    if isinstance(embedding_raw.get("device"), str):
        embedding_cfg.device = embedding_raw["device"]
    if embedding_raw.get("distance_metric") in ("euclidean", "cosine"):
        embedding_cfg.distance_metric = embedding_raw["distance_metric"]

    face_cfg = settings.models.face
    if isinstance(face_raw.get("model_name"), str):
        face_cfg.model_name = face_raw["model_name"]
    if isinstance(face_raw.get("preset"), str):
        face_cfg.preset = face_raw["preset"]
    if isinstance(face_raw.get("device"), str):
        face_cfg.device = face_raw["device"]
    prompts = _str_list(face_raw.get("prompts"))
    if prompts:
        face_cfg.prompts = prompts
    if _is_number(face_raw.get("score_threshold")):
        face_cfg.score_threshold = float(face_raw["score_threshold"])
    if _is_number(face_raw.get("sharpness_normalizer")) and face_raw["sharpness_normalizer"] > 0:
        face_cfg.sharpness_normalizer = float(face_raw["sharpness_normalizer"])

    composition_labels = _str_list(models_raw.get("composition_labels"))
    if composition_labels:
        settings.models.composition_labels = composition_labels

    library_raw = _as_dict(raw.get("library"))
    library_cfg = settings.library
    roots = _str_list(library_raw.get("roots"))
    if roots is not None:
        library_cfg.roots = roots
    extensions = _str_list(library_raw.get("extensions"))
    if extensions:
        library_cfg.extensions = [ext.lower() if ext.startswith(".") else f".{ext.lower()}" for ext in extensions]
    favorites = _str_list(library_raw.get("favorites"))
    if favorites is not None:
        library_cfg.favorites = favorites
    if isinstance(library_raw.get("trash_dir"), str):
        library_cfg.trash_dir = library_raw["trash_dir"]
    if _is_number(library_raw.get("panorama_aspect_ratio")):
        library_cfg.panorama_aspect_ratio = float(library_raw["panorama_aspect_ratio"])

    return settings


__all__ = [
    "GroupingConfig",
    "DedupConfig",
    "ExtractionConfig",
    "ClusteringConfig",
    "ScoringConfig",
    "EmbeddingModelConfig",
    "FaceModelConfig",
    "ModelsConfig",
    "LibraryConfig",
    "Settings",
    "load_settings",
]
