"""Tests for YAML settings loading."""

from __future__ import annotations

from pathlib import Path

from photo_sweep.config import Settings, load_settings


def test_missing_file_returns_defaults(tmp_path: Path) -> None:
    settings = load_settings(tmp_path / "absent.yaml")

    assert settings == Settings()
    assert settings.grouping.time_interval_seconds == 180.0
    assert settings.extraction.batch_size == 4
    assert settings.clustering.distance_threshold == 0.3


def test_values_override_defaults(tmp_path: Path) -> None:
    path = tmp_path / "settings.yaml"
    path.write_text(
        """
grouping:
  time_interval_seconds: 60
dedup:
  digest_algo: xxhash64
extraction:
  batch_size: 2
  timeout_seconds: 1.5
scoring:
  face_weight: 0.4
  composition_label: sharp photo
models:
  embedding:
    preset: hq_384
    distance_metric: cosine
  composition_labels: ["sharp photo", "blurry photo"]
library:
  roots: ["/photos"]
  extensions: ["JPG", ".Png"]
  trash_dir: /tmp/trash
""",
        encoding="utf-8",
    )

    settings = load_settings(path)

    assert settings.grouping.time_interval_seconds == 60.0
    assert settings.dedup.digest_algo == "xxhash64"
    assert settings.extraction.batch_size == 2
    assert settings.extraction.timeout_seconds == 1.5
    assert settings.scoring.face_weight == 0.4
    assert settings.scoring.composition_label == "sharp photo"
    assert settings.models.embedding.resolved_model_name() == "google/siglip2-large-patch16-384"
    assert settings.models.embedding.distance_metric == "cosine"
    assert settings.models.composition_labels == ["sharp photo", "blurry photo"]
    assert settings.library.roots == ["/photos"]
    assert settings.library.extensions == [".jpg", ".png"]
    assert settings.library.trash_dir == "/tmp/trash"


def test_wrong_types_are_ignored(tmp_path: Path) -> None:
    path = tmp_path / "settings.yaml"
    path.write_text(
        """
grouping:
  time_interval_seconds: "soon"
extraction:
  batch_size: 0
  timeout_seconds: true
models:
  embedding:
    distance_metric: manhattan
library: not-a-mapping
""",
        encoding="utf-8",
    )

    assert load_settings(path) == Settings()


def test_env_override_is_used(tmp_path: Path, monkeypatch) -> None:
    path = tmp_path / "custom.yaml"
    path.write_text("clustering:\n  distance_threshold: 0.5\n", encoding="utf-8")
    monkeypatch.setenv("PHOTO_SWEEP_SETTINGS", str(path))

    assert load_settings().clustering.distance_threshold == 0.5


def test_non_mapping_document_returns_defaults(tmp_path: Path) -> None:
    path = tmp_path / "settings.yaml"
    path.write_text("- just\n- a list\n", encoding="utf-8")

    assert load_settings(path) == Settings()


def test_unsupported_digest_algo_keeps_default(tmp_path: Path) -> None:
    path = tmp_path / "settings.yaml"
    path.write_text("dedup:\n  digest_algo: md5\n", encoding="utf-8")

    assert load_settings(path).dedup.digest_algo == "sha256"


def test_invalid_yaml_returns_defaults(tmp_path: Path) -> None:
    path = tmp_path / "settings.yaml"
    path.write_text("grouping: [unterminated\n  time_interval_seconds: 60\n", encoding="utf-8")

    assert load_settings(path) == Settings()
