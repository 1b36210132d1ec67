"""Tests for best-photo scoring and recommendation."""

from __future__ import annotations

import asyncio

import pytest
from fakes import FakeAssetStore, FakeClassifier, make_asset

from photo_sweep.assets import GeoLocation, MediaSubtype
from photo_sweep.config import ScoringConfig
from photo_sweep.scoring import (
    REASON_FAVORITE,
    REASON_HIGHEST_SCORE,
    BestPhotoScorer,
    combine_scores,
    metadata_score,
)


def test_combine_scores_uses_default_weights() -> None:
    assert combine_scores(1.0, 0.0, 0.0) == pytest.approx(0.5)
    assert combine_scores(0.0, 1.0, 0.0) == pytest.approx(0.3)
    assert combine_scores(0.0, 0.0, 1.0) == pytest.approx(0.2)


def test_combine_scores_is_monotonic() -> None:
    base = combine_scores(0.4, 0.4, 0.4)

    assert combine_scores(0.5, 0.4, 0.4) > base
    assert combine_scores(0.4, 0.5, 0.4) > base
    assert combine_scores(0.4, 0.4, 0.5) > base


def test_metadata_score_components_and_clamp() -> None:
    plain = make_asset("a", width=1000, height=1000)
    located = make_asset("b", width=1000, height=1000, location=GeoLocation(1.0, 2.0))
    fancy = make_asset(
        "c",
        width=1000,
        height=1000,
        location=GeoLocation(1.0, 2.0),
        subtypes=frozenset({MediaSubtype.PANORAMA, MediaSubtype.HDR}),
    )
    huge = make_asset("d", width=20000, height=20000)

    assert metadata_score(plain) == pytest.approx(0.1)
    assert metadata_score(located) == pytest.approx(0.3)
    assert metadata_score(fancy) == pytest.approx(0.5)
    assert metadata_score(huge) == 1.0


def test_favorite_short_circuits_without_classifier_calls() -> None:
    store = FakeAssetStore()
    assets = [
        store.add(make_asset("a", 0)),
        store.add(make_asset("b", 1, favorite=True)),
        store.add(make_asset("c", 2, favorite=True)),
    ]
    classifier = FakeClassifier()

    recommendation = asyncio.run(BestPhotoScorer(store, classifier).recommend(assets))

    assert recommendation.asset_id == "b"
    assert recommendation.reason == REASON_FAVORITE
    assert classifier.calls == []
    assert store.render_calls == []


def test_highest_total_wins() -> None:
    store = FakeAssetStore()
    assets = [store.add(make_asset("blurry", 0)), store.add(make_asset("sharp", 1))]
    classifier = FakeClassifier(
        composition={"blurry": {"well composed": 0.1}, "sharp": {"well composed": 0.9}},
        faces={"blurry": [0.2], "sharp": [0.8, 0.6]},
    )

    recommendation = asyncio.run(BestPhotoScorer(store, classifier).recommend(assets))

    assert recommendation.asset_id == "sharp"
    assert recommendation.reason == REASON_HIGHEST_SCORE
    assert recommendation.score is not None
    assert recommendation.score.face == pytest.approx(0.7)
    assert ("sharp", None) in store.render_calls


def test_ties_keep_the_first_asset() -> None:
    store = FakeAssetStore()
    assets = [store.add(make_asset("first", 0)), store.add(make_asset("second", 1))]

    recommendation = asyncio.run(BestPhotoScorer(store, FakeClassifier()).recommend(assets))

    assert recommendation.asset_id == "first"


def test_missing_label_and_no_faces_use_defaults() -> None:
    store = FakeAssetStore()
    asset = store.add(make_asset("a", 0, width=1000, height=1000))
    classifier = FakeClassifier(composition={"a": {"poorly composed": 0.9}})

    score = asyncio.run(BestPhotoScorer(store, classifier).score(asset))

    assert score.clarity == 0.5
    assert score.face == 0.5
    assert score.total == pytest.approx(0.5 * 0.5 + 0.3 * 0.5 + 0.2 * 0.1)


def test_classifier_failures_fall_back_to_defaults() -> None:
    store = FakeAssetStore()
    asset = store.add(make_asset("a", 0))
    classifier = FakeClassifier(composition_failures={"a"}, face_failures={"a"})
    config = ScoringConfig(default_clarity=0.25, default_face=0.75)

    score = asyncio.run(BestPhotoScorer(store, classifier, config).score(asset))

    assert score.clarity == 0.25
    assert score.face == 0.75


def test_unrenderable_image_scores_zero() -> None:
    store = FakeAssetStore()
    broken = store.add(make_asset("broken", 0), renderable=False)
    fine = store.add(make_asset("fine", 1))
    classifier = FakeClassifier()

    scorer = BestPhotoScorer(store, classifier)
    score = asyncio.run(scorer.score(broken))
    recommendation = asyncio.run(scorer.recommend([broken, fine]))

    assert score.total == 0.0
    assert recommendation.asset_id == "fine"
    assert ("composition", "broken") not in classifier.calls


def test_empty_input_is_rejected() -> None:
    with pytest.raises(ValueError):
        asyncio.run(BestPhotoScorer(FakeAssetStore(), FakeClassifier()).recommend([]))
