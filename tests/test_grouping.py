"""Tests for the temporal/spatial candidate grouping pass."""

from __future__ import annotations

from fakes import make_asset

from photo_sweep.assets import GeoLocation
from photo_sweep.grouping import assets_have_similar_location, group_by_time_and_location


def _ids(groups) -> list[list[str]]:
    return [[asset.asset_id for asset in group] for group in groups]


def test_empty_input_yields_no_groups() -> None:
    assert group_by_time_and_location([]) == []


def test_gap_of_exactly_the_interval_stays_in_group() -> None:
    """Boundary: a 180 s gap is not more than the interval."""

    assets = [make_asset("a", 0), make_asset("b", 180), make_asset("c", 361)]

    assert _ids(group_by_time_and_location(assets)) == [["a", "b"]]


def test_singletons_are_dropped_and_partition_preserves_order() -> None:
    assets = [
        make_asset("a", 0),
        make_asset("b", 10),
        make_asset("c", 1000),
        make_asset("d", 5000),
        make_asset("e", 5100),
        make_asset("f", 5200),
    ]

    groups = group_by_time_and_location(assets)

    assert _ids(groups) == [["a", "b"], ["d", "e", "f"]]
    flattened = [asset_id for group in _ids(groups) for asset_id in group]
    assert flattened == sorted(flattened)


def test_distant_locations_split_groups() -> None:
    paris = GeoLocation(48.8566, 2.3522)
    nearby = GeoLocation(48.8567, 2.3523)
    london = GeoLocation(51.5074, -0.1278)
    assets = [
        make_asset("a", 0, location=paris),
        make_asset("b", 5, location=nearby),
        make_asset("c", 10, location=london),
        make_asset("d", 15, location=london),
    ]

    assert _ids(group_by_time_and_location(assets)) == [["a", "b"], ["c", "d"]]


def test_missing_location_never_splits() -> None:
    located = make_asset("a", 0, location=GeoLocation(0.0, 0.0))
    unlocated = make_asset("b", 1)

    assert assets_have_similar_location(located, unlocated)
    assert assets_have_similar_location(unlocated, located)


def test_distance_threshold_is_inclusive() -> None:
    origin = GeoLocation(0.0, 0.0)
    # Roughly 111 m per 0.001 degree of latitude.
    other = GeoLocation(0.001, 0.0)
    distance = origin.distance_to(other)

    lhs = make_asset("a", 0, location=origin)
    rhs = make_asset("b", 0, location=other)

    assert 110.0 < distance < 112.0
    assert assets_have_similar_location(lhs, rhs, distance_threshold=distance)
    assert not assets_have_similar_location(lhs, rhs, distance_threshold=distance - 1.0)


def test_custom_interval_is_honoured() -> None:
    assets = [make_asset("a", 0), make_asset("b", 30), make_asset("c", 60)]

    assert group_by_time_and_location(assets, time_interval=10) == []
