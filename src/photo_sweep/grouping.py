"""Temporal/spatial pre-grouping of the time-ordered photo list."""

from __future__ import annotations

from collections.abc import Sequence

from photo_sweep.assets import CandidateGroup, PhotoAsset

DEFAULT_TIME_INTERVAL_SECONDS = 180.0
DEFAULT_DISTANCE_THRESHOLD_METERS = 50.0


def assets_have_similar_location(
    lhs: PhotoAsset,
    rhs: PhotoAsset,
    distance_threshold: float = DEFAULT_DISTANCE_THRESHOLD_METERS,
) -> bool:
    """Return whether two assets were taken close enough together.

    Missing location data on either side never splits a group.
    """

    if lhs.location is None or rhs.location is None:
        return True
    return lhs.location.distance_to(rhs.location) <= distance_threshold


def group_by_time_and_location(
    assets: Sequence[PhotoAsset],
    time_interval: float = DEFAULT_TIME_INTERVAL_SECONDS,
    distance_threshold: float = DEFAULT_DISTANCE_THRESHOLD_METERS,
) -> list[CandidateGroup]:
    """Split assets (ascending by capture time) into candidate groups.

    A new group starts whenever consecutive assets are more than
    ``time_interval`` seconds apart or, when both carry a location, more than
    ``distance_threshold`` metres apart. Single-asset groups are dropped.
    """

    if not assets:
        return []

    groups: list[CandidateGroup] = []
    current: CandidateGroup = [assets[0]]

    for previous, asset in zip(assets, assets[1:]):
        gap = (asset.created_at - previous.created_at).total_seconds()
        if gap <= time_interval and assets_have_similar_location(previous, asset, distance_threshold):
            current.append(asset)
            continue

        if len(current) > 1:
            groups.append(current)
        current = [asset]

    if len(current) > 1:
        groups.append(current)

    return groups


__all__ = [
    "DEFAULT_TIME_INTERVAL_SECONDS",
    "DEFAULT_DISTANCE_THRESHOLD_METERS",
    "assets_have_similar_location",
    "group_by_time_and_location",
]
