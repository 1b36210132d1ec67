"""Exact-duplicate elimination within a candidate group."""

from __future__ import annotations

from collections.abc import Sequence

from photo_sweep.assets import PhotoAsset
from photo_sweep.hasher import SHA256_ALGO, compute_content_digest
from photo_sweep.services import AssetStore
from utils.logging import get_logger

LOGGER = get_logger(__name__, extra={"component": "dedup"})


async def content_digest(store: AssetStore, asset: PhotoAsset, algo: str = SHA256_ALGO) -> str | None:
    """Return the digest of an asset's bytes, or ``None`` if they are unavailable."""

    try:
        data = await store.fetch_raw_content(asset.asset_id)
    except Exception as exc:
        LOGGER.warning("content_fetch_error", extra={"asset_id": asset.asset_id, "error": str(exc)})
        return None
    return compute_content_digest(data, algo)


async def deduplicate_by_content(
    assets: Sequence[PhotoAsset],
    store: AssetStore,
    algo: str = SHA256_ALGO,
) -> list[PhotoAsset]:
    """Drop byte-identical assets, keeping the first of each digest.

    Assets whose content cannot be fetched are kept as unique; a missed exact
    duplicate is still caught later by the similarity stage.
    """

    seen: set[str] = set()
    unique: list[PhotoAsset] = []

    for asset in assets:
        digest = await content_digest(store, asset, algo)
        if digest is None:
            unique.append(asset)
            continue
        if digest in seen:
            continue
        seen.add(digest)
        unique.append(asset)

    return unique


__all__ = ["content_digest", "deduplicate_by_content"]
