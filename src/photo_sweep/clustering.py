"""Similarity graph construction and connected-component extraction."""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence

import numpy as np
from numpy.typing import NDArray

from photo_sweep.assets import Embedding, PhotoAsset, SimilarPhotoGroup
from photo_sweep.services import AssetStore
from utils.logging import get_logger

LOGGER = get_logger(__name__, extra={"component": "clustering"})

DEFAULT_DISTANCE_THRESHOLD = 0.3


def euclidean_distance(lhs: Embedding, rhs: Embedding) -> float:
    return float(np.linalg.norm(np.asarray(lhs, dtype=np.float64) - np.asarray(rhs, dtype=np.float64)))


def cosine_distance(lhs: Embedding, rhs: Embedding) -> float:
    a = np.asarray(lhs, dtype=np.float64)
    b = np.asarray(rhs, dtype=np.float64)
    denom = float(np.linalg.norm(a) * np.linalg.norm(b))
    if denom == 0.0:
        return 1.0
    # Clamp rounding noise so the distance stays non-negative.
    return max(0.0, 1.0 - float(a @ b) / denom)


def build_similarity_matrix(
    embeddings: Sequence[Embedding],
    distance: Callable[[Embedding, Embedding], float],
    threshold: float = DEFAULT_DISTANCE_THRESHOLD,
) -> NDArray[np.bool_]:
    """Return a symmetric adjacency matrix with an edge where distance < threshold."""

    n = len(embeddings)
    matrix = np.zeros((n, n), dtype=bool)
    for i in range(n):
        for j in range(i + 1, n):
            if float(distance(embeddings[i], embeddings[j])) < threshold:
                matrix[i, j] = True
                matrix[j, i] = True
    return matrix


def find_connected_components(matrix: NDArray[np.bool_]) -> list[list[int]]:
    """Return connected components as sorted node-index lists.

    Traversal starts from each unvisited node in ascending order, so the
    component order is fixed by the lowest index in each component.
    """

    n = int(matrix.shape[0])
    visited = [False] * n
    components: list[list[int]] = []

    for start in range(n):
        if visited[start]:
            continue

        component: list[int] = []
        stack = [start]
        visited[start] = True
        while stack:
            node = stack.pop()
            component.append(node)
            for neighbor in np.flatnonzero(matrix[node]):
                neighbor = int(neighbor)
                if not visited[neighbor]:
                    visited[neighbor] = True
                    stack.append(neighbor)

        components.append(sorted(component))

    return components


class SimilarityClusterer:
    """Group embedded assets into :class:`SimilarPhotoGroup` results."""

    def __init__(
        self,
        store: AssetStore,
        distance: Callable[[Embedding, Embedding], float],
        threshold: float = DEFAULT_DISTANCE_THRESHOLD,
    ) -> None:
        self._store = store
        self._distance = distance
        self._threshold = threshold

    async def cluster(
        self,
        assets: Sequence[PhotoAsset],
        embeddings: Mapping[int, Embedding],
    ) -> list[SimilarPhotoGroup]:
        """Cluster ``assets`` using ``embeddings`` keyed by position in ``assets``."""

        # Snapshot in index order; completion order of the extraction calls is irrelevant.
        indices = sorted(embeddings)
        if len(indices) <= 1:
            return []

        vectors = [embeddings[index] for index in indices]
        matrix = build_similarity_matrix(vectors, self._distance, self._threshold)

        groups: list[SimilarPhotoGroup] = []
        for component in find_connected_components(matrix):
            if len(component) < 2:
                continue
            members = [assets[indices[node]] for node in component]
            total_size = await self._total_size(members)
            groups.append(
                SimilarPhotoGroup(
                    photo_ids=tuple(member.asset_id for member in members),
                    total_size=total_size,
                )
            )

        LOGGER.debug(
            "clusters_built",
            extra={"embedded": len(indices), "edges": int(matrix.sum()) // 2, "groups": len(groups)},
        )
        return groups

    async def _total_size(self, members: Sequence[PhotoAsset]) -> int:
        total = 0
        for member in members:
            try:
                total += int(await self._store.fetch_file_size(member.asset_id))
            except Exception as exc:
                LOGGER.warning("file_size_error", extra={"asset_id": member.asset_id, "error": str(exc)})
        return total


__all__ = [
    "DEFAULT_DISTANCE_THRESHOLD",
    "euclidean_distance",
    "cosine_distance",
    "build_similarity_matrix",
    "find_connected_components",
    "SimilarityClusterer",
]
