"""Content digest helpers for exact-duplicate detection."""

from __future__ import annotations

import hashlib
from typing import Final

import xxhash

SHA256_ALGO: Final[str] = "sha256"
XXHASH64_ALGO: Final[str] = "xxhash64"
SUPPORTED_DIGEST_ALGOS: Final[frozenset[str]] = frozenset({SHA256_ALGO, XXHASH64_ALGO})


def compute_content_digest(data: bytes, algo: str = SHA256_ALGO) -> str:
    """Return the lowercase hexadecimal digest of ``data``.

    Args:
        data: Raw asset bytes.
        algo: ``"sha256"`` (cryptographic, 64 hex chars) or ``"xxhash64"``
            (fast, 16 hex chars).

    Raises:
        ValueError: If ``algo`` is not supported.
    """

    if algo == SHA256_ALGO:
        return hashlib.sha256(data).hexdigest()
    if algo == XXHASH64_ALGO:
        return f"{xxhash.xxh64(data).intdigest():016x}"
    raise ValueError(f"Unsupported digest algorithm: {algo!r}")


__all__ = ["SHA256_ALGO", "XXHASH64_ALGO", "SUPPORTED_DIGEST_ALGOS", "compute_content_digest"]
