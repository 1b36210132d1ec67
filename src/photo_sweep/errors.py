"""Typed failures surfaced by the asset store and the invoking boundary."""

from __future__ import annotations


class AssetStoreError(Exception):
    """Raised by an asset store when a single asset cannot be read or changed."""

    def __init__(self, asset_id: str | None, message: str) -> None:
        super().__init__(message)
        self.asset_id = asset_id
        self.message = message


class PhotoCleanerError(Exception):
    """Base class for failures returned by the public cleaner operations.

    Each subclass carries a stable ``code`` and a human-readable ``message``.
    """

    code = "ERROR"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"


class AuthorizationDeniedError(PhotoCleanerError):
    """Library access was refused; fatal and not retried."""

    code = "AUTHORIZATION_DENIED"

    def __init__(self, message: str = "Photo library access was denied.") -> None:
        super().__init__(message)


class InvalidArgumentsError(PhotoCleanerError):
    code = "INVALID_ARGUMENTS"


class ScanFailedError(PhotoCleanerError):
    code = "ERROR"


class RecommendFailedError(PhotoCleanerError):
    code = "RECOMMEND_FAILED"


class DeleteFailedError(PhotoCleanerError):
    code = "DELETE_FAILED"


__all__ = [
    "AssetStoreError",
    "PhotoCleanerError",
    "AuthorizationDeniedError",
    "InvalidArgumentsError",
    "ScanFailedError",
    "RecommendFailedError",
    "DeleteFailedError",
]
