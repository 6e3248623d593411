from __future__ import annotations


class DormMatchError(Exception):
    """Base exception for the dorm matching service."""


class ValidationError(DormMatchError):
    """Raised when a ranking query is missing fields or carries invalid values."""

    def __init__(self, details: dict[str, str], message: str = "Invalid search request") -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class DataLoadError(DormMatchError):
    """Raised when the catalog or coordinate source is missing or corrupt."""


class ExternalServiceError(DormMatchError):
    """Raised by the directory client on timeouts, bad statuses or malformed payloads."""


class ResolutionCancelled(DormMatchError):
    """Raised when the request that owns a resolution was cancelled mid-flight."""
