"""Custom exception hierarchy for perceptkit."""

from __future__ import annotations


class PerceptkitError(Exception):
    """Base exception for all perceptkit errors."""


class PerceptkitConfigError(PerceptkitError):
    """Invalid or missing configuration."""


class ArtifactLoadError(PerceptkitError):
    """Fetching artifact content failed (network, non-2xx, unreadable body)."""

    def __init__(
        self,
        message: str,
        *,
        url: str = "",
        status_code: int | None = None,
    ) -> None:
        self.url = url
        self.status_code = status_code
        super().__init__(message)


class ArtifactDecodeError(PerceptkitError):
    """Fetched content could not be decoded into artifacts."""

    def __init__(self, message: str, *, url: str = "") -> None:
        self.url = url
        super().__init__(message)
