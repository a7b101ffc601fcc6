"""Error taxonomy.

Only InvalidUrlError and UnsupportedPlatformError reach the caller.
The tier errors are absorbed by the orchestrator and degrade to the
next strategy.
"""

from __future__ import annotations

from .schemas import ErrorResponse


class PostviewError(Exception):
    kind = "extraction_failed"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_response(self) -> ErrorResponse:
        return ErrorResponse(error=self.kind, message=self.message)


class InvalidUrlError(PostviewError):
    kind = "invalid_url"


class UnsupportedPlatformError(PostviewError):
    kind = "unsupported_platform"


class ExternalToolError(PostviewError):
    """Primary tier: the metadata tool failed, timed out or printed garbage."""


class ScrapeError(PostviewError):
    """Secondary tier: navigation timeout, missing page structure, browser failure."""


class NormalizationError(PostviewError):
    """Candidate data is malformed or carries nothing worth showing."""
