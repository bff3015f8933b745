"""Exception hierarchy for the image labeler."""

from __future__ import annotations

from typing import TYPE_CHECKING, List

if TYPE_CHECKING:
    from .models import ProcessingResult


class ImageLabelerError(Exception):
    """Base exception for all image labeler errors."""

    retryable = False


class RetryableIOError(ImageLabelerError):
    """Object store, vision service or metadata store failure.

    Redelivering the notification may succeed.
    """

    retryable = True


class FatalInputError(ImageLabelerError):
    """The input itself is unusable; redelivery will not help."""


class DecodeError(FatalInputError):
    """Image bytes are not a supported raster image."""


class ValidationError(ImageLabelerError):
    """Bad caller input to the query service."""


class NotFoundError(ImageLabelerError):
    """Missing record or route."""


class SigningError(ImageLabelerError):
    """A presigned URL could not be generated."""


class MalformedRecordError(ImageLabelerError):
    """A stored metadata item is missing attributes or holds invalid values."""


class ConfigurationError(ImageLabelerError):
    """Error raised for invalid or missing configuration."""


class OperationCancelledError(ImageLabelerError):
    """The invocation deadline fired before the current step finished."""

    retryable = True


class BatchProcessingError(ImageLabelerError):
    """One or more notifications in a batch failed."""

    def __init__(self, message: str, failures: List["ProcessingResult"]):
        super().__init__(message)
        self.failures = failures

    @property
    def retryable(self) -> bool:  # type: ignore[override]
        return any(failure.retryable for failure in self.failures)

    @property
    def failed_keys(self) -> List[str]:
        return [failure.key for failure in self.failures]
