"""Core utilities and shared components for the image labeler."""

from .cancellation import CancellationToken
from .exceptions import (
    BatchProcessingError,
    ConfigurationError,
    DecodeError,
    FatalInputError,
    ImageLabelerError,
    MalformedRecordError,
    NotFoundError,
    OperationCancelledError,
    RetryableIOError,
    SigningError,
    ValidationError,
)
from .logging_config import get_logger, setup_logger
from .models import (
    AppConfig,
    DisplayItem,
    Label,
    ListPage,
    MetadataRecord,
    ObjectCreatedNotification,
    ProcessingResult,
    ReadUrl,
    UploadTicket,
)
from .thumbnails import calculate_thumbnail_size, is_thumbnail_key, resize, thumbnail_key_for

__all__ = [
    "AppConfig",
    "Label",
    "MetadataRecord",
    "DisplayItem",
    "ListPage",
    "UploadTicket",
    "ReadUrl",
    "ObjectCreatedNotification",
    "ProcessingResult",
    "CancellationToken",
    "resize",
    "calculate_thumbnail_size",
    "thumbnail_key_for",
    "is_thumbnail_key",
    "setup_logger",
    "get_logger",
    "ImageLabelerError",
    "RetryableIOError",
    "FatalInputError",
    "DecodeError",
    "ValidationError",
    "NotFoundError",
    "SigningError",
    "MalformedRecordError",
    "ConfigurationError",
    "OperationCancelledError",
    "BatchProcessingError",
]
