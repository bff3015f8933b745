# src/image_labeler/core/error_handling.py

import functools
import logging
from typing import Any, Callable, Dict, List, Optional, Type, TypeVar

from botocore.exceptions import BotoCoreError, ClientError
from PIL import UnidentifiedImageError

from .exceptions import (
    DecodeError,
    FatalInputError,
    ImageLabelerError,
    RetryableIOError,
)

# Rekognition rejects the image itself for these; redelivery cannot fix them.
FATAL_AWS_ERROR_CODES = (
    "InvalidImageFormatException",
    "ImageTooLargeException",
    "InvalidParameterException",
)

F = TypeVar("F", bound=Callable[..., Any])


def aws_error_code(error: ClientError) -> str:
    """Return the service error code carried by a botocore ClientError."""
    return error.response.get("Error", {}).get("Code", "")


def with_error_handling(
    func: Optional[F] = None,
    *,
    aws_error: Type[ImageLabelerError] = RetryableIOError,
) -> Any:
    """
    A decorator to translate library errors into the image labeler hierarchy.

    botocore errors become ``aws_error`` (``RetryableIOError`` unless told
    otherwise), except for the input-rejection codes which become
    ``FatalInputError``. Pillow's identification failure becomes
    ``DecodeError``. Errors already in the hierarchy pass through untouched,
    anything else is logged and re-raised as is.
    """

    def decorator(inner: F) -> F:
        @functools.wraps(inner)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            logger = logging.getLogger(inner.__module__ + "." + inner.__name__)
            try:
                return inner(*args, **kwargs)
            except ImageLabelerError:
                raise
            except ClientError as e:
                logger.error(f"Error in '{inner.__name__}': {e}", exc_info=True)
                if aws_error_code(e) in FATAL_AWS_ERROR_CODES:
                    raise FatalInputError(
                        f"Input rejected in {inner.__name__}: {e}"
                    ) from e
                raise aws_error(f"AWS operation failed in {inner.__name__}: {e}") from e
            except BotoCoreError as e:
                logger.error(f"Error in '{inner.__name__}': {e}", exc_info=True)
                raise aws_error(f"AWS operation failed in {inner.__name__}: {e}") from e
            except UnidentifiedImageError as e:
                logger.error(f"Error in '{inner.__name__}': {e}", exc_info=True)
                raise DecodeError(
                    f"Failed to identify image in {inner.__name__}: {e}"
                ) from e
            except Exception as e:
                logger.error(f"Error in '{inner.__name__}': {e}", exc_info=True)
                raise

        return wrapper  # type: ignore[return-value]

    if func is not None:
        return decorator(func)
    return decorator


class BatchOperationContextManager:
    """
    Context manager for batch operations to collect and summarize errors.
    """

    def __init__(self, operation_name: str = "Batch Operation"):
        self.operation_name = operation_name
        self.errors: List[Dict[str, str]] = []
        self.logger = logging.getLogger(
            self.__class__.__module__ + "." + self.__class__.__name__
        )

    def __enter__(self) -> "BatchOperationContextManager":
        self.logger.info(f"Starting {self.operation_name}.")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        if self.errors:
            self.logger.warning(
                f"{self.operation_name} completed with {len(self.errors)} error(s)."
            )
            for i, error_detail in enumerate(self.errors):
                self.logger.error(
                    f"  Error {i + 1}/{len(self.errors)} for item "
                    f"'{error_detail['item']}': {error_detail['error']}"
                )
        elif exc_type:
            self.logger.error(
                f"{self.operation_name} failed due to an unhandled exception: {exc_val}",
                exc_info=(exc_type, exc_val, exc_tb),
            )
        else:
            self.logger.info(f"{self.operation_name} completed successfully.")

        # Never suppress; the batch caller decides what a failure means.
        return False

    def add_error(self, error_message: str, item_identifier: str = "Unknown item") -> None:
        """
        Report an error for a specific item within the 'with' block.

        Args:
            error_message: The error message or exception string.
            item_identifier: A string identifying the item that failed (e.g. an S3 key).
        """
        self.errors.append({"item": item_identifier, "error": str(error_message)})
        self.logger.debug(
            f"Error added for item '{item_identifier}' in {self.operation_name}: {error_message}"
        )
