"""Shared data models for the image labeler."""

import os
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Literal, Mapping, Optional, Tuple
from urllib.parse import unquote_plus

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator
from pydantic import ValidationError as PydanticValidationError

from .exceptions import ConfigurationError, MalformedRecordError

PROCESSED_AT_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

BatchPolicy = Literal["fail_fast", "aggregate"]


def utc_now() -> datetime:
    """Current UTC time truncated to whole seconds."""
    return datetime.now(timezone.utc).replace(microsecond=0)


class Label(BaseModel):
    """A semantic tag returned by the label detector."""

    model_config = ConfigDict(frozen=True)

    name: str
    confidence: float = Field(ge=0.0, le=100.0)


class MetadataRecord(BaseModel):
    """Persisted metadata for one processed image, keyed by ``image_key``."""

    model_config = ConfigDict(frozen=True)

    image_key: str = Field(min_length=1)
    bucket_name: str
    image_size: int = Field(ge=0)
    processed_at: datetime
    thumbnail_key: str = ""
    detected_labels: List[Label] = Field(default_factory=list)

    @field_validator("processed_at")
    @classmethod
    def _normalize_processed_at(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc).replace(microsecond=0)

    @field_serializer("processed_at")
    def _serialize_processed_at(self, value: datetime) -> str:
        return value.strftime(PROCESSED_AT_FORMAT)

    @property
    def display_key(self) -> str:
        """Key to show for this record: the thumbnail when there is one."""
        return self.thumbnail_key or self.image_key

    def to_item(self) -> Dict[str, Any]:
        """Render as a DynamoDB item (numbers as Decimal)."""
        item = self.model_dump()
        item["detected_labels"] = [
            {"name": label.name, "confidence": Decimal(str(label.confidence))}
            for label in self.detected_labels
        ]
        return item

    @classmethod
    def from_item(cls, item: Mapping[str, Any]) -> "MetadataRecord":
        """
        Build a record from a DynamoDB item.

        Raises:
            MalformedRecordError: If required attributes are missing or invalid
        """
        try:
            return cls(
                image_key=item["image_key"],
                bucket_name=item.get("bucket_name", ""),
                image_size=int(item.get("image_size", 0)),
                processed_at=item["processed_at"],
                thumbnail_key=item.get("thumbnail_key", ""),
                detected_labels=[
                    Label(name=label["name"], confidence=float(label["confidence"]))
                    for label in item.get("detected_labels", [])
                ],
            )
        except (KeyError, TypeError, ValueError) as e:
            # pydantic's ValidationError is a ValueError
            raise MalformedRecordError(
                f"Malformed metadata item {item.get('image_key', '<no key>')!r}: {e}"
            ) from e


class DisplayItem(BaseModel):
    """A metadata record plus the signed URL used to display it."""

    model_config = ConfigDict(frozen=True)

    record: MetadataRecord
    url: Optional[str] = None

    def to_response(self) -> Dict[str, Any]:
        data = self.record.model_dump(mode="json")
        if self.url is not None:
            data["url"] = self.url
        return data


class ListPage(BaseModel):
    """One page of the newest-first listing."""

    items: List[DisplayItem] = Field(default_factory=list)
    total_count: int = Field(ge=0)
    page: int = Field(ge=1)
    limit: int = Field(gt=0)
    has_more: bool

    def to_response(self) -> Dict[str, Any]:
        return {
            "items": [item.to_response() for item in self.items],
            "total_count": self.total_count,
            "page": self.page,
            "limit": self.limit,
            "has_more": self.has_more,
        }


class UploadTicket(BaseModel):
    """Presigned PUT URL and the service-generated key it writes to."""

    model_config = ConfigDict(populate_by_name=True)

    upload_url: str = Field(alias="uploadUrl")
    key: str


class ReadUrl(BaseModel):
    """Presigned GET URL for a single object."""

    url: str


class ObjectCreatedNotification(BaseModel):
    """One object-created event from the object store."""

    bucket: str = Field(min_length=1)
    key: str = Field(min_length=1)
    size: int = Field(default=0, ge=0)

    @classmethod
    def from_s3_record(cls, record: Mapping[str, Any]) -> "ObjectCreatedNotification":
        """Build from an S3 event record; event keys arrive form-encoded."""
        s3 = record["s3"]
        return cls(
            bucket=s3["bucket"]["name"],
            key=unquote_plus(s3["object"]["key"]),
            size=s3["object"].get("size", 0),
        )


class ProcessingResult(BaseModel):
    """Result of processing a single notification."""

    key: str
    success: bool = False
    skipped: bool = False
    error: str = ""
    error_type: str = ""
    retryable: bool = False
    thumbnail_key: str = ""
    processing_time: float = 0.0


class AppConfig(BaseModel):
    """Immutable configuration shared by every invocation."""

    model_config = ConfigDict(frozen=True)

    table_name: str = Field(default="image-labels", min_length=1)
    bucket_name: Optional[str] = None
    thumbnail_prefix: str = Field(default="thumbnails/", min_length=1)
    thumbnail_width: int = Field(default=300, gt=0)
    max_labels: int = Field(default=10, gt=0)
    min_confidence: float = Field(default=70.0, ge=0.0, le=100.0)
    batch_policy: BatchPolicy = "fail_fast"
    max_workers: int = Field(default=8, gt=0)
    upload_url_expiry: int = Field(default=15 * 60, gt=0)
    read_url_expiry: int = Field(default=60 * 60, gt=0)
    allowed_content_types: Tuple[str, ...] = ("image/jpeg", "image/png")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "AppConfig":
        """
        Build configuration from environment variables.

        Unset or empty variables keep their defaults. A missing bucket is
        allowed here; components that need it call ``require_bucket``.
        """
        env = os.environ if environ is None else environ
        env_fields = {
            "table_name": "DYNAMODB_TABLE_NAME",
            "bucket_name": "S3_BUCKET_NAME",
            "thumbnail_prefix": "THUMBNAIL_PREFIX",
            "thumbnail_width": "THUMBNAIL_WIDTH",
            "max_labels": "MAX_LABELS",
            "min_confidence": "MIN_CONFIDENCE",
            "batch_policy": "BATCH_POLICY",
            "max_workers": "MAX_WORKERS",
        }
        values = {
            field: env[var] for field, var in env_fields.items() if env.get(var)
        }
        try:
            return cls(**values)
        except PydanticValidationError as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e

    def require_bucket(self) -> str:
        """Return the bucket name or fail the startup."""
        if not self.bucket_name:
            raise ConfigurationError(
                "S3_BUCKET_NAME environment variable is required"
            )
        return self.bucket_name
