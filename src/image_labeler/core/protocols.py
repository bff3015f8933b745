"""Protocol definitions for dependency injection and testability."""

from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Optional, Protocol

from .models import Label, MetadataRecord


class S3ClientProtocol(Protocol):
    """Subset of the boto3 S3 client used by the object store."""

    def get_object(self, Bucket: str, Key: str) -> Dict[str, Any]:
        """Get object from S3."""
        ...

    def put_object(
        self, Bucket: str, Key: str, Body: bytes, ContentType: str
    ) -> Dict[str, Any]:
        """Put object to S3."""
        ...

    def generate_presigned_url(
        self, ClientMethod: str, Params: Dict[str, Any], ExpiresIn: int
    ) -> str:
        """Presign a client method call."""
        ...


class RekognitionClientProtocol(Protocol):
    """Subset of the boto3 Rekognition client used by the label detector."""

    def detect_labels(
        self, Image: Dict[str, Any], MaxLabels: int, MinConfidence: float
    ) -> Dict[str, Any]:
        """Detect labels in an image."""
        ...


class DynamoDBTableProtocol(Protocol):
    """Subset of a boto3 DynamoDB ``Table`` resource."""

    def put_item(self, Item: Dict[str, Any]) -> Dict[str, Any]:
        """Write an item, replacing any item with the same key."""
        ...

    def get_item(self, Key: Dict[str, Any]) -> Dict[str, Any]:
        """Read a single item."""
        ...

    def scan(self, **kwargs: Any) -> Dict[str, Any]:
        """Scan one page of the table."""
        ...


class LoggerProtocol(Protocol):
    """Protocol for logging operations."""

    def debug(self, message: str, context: Any = None, **kwargs: Any) -> None:
        """Log debug message."""
        ...

    def info(self, message: str, context: Any = None, **kwargs: Any) -> None:
        """Log info message."""
        ...

    def warning(self, message: str, context: Any = None, **kwargs: Any) -> None:
        """Log warning message."""
        ...

    def error(self, message: str, context: Any = None, **kwargs: Any) -> None:
        """Log error message."""
        ...


class ObjectStore(ABC):
    """Byte blobs by key, plus time-boxed presigned URLs."""

    @abstractmethod
    def get(self, bucket: str, key: str) -> bytes:
        ...

    @abstractmethod
    def put(self, bucket: str, key: str, data: bytes, content_type: str) -> None:
        ...

    @abstractmethod
    def presign_put(
        self, bucket: str, key: str, content_type: str, expires_in: int
    ) -> str:
        ...

    @abstractmethod
    def presign_get(self, bucket: str, key: str, expires_in: int) -> str:
        ...


class LabelDetector(ABC):
    """Vision service returning confidence-filtered labels."""

    @abstractmethod
    def detect(
        self, image_bytes: bytes, max_labels: int, min_confidence: float
    ) -> List[Label]:
        """Return at most ``max_labels`` labels, in the service's order."""
        ...


class MetadataStore(ABC):
    """Key-value store of metadata records keyed by image key."""

    @abstractmethod
    def put(self, record: MetadataRecord) -> None:
        """Write the record, fully replacing any record with the same key."""
        ...

    @abstractmethod
    def get(self, key: str) -> Optional[MetadataRecord]:
        ...

    @abstractmethod
    def scan_all(self) -> Iterable[MetadataRecord]:
        """Every record in the store, in no particular order."""
        ...
