"""Query and signing service: listings, lookups and presigned URLs."""

import threading
import time
from typing import Callable, List, Optional

from .exceptions import SigningError, ValidationError
from .models import AppConfig, DisplayItem, ListPage, MetadataRecord, ReadUrl, UploadTicket
from .observability import LogContext
from .protocols import LoggerProtocol, MetadataStore, ObjectStore

UPLOAD_KEY_PREFIX = "images/"
DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10


class UploadKeyGenerator:
    """
    Generates ``images/<nanosecond timestamp>-image`` keys.

    Keys sort lexicographically in issue order: timestamps have a fixed
    width of 19 digits and never repeat within a process.
    """

    def __init__(self, clock: Callable[[], int] = time.time_ns):
        self._clock = clock
        self._lock = threading.Lock()
        self._last = 0

    def next_key(self) -> str:
        with self._lock:
            timestamp = max(self._clock(), self._last + 1)
            self._last = timestamp
        return f"{UPLOAD_KEY_PREFIX}{timestamp:019d}-image"


class ImageQueryService:
    """Read side of the system plus URL issuance. Writes no state."""

    def __init__(
        self,
        metadata_store: MetadataStore,
        object_store: ObjectStore,
        config: AppConfig,
        logger: LoggerProtocol,
        key_generator: Optional[UploadKeyGenerator] = None,
    ):
        self._metadata_store = metadata_store
        self._object_store = object_store
        self._config = config
        self._bucket = config.require_bucket()
        self._logger = logger
        self._key_generator = key_generator or UploadKeyGenerator()

    def list_images(self, page: int = DEFAULT_PAGE, limit: int = DEFAULT_LIMIT) -> ListPage:
        """
        Newest-first page of records, each with a signed display URL.

        The whole table is scanned and sorted in memory on every call, so the
        cost grows with the total number of records.
        """
        if page < 1:
            raise ValidationError("page must be >= 1")
        if limit < 1:
            raise ValidationError("limit must be > 0")

        records: List[MetadataRecord] = sorted(
            self._metadata_store.scan_all(),
            key=lambda record: record.image_key,
            reverse=True,
        )

        total = len(records)
        start = (page - 1) * limit
        end = min(start + limit, total)
        paged = records[start:end] if start < total else []

        return ListPage(
            items=[self._display_item(record) for record in paged],
            total_count=total,
            page=page,
            limit=limit,
            has_more=end < total,
        )

    def _display_item(self, record: MetadataRecord) -> DisplayItem:
        key = record.display_key
        try:
            url = self._object_store.presign_get(
                self._bucket, key, self._config.read_url_expiry
            )
        except SigningError as e:
            self._logger.error(
                "Failed to presign url for item",
                LogContext(operation="list_images", component="query_service"),
                key=key,
                error=str(e),
            )
            return DisplayItem(record=record)
        return DisplayItem(record=record, url=url)

    def lookup(self, key: str) -> Optional[MetadataRecord]:
        """Point read by image key; None when absent."""
        if not key:
            raise ValidationError("Missing key parameter")
        return self._metadata_store.get(key)

    def issue_upload_url(self, content_type: str) -> UploadTicket:
        """Presigned PUT URL for a freshly generated key."""
        if content_type not in self._config.allowed_content_types:
            raise ValidationError("Only JPEG and PNG images are allowed")

        key = self._key_generator.next_key()
        upload_url = self._object_store.presign_put(
            self._bucket, key, content_type, self._config.upload_url_expiry
        )
        self._logger.info("Issued upload url", key=key, content_type=content_type)
        return UploadTicket(upload_url=upload_url, key=key)

    def issue_read_url(self, key: str) -> ReadUrl:
        """Presigned GET URL for an existing key."""
        if not key:
            raise ValidationError("Missing key parameter")
        url = self._object_store.presign_get(
            self._bucket, key, self._config.read_url_expiry
        )
        return ReadUrl(url=url)
