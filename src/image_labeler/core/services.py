"""AWS-backed collaborators and the image processing services."""

import logging
import time
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence

from .cancellation import CancellationToken
from .error_handling import BatchOperationContextManager, with_error_handling
from .exceptions import (
    BatchProcessingError,
    ImageLabelerError,
    MalformedRecordError,
    OperationCancelledError,
    SigningError,
)
from .models import (
    AppConfig,
    Label,
    MetadataRecord,
    ObjectCreatedNotification,
    ProcessingResult,
    utc_now,
)
from .observability import LogContext
from .protocols import (
    DynamoDBTableProtocol,
    LabelDetector,
    LoggerProtocol,
    MetadataStore,
    ObjectStore,
    RekognitionClientProtocol,
    S3ClientProtocol,
)
from .thumbnails import THUMBNAIL_CONTENT_TYPE, is_thumbnail_key, resize, thumbnail_key_for

logger = logging.getLogger(__name__)


class S3ObjectStore(ObjectStore):
    """Object store backed by a boto3 S3 client."""

    def __init__(self, s3_client: S3ClientProtocol):
        self._s3_client = s3_client

    @with_error_handling
    def get(self, bucket: str, key: str) -> bytes:
        response = self._s3_client.get_object(Bucket=bucket, Key=key)
        return response["Body"].read()

    @with_error_handling
    def put(self, bucket: str, key: str, data: bytes, content_type: str) -> None:
        self._s3_client.put_object(
            Bucket=bucket, Key=key, Body=data, ContentType=content_type
        )

    @with_error_handling(aws_error=SigningError)
    def presign_put(
        self, bucket: str, key: str, content_type: str, expires_in: int
    ) -> str:
        return self._s3_client.generate_presigned_url(
            ClientMethod="put_object",
            Params={"Bucket": bucket, "Key": key, "ContentType": content_type},
            ExpiresIn=expires_in,
        )

    @with_error_handling(aws_error=SigningError)
    def presign_get(self, bucket: str, key: str, expires_in: int) -> str:
        return self._s3_client.generate_presigned_url(
            ClientMethod="get_object",
            Params={"Bucket": bucket, "Key": key},
            ExpiresIn=expires_in,
        )


class RekognitionLabelDetector(LabelDetector):
    """Label detector backed by Amazon Rekognition ``DetectLabels``."""

    def __init__(self, rekognition_client: RekognitionClientProtocol):
        self._client = rekognition_client

    @with_error_handling
    def detect(
        self, image_bytes: bytes, max_labels: int, min_confidence: float
    ) -> List[Label]:
        response = self._client.detect_labels(
            Image={"Bytes": image_bytes},
            MaxLabels=max_labels,
            MinConfidence=min_confidence,
        )
        return [
            Label(name=label["Name"], confidence=float(label["Confidence"]))
            for label in response.get("Labels", [])
        ]


class DynamoDBMetadataStore(MetadataStore):
    """Metadata store backed by a DynamoDB table keyed on ``image_key``."""

    def __init__(self, table: DynamoDBTableProtocol):
        self._table = table

    @with_error_handling
    def put(self, record: MetadataRecord) -> None:
        self._table.put_item(Item=record.to_item())

    @with_error_handling
    def get(self, key: str) -> Optional[MetadataRecord]:
        response = self._table.get_item(Key={"image_key": key})
        item = response.get("Item")
        if item is None:
            return None
        return MetadataRecord.from_item(item)

    @with_error_handling
    def scan_all(self) -> List[MetadataRecord]:
        """
        Read the whole table, following ``LastEvaluatedKey`` page by page.

        Items that cannot be read as records are logged and left out.
        """
        return list(self._scan_items())

    def _scan_items(self) -> Iterator[MetadataRecord]:
        kwargs: Dict[str, Any] = {}
        while True:
            page = self._table.scan(**kwargs)
            for item in page.get("Items", []):
                try:
                    yield MetadataRecord.from_item(item)
                except MalformedRecordError as e:
                    logger.warning(f"Skipping metadata item: {e}")
            last_key = page.get("LastEvaluatedKey")
            if not last_key:
                return
            kwargs["ExclusiveStartKey"] = last_key


class ImageProcessingService:
    """
    Runs the per-notification steps:
    recursion guard, download, label detection, thumbnail, metadata write.
    """

    def __init__(
        self,
        object_store: ObjectStore,
        label_detector: LabelDetector,
        metadata_store: MetadataStore,
        config: AppConfig,
        logger: LoggerProtocol,
    ):
        self._object_store = object_store
        self._label_detector = label_detector
        self._metadata_store = metadata_store
        self._config = config
        self._logger = logger

    def process_notification(
        self,
        notification: ObjectCreatedNotification,
        cancellation: Optional[CancellationToken] = None,
    ) -> Optional[MetadataRecord]:
        """
        Materialize the metadata record for one created object.

        Returns:
            The written record, or None when the key is a thumbnail

        Raises:
            RetryableIOError: A store or vision call failed
            FatalInputError: The object cannot be decoded or was rejected
            OperationCancelledError: The cancellation token fired
        """
        cancellation = cancellation or CancellationToken()
        bucket, key = notification.bucket, notification.key
        log_context = LogContext(
            correlation_id=f"img_{key}_{int(time.time() * 1000)}",
            operation="process_notification",
            component="image_processing_service",
        ).with_metadata(bucket=bucket, key=key, size=notification.size)

        if is_thumbnail_key(key, self._config.thumbnail_prefix):
            self._logger.info("Skipping thumbnail object", log_context)
            return None

        step = "download"
        try:
            cancellation.raise_if_cancelled(step)
            self._logger.debug("Downloading image", log_context.with_operation(step))
            image_bytes = self._object_store.get(bucket, key)
            self._logger.info(
                "Downloaded image",
                log_context.with_operation(step),
                bytes_downloaded=len(image_bytes),
            )

            step = "detect_labels"
            cancellation.raise_if_cancelled(step)
            labels = self._label_detector.detect(
                image_bytes,
                max_labels=self._config.max_labels,
                min_confidence=self._config.min_confidence,
            )
            self._logger.info(
                "Detected labels",
                log_context.with_operation(step),
                label_count=len(labels),
            )

            step = "generate_thumbnail"
            cancellation.raise_if_cancelled(step)
            thumbnail_bytes = resize(image_bytes, self._config.thumbnail_width)
            thumbnail_key = thumbnail_key_for(key, self._config.thumbnail_prefix)

            step = "upload_thumbnail"
            cancellation.raise_if_cancelled(step)
            self._object_store.put(
                bucket, thumbnail_key, thumbnail_bytes, THUMBNAIL_CONTENT_TYPE
            )
            self._logger.info(
                "Uploaded thumbnail",
                log_context.with_operation(step),
                thumbnail_key=thumbnail_key,
            )

            step = "save_metadata"
            cancellation.raise_if_cancelled(step)
            record = MetadataRecord(
                image_key=key,
                bucket_name=bucket,
                image_size=notification.size,
                processed_at=utc_now(),
                thumbnail_key=thumbnail_key,
                detected_labels=labels,
            )
            self._metadata_store.put(record)
        except OperationCancelledError:
            self._logger.warning("Processing cancelled", log_context.with_operation(step))
            raise
        except ImageLabelerError as e:
            if cancellation.cancelled:
                raise OperationCancelledError(
                    f"Invocation cancelled during {step}"
                ) from e
            self._logger.error(
                f"Failed to {step.replace('_', ' ')}",
                log_context.with_operation(step),
                error=str(e),
                error_type=type(e).__name__,
            )
            raise

        self._logger.info(
            "Successfully processed image",
            log_context,
            labels_saved=len(labels),
        )
        return record

    def process(
        self,
        notification: ObjectCreatedNotification,
        cancellation: Optional[CancellationToken] = None,
    ) -> ProcessingResult:
        """Process one notification and report the outcome without raising."""
        start_time = time.time()
        result = ProcessingResult(key=notification.key)
        try:
            record = self.process_notification(notification, cancellation)
        except ImageLabelerError as e:
            result.success = False
            result.error = str(e)
            result.error_type = type(e).__name__
            result.retryable = e.retryable
        else:
            result.success = True
            result.skipped = record is None
            result.thumbnail_key = record.thumbnail_key if record else ""
        result.processing_time = time.time() - start_time
        return result


BatchProcessFunction = Callable[..., List[ProcessingResult]]


class ProcessingPipeline:
    """Entry point for a batch of object-created notifications."""

    def __init__(
        self,
        processing_service: ImageProcessingService,
        batch_processor: "BatchProcessFunction",
        config: AppConfig,
        logger: LoggerProtocol,
    ):
        self._processing_service = processing_service
        self._batch_processor = batch_processor
        self._config = config
        self._logger = logger

    def process(
        self,
        batch: Sequence[ObjectCreatedNotification],
        cancellation: Optional[CancellationToken] = None,
    ) -> List[ProcessingResult]:
        """
        Process a batch with the configured policy.

        Raises:
            BatchProcessingError: If any notification failed; the upstream
                delivery system is expected to redeliver the batch.
        """
        cancellation = cancellation or CancellationToken()

        with BatchOperationContextManager(
            operation_name=f"Notification batch ({self._config.batch_policy})"
        ) as batch_manager:
            self._logger.info(
                f"Processing batch of {len(batch)} notification(s)",
                policy=self._config.batch_policy,
            )
            results = self._batch_processor(
                batch,
                self._processing_service,
                cancellation,
                max_workers=self._config.max_workers,
            )

            failures = [r for r in results if not r.success]
            for failure in failures:
                batch_manager.add_error(
                    f"{failure.error_type}: {failure.error}", failure.key
                )

        if failures:
            raise BatchProcessingError(
                f"{len(failures)} of {len(batch)} notification(s) failed",
                failures,
            )
        return results
