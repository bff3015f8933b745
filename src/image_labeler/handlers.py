"""AWS Lambda entry points.

Services are built once per container on first use and reused by warm
invocations; they hold immutable wiring only.
"""

from functools import lru_cache
from typing import Any, Dict, List, Mapping

from .api import ApiRequest, ImageApi
from .core.cancellation import CancellationToken
from .core.factories import LoggerFactory, ProcessingPipelineFactory, QueryServiceFactory
from .core.logging_config import get_logger
from .core.models import ObjectCreatedNotification
from .core.services import ProcessingPipeline


@lru_cache(maxsize=None)
def get_pipeline() -> ProcessingPipeline:
    return ProcessingPipelineFactory.create_pipeline()


@lru_cache(maxsize=None)
def get_api() -> ImageApi:
    logger = LoggerFactory.create_logger("image-labeler.api")
    return ImageApi(QueryServiceFactory.create_service(logger=logger), logger)


def parse_s3_event(event: Mapping[str, Any]) -> List[ObjectCreatedNotification]:
    """Extract object-created notifications from an S3 event."""
    return [
        ObjectCreatedNotification.from_s3_record(record)
        for record in event.get("Records", [])
        if "s3" in record
    ]


def handle_s3_event(event: Mapping[str, Any], context: Any = None) -> Dict[str, Any]:
    """
    Process an S3 ObjectCreated event.

    Raises on any failed notification so Lambda reports the invocation as
    failed and the event source redelivers the batch.
    """
    logger = get_logger("image-labeler.handlers")
    notifications = parse_s3_event(event)
    logger.info(f"Received S3 event with {len(notifications)} record(s)")

    cancellation = CancellationToken.from_lambda_context(context)
    results = get_pipeline().process(notifications, cancellation)

    return {
        "processed": sum(1 for r in results if r.success and not r.skipped),
        "skipped": sum(1 for r in results if r.skipped),
    }


def handle_api_request(event: Mapping[str, Any], context: Any = None) -> Dict[str, Any]:
    """Serve one API Gateway request."""
    return get_api().handle(ApiRequest.from_apigw_event(event)).to_apigw()
