"""Factory classes for creating configured service instances."""

from typing import Any, Optional

import boto3
from botocore.config import Config

from ..processors import BATCH_PROCESSORS
from .models import AppConfig
from .observability import StructuredLogger
from .protocols import (
    DynamoDBTableProtocol,
    LoggerProtocol,
    RekognitionClientProtocol,
    S3ClientProtocol,
)
from .query import ImageQueryService
from .services import (
    DynamoDBMetadataStore,
    ImageProcessingService,
    ProcessingPipeline,
    RekognitionLabelDetector,
    S3ObjectStore,
)


class LoggerFactory:
    """Factory for creating logger instances."""

    @staticmethod
    def create_logger(name: str = "image-labeler", level: Optional[str] = None) -> LoggerProtocol:
        """Create a configured structured logger."""
        return StructuredLogger(name, level=level)


class AwsClientFactory:
    """Factory for boto3 clients and resources."""

    @staticmethod
    def create_s3_client(**kwargs: Any) -> S3ClientProtocol:
        """Create an S3 client that signs URLs with SigV4."""
        kwargs.setdefault("config", Config(signature_version="s3v4"))
        session = boto3.Session()
        return session.client("s3", **kwargs)  # type: ignore

    @staticmethod
    def create_rekognition_client(**kwargs: Any) -> RekognitionClientProtocol:
        session = boto3.Session()
        return session.client("rekognition", **kwargs)  # type: ignore

    @staticmethod
    def create_table(table_name: str, **kwargs: Any) -> DynamoDBTableProtocol:
        session = boto3.Session()
        return session.resource("dynamodb", **kwargs).Table(table_name)  # type: ignore


class ProcessingPipelineFactory:
    """Factory for creating the complete processing pipeline."""

    @staticmethod
    def create_pipeline(
        config: Optional[AppConfig] = None,
        s3_client: Optional[S3ClientProtocol] = None,
        rekognition_client: Optional[RekognitionClientProtocol] = None,
        table: Optional[DynamoDBTableProtocol] = None,
        logger: Optional[LoggerProtocol] = None,
    ) -> ProcessingPipeline:
        """Create a fully configured processing pipeline."""
        if config is None:
            config = AppConfig.from_env()
        if s3_client is None:
            s3_client = AwsClientFactory.create_s3_client()
        if rekognition_client is None:
            rekognition_client = AwsClientFactory.create_rekognition_client()
        if table is None:
            table = AwsClientFactory.create_table(config.table_name)
        if logger is None:
            logger = LoggerFactory.create_logger("image-labeler.pipeline")

        processing_service = ImageProcessingService(
            object_store=S3ObjectStore(s3_client),
            label_detector=RekognitionLabelDetector(rekognition_client),
            metadata_store=DynamoDBMetadataStore(table),
            config=config,
            logger=logger,
        )

        return ProcessingPipeline(
            processing_service=processing_service,
            batch_processor=BATCH_PROCESSORS[config.batch_policy],
            config=config,
            logger=logger,
        )


class QueryServiceFactory:
    """Factory for creating the query and signing service."""

    @staticmethod
    def create_service(
        config: Optional[AppConfig] = None,
        s3_client: Optional[S3ClientProtocol] = None,
        table: Optional[DynamoDBTableProtocol] = None,
        logger: Optional[LoggerProtocol] = None,
    ) -> ImageQueryService:
        """
        Create a query service.

        Raises:
            ConfigurationError: If no bucket is configured
        """
        if config is None:
            config = AppConfig.from_env()
        config.require_bucket()
        if s3_client is None:
            s3_client = AwsClientFactory.create_s3_client()
        if table is None:
            table = AwsClientFactory.create_table(config.table_name)
        if logger is None:
            logger = LoggerFactory.create_logger("image-labeler.api")

        return ImageQueryService(
            metadata_store=DynamoDBMetadataStore(table),
            object_store=S3ObjectStore(s3_client),
            config=config,
            logger=logger,
        )
