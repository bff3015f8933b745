"""Testing utilities and fakes for the image labeler."""

from .fakes import (
    FakeDynamoDBTable,
    FakeLogger,
    FakeRekognitionClient,
    FakeS3Client,
    S3Bucket,
    S3Object,
    client_error,
    create_test_image,
    setup_test_environment,
)

__all__ = [
    "FakeS3Client",
    "FakeRekognitionClient",
    "FakeDynamoDBTable",
    "FakeLogger",
    "S3Object",
    "S3Bucket",
    "client_error",
    "create_test_image",
    "setup_test_environment",
]
