"""Image labeler: S3 image labeling pipeline and signed-URL query service."""

__version__ = "0.1.0"
