"""Main module for the image labeler CLI."""

import argparse
import json
import logging
import sys
from typing import Any, List, Optional

from . import __version__
from .core.exceptions import BatchProcessingError, ImageLabelerError
from .core.factories import ProcessingPipelineFactory, QueryServiceFactory
from .core.logging_config import get_logger
from .core.models import AppConfig, ObjectCreatedNotification


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="image-labeler",
        description="Image Labeler - label, thumbnail and catalog images stored in S3",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run the pipeline for one uploaded object
  image-labeler process --bucket my-bucket --key images/1700000000-image --size 2048

  # List the newest images (S3_BUCKET_NAME must be set)
  image-labeler list --page 1 --limit 10

  # Ask for an upload URL
  image-labeler upload-url --content-type image/png
        """,
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    process_parser = subparsers.add_parser(
        "process", help="Run the processing pipeline for one object"
    )
    process_parser.add_argument("--bucket", required=True, help="Source S3 bucket")
    process_parser.add_argument("--key", required=True, help="Source S3 key")
    process_parser.add_argument(
        "--size", type=int, default=0, help="Object size in bytes, as an event reports it"
    )
    process_parser.add_argument(
        "--policy",
        choices=["fail_fast", "aggregate"],
        default=None,
        help="Batch failure policy (default: BATCH_POLICY or fail_fast)",
    )

    list_parser = subparsers.add_parser("list", help="List processed images, newest first")
    list_parser.add_argument("--page", type=int, default=1, help="Page number (default: 1)")
    list_parser.add_argument("--limit", type=int, default=10, help="Page size (default: 10)")

    get_parser = subparsers.add_parser("get", help="Show the metadata record for one image")
    get_parser.add_argument("key", help="Image key")

    upload_parser = subparsers.add_parser("upload-url", help="Issue a presigned upload URL")
    upload_parser.add_argument(
        "--content-type", required=True, help="image/jpeg or image/png"
    )

    read_parser = subparsers.add_parser("read-url", help="Issue a presigned download URL")
    read_parser.add_argument("key", help="Object key")

    subparsers.add_parser("version", help="Show version information")

    return parser


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, indent=2))


def run_process(args: argparse.Namespace, config: AppConfig) -> int:
    if args.policy:
        config = config.model_copy(update={"batch_policy": args.policy})
    pipeline = ProcessingPipelineFactory.create_pipeline(config=config)
    notification = ObjectCreatedNotification(
        bucket=args.bucket, key=args.key, size=args.size
    )
    try:
        results = pipeline.process([notification])
    except BatchProcessingError as e:
        _print_json([failure.model_dump() for failure in e.failures])
        return 1
    _print_json([result.model_dump() for result in results])
    return 0


def run_query(args: argparse.Namespace, config: AppConfig) -> int:
    service = QueryServiceFactory.create_service(config=config)

    if args.command == "list":
        _print_json(service.list_images(page=args.page, limit=args.limit).to_response())
    elif args.command == "get":
        record = service.lookup(args.key)
        if record is None:
            get_logger("image-labeler.cli").error(f"Image not found: {args.key}")
            return 1
        _print_json(record.model_dump(mode="json"))
    elif args.command == "upload-url":
        _print_json(service.issue_upload_url(args.content_type).model_dump(by_alias=True))
    elif args.command == "read-url":
        _print_json(service.issue_read_url(args.key).model_dump())
    return 0


def main(argv: Optional[List[str]] = None) -> None:
    """
    Entry point for the command-line interface.

    Exits with 0 on success and 1 on any failure.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "version":
        print("Image Labeler CLI")
        print(f"Version {__version__}")
        print("S3 image labeling, thumbnails and signed URLs")
        sys.exit(0)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    logger = get_logger("image-labeler.cli")
    if args.debug:
        logger.setLevel(logging.DEBUG)
        logging.getLogger("image-labeler").setLevel(logging.DEBUG)

    try:
        config = AppConfig.from_env()
        if args.command == "process":
            exit_code = run_process(args, config)
        else:
            exit_code = run_query(args, config)
    except KeyboardInterrupt:
        logger.warning("Interrupted by user.")
        exit_code = 1
    except ImageLabelerError as e:
        logger.error(f"{args.command} failed: {e}")
        exit_code = 1

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
