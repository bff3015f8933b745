"""HTTP-style request boundary for the query and signing service."""

import base64
import json
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from .core.exceptions import (
    NotFoundError,
    SigningError,
    ValidationError,
)
from .core.observability import LogContext
from .core.protocols import LoggerProtocol
from .core.query import DEFAULT_LIMIT, DEFAULT_PAGE, ImageQueryService

ROUTE_PREFIX = "/api"
JSON_HEADERS = {"Content-Type": "application/json"}


class ApiRequest(BaseModel):
    """Method, path, query parameters and raw body of one request."""

    method: str
    path: str
    query: Dict[str, str] = Field(default_factory=dict)
    body: str = ""

    @classmethod
    def from_apigw_event(cls, event: Mapping[str, Any]) -> "ApiRequest":
        """Build from an API Gateway HTTP API (v2) or REST API (v1) event."""
        http = event.get("requestContext", {}).get("http", {})
        method = http.get("method") or event.get("httpMethod", "")
        path = event.get("rawPath") or event.get("path", "")
        body = event.get("body") or ""
        if body and event.get("isBase64Encoded"):
            try:
                body = base64.b64decode(body).decode("utf-8")
            except ValueError:
                # Left encoded; the route handler rejects it as an invalid body
                pass
        return cls(
            method=method.upper(),
            path=path,
            query=event.get("queryStringParameters") or {},
            body=body,
        )


class ApiResponse(BaseModel):
    """Status code, headers and JSON body text."""

    status_code: int
    headers: Dict[str, str] = Field(default_factory=lambda: dict(JSON_HEADERS))
    body: str = ""

    @classmethod
    def with_json(cls, status_code: int, payload: Any) -> "ApiResponse":
        return cls(status_code=status_code, body=json.dumps(payload))

    @classmethod
    def error(cls, status_code: int, message: str) -> "ApiResponse":
        return cls.with_json(status_code, {"error": message})

    def to_apigw(self) -> Dict[str, Any]:
        return {
            "statusCode": self.status_code,
            "headers": self.headers,
            "body": self.body,
        }


class UploadRequest(BaseModel):
    """Body of ``POST /upload``."""

    model_config = ConfigDict(populate_by_name=True)

    content_type: str = Field(default="", alias="contentType")


def parse_positive_int(value: Optional[str], default: int) -> int:
    """Parse a query parameter; anything but a positive integer gives ``default``."""
    if not value:
        return default
    try:
        parsed = int(value)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


Handler = Callable[[ApiRequest], ApiResponse]


class ImageApi:
    """Routes requests to the query service and maps errors to responses."""

    def __init__(self, service: ImageQueryService, logger: LoggerProtocol):
        self._service = service
        self._logger = logger
        self._routes: Dict[Tuple[str, str], Tuple[Handler, str]] = {
            ("GET", "/images"): (self._get_images, "Failed to fetch images"),
            ("POST", "/upload"): (self._upload, "Failed to generate upload URL"),
            ("GET", "/image-url"): (self._get_image_url, "Failed to generate image URL"),
        }

    def handle(self, request: ApiRequest) -> ApiResponse:
        log_context = LogContext(operation="handle_request", component="image_api")
        self._logger.info(
            "Received request", log_context, method=request.method, path=request.path
        )

        path = request.path
        if path.startswith(ROUTE_PREFIX) and len(path) > len(ROUTE_PREFIX):
            path = path[len(ROUTE_PREFIX):]

        if request.method == "OPTIONS":
            return ApiResponse(status_code=200)

        route = self._routes.get((request.method, path))
        if route is None:
            return ApiResponse.error(404, "Not Found")

        handler, failure_message = route
        try:
            return handler(request)
        except ValidationError as e:
            return ApiResponse.error(400, str(e))
        except NotFoundError as e:
            return ApiResponse.error(404, str(e))
        except SigningError as e:
            self._logger.error(
                "Failed to presign url", log_context.with_operation(path), error=str(e)
            )
            return ApiResponse.error(500, failure_message)
        except Exception as e:
            # Store failures and unreadable items alike end as a JSON 500
            self._logger.error(
                failure_message,
                log_context.with_operation(path),
                error=str(e),
                error_type=type(e).__name__,
            )
            return ApiResponse.error(500, failure_message)

    def _get_images(self, request: ApiRequest) -> ApiResponse:
        key = request.query.get("key")
        if key:
            record = self._service.lookup(key)
            if record is None:
                raise NotFoundError(f"Image not found: {key}")
            return ApiResponse.with_json(200, {"item": record.model_dump(mode="json")})

        page = parse_positive_int(request.query.get("page"), DEFAULT_PAGE)
        limit = parse_positive_int(request.query.get("limit"), DEFAULT_LIMIT)
        listing = self._service.list_images(page=page, limit=limit)
        return ApiResponse.with_json(200, listing.to_response())

    def _upload(self, request: ApiRequest) -> ApiResponse:
        try:
            upload_request = UploadRequest.model_validate_json(request.body or "{}")
        except PydanticValidationError as e:
            raise ValidationError("Invalid request body") from e

        ticket = self._service.issue_upload_url(upload_request.content_type)
        return ApiResponse.with_json(200, ticket.model_dump(by_alias=True))

    def _get_image_url(self, request: ApiRequest) -> ApiResponse:
        read_url = self._service.issue_read_url(request.query.get("key", ""))
        return ApiResponse.with_json(200, read_url.model_dump())
