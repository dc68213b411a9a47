"""
Custom exception classes and error handling.

Provides consistent error responses across the API.

Webhook endpoints answer vendors with ``{"error": "..."}`` bodies; the
``WebhookError`` family carries the status code for each failure class.
"""
from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse
from typing import Optional, Dict, Any


class APIException(HTTPException):
    """Base API exception with consistent structure."""

    def __init__(
        self,
        status_code: int,
        detail: str,
        error_code: Optional[str] = None,
        headers: Optional[Dict[str, Any]] = None
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)
        self.error_code = error_code


class NotFoundError(APIException):
    """Resource not found."""

    def __init__(self, resource: str, identifier: str):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"{resource} not found: {identifier}",
            error_code="NOT_FOUND"
        )


class ForbiddenError(APIException):
    """Access denied."""

    def __init__(self, detail: str = "Access denied"):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=detail,
            error_code="FORBIDDEN"
        )


class ServiceUnavailableError(APIException):
    """A required external service is not configured."""

    def __init__(self, detail: str = "Service unavailable"):
        super().__init__(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=detail,
            error_code="SERVICE_UNAVAILABLE"
        )


class UpstreamError(APIException):
    """A vendor API call failed."""

    def __init__(self, detail: str = "Upstream provider error"):
        super().__init__(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=detail,
            error_code="UPSTREAM_ERROR"
        )


class WebhookError(APIException):
    """Base class for failures reported back to a webhook sender."""

    def __init__(self, status_code: int, detail: str, error_code: str, extra: Optional[Dict[str, Any]] = None):
        super().__init__(status_code=status_code, detail=detail, error_code=error_code)
        self.extra = extra or {}


class WebhookAuthenticationError(WebhookError):
    """Missing or invalid signature. Terminal."""

    def __init__(self, detail: str = "Invalid signature"):
        super().__init__(status.HTTP_401_UNAUTHORIZED, detail, "AUTHENTICATION_FAILURE")


class WebhookPayloadError(WebhookError):
    """Malformed JSON or a payload that fails schema validation. Terminal."""

    def __init__(self, detail: str = "Malformed payload"):
        super().__init__(status.HTTP_400_BAD_REQUEST, detail, "PARSE_FAILURE")


class WebhookPersistenceError(WebhookError):
    """
    One or more records could not be stored.

    Reported as 500 so the vendor redelivers; already-stored records are
    deduplicated on redelivery.
    """

    def __init__(self, detail: str = "Webhook processing failed", failed: int = 0):
        super().__init__(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail,
            "PERSISTENCE_FAILURE",
            extra={"failed": failed} if failed else None,
        )


class WebhookNotConfiguredError(WebhookError):
    """Provider integration is disabled on this deployment."""

    def __init__(self, detail: str):
        super().__init__(status.HTTP_503_SERVICE_UNAVAILABLE, detail, "NOT_CONFIGURED")


class VendorAPIError(Exception):
    """Non-2xx response from a vendor REST API."""

    def __init__(self, provider: str, status_code: int, body: str):
        super().__init__(f"{provider} API error: {status_code} - {body}")
        self.provider = provider
        self.status_code = status_code
        self.body = body


async def webhook_exception_handler(request: Request, exc: WebhookError) -> JSONResponse:
    content: Dict[str, Any] = {"error": exc.detail}
    content.update(exc.extra)
    return JSONResponse(status_code=exc.status_code, content=content)
