"""Custom exception handling to enforce the API error envelope."""

import logging
from typing import Any

from django.conf import settings
from django.db import DatabaseError
from rest_framework import status
from rest_framework.exceptions import AuthenticationFailed, NotAuthenticated
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

from access_control.errors import AccessControlError, AccessDenied
from authentication.services import BlocklistUnavailable

logger = logging.getLogger(__name__)

FORBIDDEN_MESSAGE = "You do not have permission to perform this action on this resource."


def error_body(kind: str, message: str) -> dict[str, Any]:
    return {"hasError": True, "kind": kind, "message": message}


def _flatten_message(payload: Any) -> str:
    """Collapse DRF's response.data into one human-readable message."""

    if isinstance(payload, dict):
        if "detail" in payload:
            return str(payload["detail"])
        parts = []
        for field, value in payload.items():
            text = _flatten_message(value)
            parts.append(text if field == "non_field_errors" else f"{field}: {text}")
        return "; ".join(parts)
    if isinstance(payload, list):
        return " ".join(_flatten_message(item) for item in payload)
    return str(payload)


def custom_exception_handler(exc: Exception, context: dict[str, Any]) -> Response | None:
    """Wrap errors in `{ "hasError": true, "kind": ..., "message": ... }`.

    - Access-control failures carry their own kind and HTTP status.
    - Authorization denial is a 403 with a bare `{ "message" }` body.
    - Optionally exposes more detailed auth errors when DEBUG_AUTH_ERRORS is enabled.
    """

    if isinstance(exc, AccessDenied):
        return Response({"message": exc.message}, status=status.HTTP_403_FORBIDDEN)

    if isinstance(exc, AccessControlError):
        return Response(error_body(exc.kind, exc.message), status=exc.status_code)

    # Blocklist connectivity errors are security-critical and must fail-closed
    # with 503.
    if isinstance(exc, BlocklistUnavailable):
        return Response(
            error_body("ServiceUnavailable", "Authentication service unavailable (blocklist)."),
            status=status.HTTP_503_SERVICE_UNAVAILABLE,
        )

    # Treat database errors as a temporary service outage and still respect the
    # error envelope instead of returning Django's HTML 500 page.
    if isinstance(exc, DatabaseError):
        logger.exception("Database error while handling %s", context.get("view").__class__.__name__)
        return Response(
            error_body("ServiceUnavailable", "Service temporarily unavailable."),
            status=status.HTTP_503_SERVICE_UNAVAILABLE,
        )

    response = drf_exception_handler(exc, context)

    if response is None:
        return response

    # Normalize auth-related status codes to 401 regardless of DRF's default
    # mapping.
    if isinstance(exc, (AuthenticationFailed, NotAuthenticated)):
        response.status_code = status.HTTP_401_UNAUTHORIZED

    if response.status_code == status.HTTP_401_UNAUTHORIZED:
        if getattr(settings, "DEBUG_AUTH_ERRORS", False):
            # Surface the specific reason (e.g. "Token has expired").
            message = _flatten_message(response.data)
        else:
            message = (
                "Authentication credentials were not provided or are invalid, "
                "token revoked, or user is inactive."
            )
        response.data = error_body("NotAuthenticated", message)
    elif response.status_code == status.HTTP_403_FORBIDDEN:
        response.data = {"message": FORBIDDEN_MESSAGE}
    elif response.status_code >= 400:
        kind = "ValidationError" if response.status_code == status.HTTP_400_BAD_REQUEST else exc.__class__.__name__
        response.data = error_body(kind, _flatten_message(response.data))

    return response
