"""Response helpers and base classes for consistent API envelopes."""

from typing import Any

from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework.viewsets import GenericViewSet


def api_response(payload: Any, status: int = 200) -> Response:
    """Return payload wrapped in the standard envelope.

    All successful JSON responses should use this helper to ensure the
    `{ "payload": ... }` shape the console expects.
    """

    return Response({"payload": payload}, status=status)


def _is_enveloped(data: Any) -> bool:
    return isinstance(data, dict) and set(data) == {"payload"}


class EnvelopeMixin:
    """Mixin to wrap successful responses in the standard envelope."""

    def finalize_response(self, request, response, *args, **kwargs):  # type: ignore[override]
        """Ensure non-error responses include the `{payload}` envelope."""
        if hasattr(response, "data") and response.status_code and response.status_code < 400:
            if response.status_code != 204 and not _is_enveloped(response.data):
                response.data = {"payload": response.data}
        # DRF's APIView/GenericViewSet provide finalize_response; mixin alone doesn't.
        return super().finalize_response(request, response, *args, **kwargs)  # type: ignore[attr-defined]


class BaseAPIView(EnvelopeMixin, APIView):
    """APIView that ensures successful responses use the standard envelope."""


class BaseViewSet(EnvelopeMixin, GenericViewSet):
    """GenericViewSet variant that wraps successful responses in the envelope."""
