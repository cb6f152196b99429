"""Middleware to authenticate requests via JWT and Redis blocklist."""

import logging
from typing import Optional

from django.contrib.auth.models import AnonymousUser
from django.core.exceptions import ValidationError
from django.http import JsonResponse
from django.utils.deprecation import MiddlewareMixin
from rest_framework import status
from rest_framework.exceptions import AuthenticationFailed

from authentication.models import User
from authentication.services import ACCESS, BlocklistUnavailable, TokenService

logger = logging.getLogger(__name__)

UNAUTHORIZED_MESSAGE = (
    "Authentication credentials were not provided or are invalid, token revoked, or user is inactive."
)


class JWTAuthMiddleware(MiddlewareMixin):
    """Decode access JWT, check blocklist and token version, attach request.user."""

    def process_request(self, request):  # type: ignore[override]
        auth_header = request.META.get("HTTP_AUTHORIZATION", "")
        if not auth_header or not auth_header.startswith("Bearer "):
            request.user = AnonymousUser()
            return None

        token = auth_header.split(" ", 1)[1]

        try:
            payload = TokenService.decode_token(token, expected_type=ACCESS)
            jti = payload.get("jti")
            if not jti or TokenService.is_token_blocked(jti):
                return _unauthorized()

            user = self._get_user(payload.get("sub"))
            if not user or not user.is_active:
                return _unauthorized()
            if not TokenService.is_current(payload, user):
                return _unauthorized()

            request.user = user
            return None

        except AuthenticationFailed:
            return _unauthorized()
        except BlocklistUnavailable:
            logger.error("Token blocklist unavailable; rejecting request to %s", request.path)
            return _service_unavailable()

    @staticmethod
    def _get_user(user_id: Optional[str]) -> Optional[User]:
        if not user_id:
            return None
        try:
            return User.objects.select_related("role").get(id=user_id)
        except (User.DoesNotExist, ValidationError):
            return None


def _unauthorized() -> JsonResponse:
    return JsonResponse(
        {"hasError": True, "kind": "NotAuthenticated", "message": UNAUTHORIZED_MESSAGE},
        status=status.HTTP_401_UNAUTHORIZED,
    )


def _service_unavailable() -> JsonResponse:
    return JsonResponse(
        {
            "hasError": True,
            "kind": "ServiceUnavailable",
            "message": "Authentication service unavailable (blocklist).",
        },
        status=status.HTTP_503_SERVICE_UNAVAILABLE,
    )


__all__ = ["JWTAuthMiddleware"]
