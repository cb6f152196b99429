"""Bridge between ``JWTAuthMiddleware`` and DRF authentication.

The middleware has already validated the bearer token and attached the
operator to the Django request; DRF only needs to see that user.
"""

from typing import Any, Optional, Tuple

from django.contrib.auth.models import AnonymousUser
from rest_framework.authentication import BaseAuthentication


class MiddlewareUserAuthentication(BaseAuthentication):
    """Expose ``request._request.user`` (set by middleware) to DRF."""

    def authenticate(self, request) -> Optional[Tuple[Any, None]]:
        django_request = getattr(request, "_request", None)
        if django_request is None:
            return None

        user = getattr(django_request, "user", None)
        if user is None or isinstance(user, AnonymousUser):
            return None
        if not getattr(user, "is_authenticated", False):
            return None

        return user, None

    def authenticate_header(self, request) -> str:
        # Lets DRF answer 401 (not 403) when credentials are missing.
        return "Bearer"


__all__ = ["MiddlewareUserAuthentication"]
