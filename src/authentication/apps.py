"""App configuration for authentication components."""

from django.apps import AppConfig


class AuthenticationConfig(AppConfig):
    """Operator accounts and JWT token handling."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "authentication"
