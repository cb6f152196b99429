"""Serializers for authentication flows (register, login, profile)."""

from typing import cast

from django.conf import settings
from django.contrib.auth import get_user_model
from rest_framework import serializers
from rest_framework.exceptions import AuthenticationFailed

from access_control.models import Role
from .managers import UserManager

User = get_user_model()


class RegisterSerializer(serializers.Serializer):
    """Validate and create an operator with the default role."""

    login = serializers.CharField(max_length=150)
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True, min_length=8)
    repeat_password = serializers.CharField(write_only=True, min_length=8)

    @staticmethod
    def validate_login(value):
        if User.objects.filter(login=value).exists():
            raise serializers.ValidationError("Login already in use")
        return value

    @staticmethod
    def validate_email(value):
        if User.objects.filter(email=value).exists():
            raise serializers.ValidationError("Email already in use")
        return value

    def validate(self, attrs):
        if attrs.get("password") != attrs.get("repeat_password"):
            raise serializers.ValidationError("Passwords do not match")
        return attrs

    def create(self, validated_data):
        validated_data.pop("repeat_password")
        role = Role.objects.filter(name=settings.RBAC_DEFAULT_ROLE).first()
        if role is None:
            raise serializers.ValidationError(f"Default role '{settings.RBAC_DEFAULT_ROLE}' not configured")
        manager = cast(UserManager, User.objects)
        return manager.create_user(role=role, **validated_data)


class LoginSerializer(serializers.Serializer):
    """Authenticate an operator via login/password using bcrypt verification."""

    login = serializers.CharField()
    password = serializers.CharField(write_only=True)

    def validate(self, attrs):
        try:
            user = User.objects.select_related("role").get(login=attrs.get("login"))
        except User.DoesNotExist:
            raise AuthenticationFailed("Invalid credentials")

        if not user.is_active:
            raise AuthenticationFailed("User is inactive")

        if not UserManager.verify_password(user, attrs.get("password")):
            raise AuthenticationFailed("Invalid credentials")

        attrs["user"] = user
        return attrs


class UserDetailSerializer(serializers.ModelSerializer):
    """Read-only operator profile."""

    role = serializers.CharField(source="role.name")

    class Meta:
        model = User
        fields = ["id", "login", "email", "role"]
        read_only_fields = fields
