"""User manager handling bcrypt hashing and verification."""

import uuid

import bcrypt
from django.contrib.auth.base_user import BaseUserManager


class UserManager(BaseUserManager):
    """Create operators with bcrypt password hashes."""

    use_in_migrations = True

    def create_user(self, login: str, email: str, password: str | None = None, **extra_fields):
        """Create an operator; ``role`` must be passed in ``extra_fields``."""
        if not login:
            raise ValueError("The login must be set")
        if password is None:
            raise ValueError("Password must be provided")
        extra_fields.setdefault("is_superuser", False)
        user = self.model(id=uuid.uuid4(), login=login, email=self.normalize_email(email), **extra_fields)
        user.password_hash = self.hash_password(password)
        user.save(using=self._db)
        return user

    def create_superuser(self, login: str, email: str, password: str, **extra_fields):
        extra_fields["is_superuser"] = True
        extra_fields.setdefault("is_active", True)
        return self.create_user(login, email, password, **extra_fields)

    @staticmethod
    def hash_password(raw_password: str) -> str:
        """Hash a raw password using bcrypt and return the utf-8 string."""
        return bcrypt.hashpw(raw_password.encode(), bcrypt.gensalt()).decode()

    @staticmethod
    def verify_password(user, raw_password: str) -> bool:
        if not user.password_hash:
            return False
        return bcrypt.checkpw(raw_password.encode(), user.password_hash.encode("utf-8"))


__all__ = ["UserManager"]
