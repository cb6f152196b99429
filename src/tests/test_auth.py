"""Operator authentication flows (register, login, refresh, logout, profile)."""

from __future__ import annotations

import time
from unittest import mock

import jwt
import redis
from django.conf import settings
from django.db import DatabaseError
from django.test import TestCase
from rest_framework.test import APIClient

from authentication.services import BlocklistUnavailable, TokenService
from tests.utils import FakeRedisMixin, create_user, seed_rbac_basics


class AuthFlowTests(FakeRedisMixin, TestCase):
    """End-to-end tests covering auth endpoints and token revocation."""

    @classmethod
    def setUpTestData(cls):
        cls.roles = seed_rbac_basics()
        cls.password = "StrongPass123"
        cls.user = create_user("alex", cls.password, cls.roles["User"])

    def setUp(self):
        self.api_client: APIClient = APIClient()

    def _login(self) -> dict:
        return self.api_client.post(
            "/auth/login/",
            {"login": self.user.login, "password": self.password},
            format="json",
        ).json()["payload"]

    def test_register_assigns_default_role(self):
        payload = {
            "login": "newbie",
            "email": "new@example.com",
            "password": "NewPass123!",
            "repeat_password": "NewPass123!",
        }
        response = self.api_client.post("/auth/register/", payload, format="json")
        body = response.json()

        self.assertEqual(response.status_code, 201)
        self.assertEqual(body["payload"]["login"], "newbie")
        self.assertEqual(body["payload"]["role"], settings.RBAC_DEFAULT_ROLE)

    def test_register_password_mismatch(self):
        payload = {
            "login": "newbie",
            "email": "new2@example.com",
            "password": "Password123",
            "repeat_password": "Mismatch123",
        }
        response = self.api_client.post("/auth/register/", payload, format="json")
        body = response.json()

        self.assertEqual(response.status_code, 400)
        self.assertTrue(body["hasError"])
        self.assertIn("Passwords do not match", body["message"])

    def test_register_duplicate_login(self):
        payload = {
            "login": "alex",
            "email": "other@example.com",
            "password": "Password123",
            "repeat_password": "Password123",
        }
        response = self.api_client.post("/auth/register/", payload, format="json")
        self.assertEqual(response.status_code, 400)

    def test_login_success_returns_tokens(self):
        response = self.api_client.post(
            "/auth/login/",
            {"login": self.user.login, "password": self.password},
            format="json",
        )
        body = response.json()

        self.assertEqual(response.status_code, 200)
        self.assertIn("accessToken", body["payload"])
        self.assertIn("refreshToken", body["payload"])

    def test_login_invalid_credentials_401(self):
        response = self.api_client.post(
            "/auth/login/",
            {"login": self.user.login, "password": "wrongpass"},
            format="json",
        )
        body = response.json()

        self.assertEqual(response.status_code, 401)
        self.assertTrue(body["hasError"])
        self.assertNotIn("payload", body)

    def test_login_inactive_user_401(self):
        self.user.is_active = False
        self.user.save(update_fields=["is_active"])

        response = self.api_client.post(
            "/auth/login/",
            {"login": self.user.login, "password": self.password},
            format="json",
        )
        self.assertEqual(response.status_code, 401)

    def test_me_returns_profile_with_role(self):
        tokens = self._login()
        self.api_client.credentials(HTTP_AUTHORIZATION=f"Bearer {tokens['accessToken']}")

        response = self.api_client.get("/auth/me/")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["payload"]["role"], "User")

    def test_refresh_with_valid_refresh_token(self):
        tokens = self._login()

        response = self.api_client.post(
            "/auth/refresh/", {"refreshToken": tokens["refreshToken"]}, format="json"
        )
        body = response.json()

        self.assertEqual(response.status_code, 200)
        self.assertNotEqual(body["payload"]["refreshToken"], tokens["refreshToken"])

    def test_refresh_token_is_single_use(self):
        tokens = self._login()
        self.api_client.post("/auth/refresh/", {"refreshToken": tokens["refreshToken"]}, format="json")

        response = self.api_client.post(
            "/auth/refresh/", {"refreshToken": tokens["refreshToken"]}, format="json"
        )
        self.assertEqual(response.status_code, 401)

    def test_refresh_with_access_token_rejected(self):
        tokens = self._login()

        response = self.api_client.post(
            "/auth/refresh/", {"refreshToken": tokens["accessToken"]}, format="json"
        )
        self.assertEqual(response.status_code, 401)

    def test_logout_revokes_every_token(self):
        """Logout bumps the token version, so tokens from other sessions die too."""
        first = self._login()
        second = self._login()

        client = APIClient()
        client.credentials(HTTP_AUTHORIZATION=f"Bearer {first['accessToken']}")
        self.assertEqual(client.post("/auth/logout/").status_code, 204)

        other = APIClient()
        other.credentials(HTTP_AUTHORIZATION=f"Bearer {second['accessToken']}")
        self.assertEqual(other.get("/auth/me/").status_code, 401)
        self.assertEqual(client.get("/auth/me/").status_code, 401)

        refresh = self.api_client.post(
            "/auth/refresh/", {"refreshToken": second["refreshToken"]}, format="json"
        )
        self.assertEqual(refresh.status_code, 401)

    def test_logout_without_token_is_401(self):
        self.assertEqual(self.api_client.post("/auth/logout/").status_code, 401)

    def test_logout_redis_down_returns_503(self):
        """If Redis is unavailable during logout, the API should fail closed."""
        tokens = self._login()
        self.api_client.credentials(HTTP_AUTHORIZATION=f"Bearer {tokens['accessToken']}")

        with mock.patch.object(
                TokenService,
                "block_token",
                side_effect=BlocklistUnavailable("Redis unavailable while blocklisting"),
        ):
            response = self.api_client.post("/auth/logout/")

        body = response.json()
        self.assertEqual(response.status_code, 503)
        self.assertTrue(body["hasError"])

    def test_blocklist_outage_on_request_returns_503(self):
        """A Redis error while checking the blocklist rejects the request."""
        tokens = self._login()
        self.api_client.credentials(HTTP_AUTHORIZATION=f"Bearer {tokens['accessToken']}")

        with mock.patch.object(self.fake_redis, "get", side_effect=redis.ConnectionError("down")):
            response = self.api_client.get("/auth/me/")

        self.assertEqual(response.status_code, 503)
        self.assertEqual(response.json()["kind"], "ServiceUnavailable")

    def test_tokens_carry_current_version(self):
        tokens = self._login()
        claims = TokenService.decode_token(tokens["accessToken"], expected_type="access")

        self.assertEqual(claims["ver"], self.user.token_version)
        self.assertEqual(claims["role"], "User")
        self.assertTrue(TokenService.is_current(claims, self.user))

    def test_expired_refresh_token_returns_401(self):
        now = int(time.time())
        payload = {
            "sub": str(self.user.id),
            "jti": "expired-jti",
            "exp": now - 60,
            "iat": now - 120,
            "role": self.user.role.name,
            "type": "refresh",
            "ver": self.user.token_version,
        }
        expired_refresh = jwt.encode(payload, settings.SECRET_KEY, algorithm=TokenService.ALGORITHM)

        response = self.api_client.post("/auth/refresh/", {"refreshToken": expired_refresh}, format="json")

        self.assertEqual(response.status_code, 401)
        self.assertTrue(response.json()["hasError"])

    def test_inactive_user_token_is_rejected(self):
        tokens = self._login()
        self.user.is_active = False
        self.user.save(update_fields=["is_active"])

        self.api_client.credentials(HTTP_AUTHORIZATION=f"Bearer {tokens['accessToken']}")
        self.assertEqual(self.api_client.post("/rights/evaluate", {"roleName": "User"}, format="json").status_code, 401)

    def test_refresh_when_database_unavailable_returns_503(self):
        tokens = self._login()

        with mock.patch("authentication.views._get_active_user", side_effect=DatabaseError("DB down")):
            response = self.api_client.post(
                "/auth/refresh/", {"refreshToken": tokens["refreshToken"]}, format="json"
            )

        body = response.json()
        self.assertEqual(response.status_code, 503)
        self.assertEqual(body["kind"], "ServiceUnavailable")
