"""
Tests for account endpoints, the bearer-token dependency and credential helpers.
"""

import asyncio
from datetime import datetime, timedelta
from unittest.mock import AsyncMock, MagicMock, patch
from urllib.parse import urlparse, parse_qs

import pytest
from bson import ObjectId
from fastapi.testclient import TestClient

from app.main import app
from app.core import security
from app.core.exceptions import AuthenticationError, BadRequestError, ResourceNotFoundError, ValidationError
from app.services import user_service


client = TestClient(app)

USER_ID = ObjectId()


def _user(**overrides):
    user = {
        "_id": USER_ID,
        "name": "Asha",
        "email": "asha@example.com",
        "isAdmin": False,
        "createdAt": datetime(2026, 1, 1),
    }
    user.update(overrides)
    return user


def _users_collection(**methods):
    collection = MagicMock()
    for name, value in methods.items():
        setattr(collection, name, AsyncMock(return_value=value))
    return collection


class TestSecurityHelpers:

    def test_password_hash_verifies(self):
        hashed = security.hash_password("secret123")
        assert hashed != "secret123"
        assert security.verify_password("secret123", hashed)
        assert not security.verify_password("wrong", hashed)

    def test_verify_password_rejects_non_bcrypt_value(self):
        assert not security.verify_password("secret123", "plain-text")
        assert not security.verify_password("secret123", None)

    def test_access_token_carries_user_id(self):
        token = security.create_access_token(str(USER_ID))
        assert security.decode_access_token(token) == str(USER_ID)

    def test_expired_token_rejected(self):
        token = security.create_access_token(str(USER_ID), expires_days=-1)
        with pytest.raises(AuthenticationError) as exc_info:
            security.decode_access_token(token)
        assert exc_info.value.message == "Not authorized, token failed"

    def test_tampered_token_rejected(self):
        token = security.create_access_token(str(USER_ID))
        with pytest.raises(AuthenticationError):
            security.decode_access_token(token[:-2] + "xx")

    def test_reset_token_digest(self):
        raw, digest = security.generate_reset_token()
        assert raw != digest
        assert security.hash_reset_token(raw) == digest


class TestAuthEndpoints:

    def test_register_returns_201_with_token(self):
        response_body = {
            "_id": str(USER_ID),
            "name": "Asha",
            "email": "asha@example.com",
            "isAdmin": False,
            "token": "tok",
        }
        with patch.object(user_service, "register_user", AsyncMock(return_value=response_body)) as mock_register:
            response = client.post(
                "/api/auth/register",
                json={"name": "Asha", "email": "asha@example.com", "password": "secret123"},
            )

        assert response.status_code == 201
        assert response.json() == response_body
        mock_register.assert_awaited_once_with("Asha", "asha@example.com", "secret123")

    def test_register_existing_user_returns_400(self):
        with patch.object(user_service, "register_user", AsyncMock(side_effect=BadRequestError("User already exists"))):
            response = client.post(
                "/api/auth/register",
                json={"name": "Asha", "email": "asha@example.com", "password": "secret123"},
            )

        assert response.status_code == 400
        assert response.json()["error"] == "User already exists"

    def test_register_rejects_malformed_email(self):
        response = client.post(
            "/api/auth/register",
            json={"name": "Asha", "email": "not-an-email", "password": "secret123"},
        )
        assert response.status_code == 422
        assert response.json()["code"] == "VALIDATION_ERROR"

    def test_login_bad_credentials_returns_401(self):
        with patch.object(user_service, "authenticate_user", AsyncMock(side_effect=AuthenticationError("Invalid email or password"))):
            response = client.post(
                "/api/auth/login",
                json={"email": "asha@example.com", "password": "nope"},
            )

        assert response.status_code == 401
        assert response.json()["error"] == "Invalid email or password"

    def test_forgot_password_returns_reset_url(self):
        with patch.object(user_service, "request_password_reset", AsyncMock(return_value="http://shop/reset-password.html?token=abc")):
            response = client.post("/api/auth/forgot-password", json={"email": "asha@example.com"})

        assert response.status_code == 200
        assert response.json() == {
            "message": "Password reset link sent",
            "resetUrl": "http://shop/reset-password.html?token=abc",
        }

    def test_forgot_password_unknown_email_returns_404(self):
        with patch.object(user_service, "request_password_reset", AsyncMock(side_effect=ResourceNotFoundError("User not found"))):
            response = client.post("/api/auth/forgot-password", json={"email": "ghost@example.com"})

        assert response.status_code == 404
        assert response.json()["error"] == "User not found"

    def test_reset_password_success(self):
        with patch.object(user_service, "reset_password", AsyncMock(return_value=True)):
            response = client.post("/api/auth/reset-password", json={"token": "abc", "password": "newpass1"})

        assert response.status_code == 200
        assert response.json() == {"message": "Password reset successful"}


class TestBearerDependency:

    def test_missing_token(self):
        response = client.get("/api/auth/me")
        assert response.status_code == 401
        assert response.json()["error"] == "Not authorized, no token"

    def test_invalid_token(self):
        response = client.get("/api/auth/me", headers={"Authorization": "Bearer garbage"})
        assert response.status_code == 401
        assert response.json()["error"] == "Not authorized, token failed"

    def test_expired_token(self):
        token = security.create_access_token(str(USER_ID), expires_days=-1)
        with patch("app.api.deps.get_user_by_id", AsyncMock(return_value=_user())) as mock_lookup:
            response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401
        assert response.json()["error"] == "Not authorized, token failed"
        mock_lookup.assert_not_called()

    def test_token_for_deleted_user(self):
        token = security.create_access_token(str(USER_ID))
        with patch("app.api.deps.get_user_by_id", AsyncMock(return_value=None)):
            response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401

    def test_valid_token_returns_profile_without_secrets(self):
        token = security.create_access_token(str(USER_ID))
        user = _user(password="hash", resetPasswordToken="digest")
        with patch("app.api.deps.get_user_by_id", AsyncMock(return_value=user)):
            response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 200
        data = response.json()
        assert data["_id"] == str(USER_ID)
        assert data["email"] == "asha@example.com"
        assert "password" not in data
        assert "resetPasswordToken" not in data


class TestUserService:

    def test_register_lowercases_email_and_hashes_password(self):
        users = _users_collection(find_one=None, insert_one=MagicMock(inserted_id=USER_ID))
        with patch("app.services.user_service.get_users_collection", return_value=users):
            result = asyncio.run(user_service.register_user("Asha", "Asha@Example.COM", "secret123"))

        stored = users.insert_one.await_args.args[0]
        assert stored["email"] == "asha@example.com"
        assert stored["isAdmin"] is False
        assert security.verify_password("secret123", stored["password"])
        assert result["_id"] == str(USER_ID)
        assert security.decode_access_token(result["token"]) == str(USER_ID)

    def test_register_existing_email(self):
        users = _users_collection(find_one=_user())
        with patch("app.services.user_service.get_users_collection", return_value=users):
            with pytest.raises(BadRequestError):
                asyncio.run(user_service.register_user("Asha", "asha@example.com", "secret123"))
        users.insert_one.assert_not_called()

    def test_register_short_password(self):
        with pytest.raises(ValidationError):
            asyncio.run(user_service.register_user("Asha", "asha@example.com", "123"))

    def test_authenticate_wrong_password(self):
        users = _users_collection(find_one=_user(password=security.hash_password("secret123")))
        with patch("app.services.user_service.get_users_collection", return_value=users):
            with pytest.raises(AuthenticationError):
                asyncio.run(user_service.authenticate_user("asha@example.com", "wrong"))

    def test_authenticate_success(self):
        users = _users_collection(find_one=_user(password=security.hash_password("secret123"), isAdmin=True))
        with patch("app.services.user_service.get_users_collection", return_value=users):
            result = asyncio.run(user_service.authenticate_user("ASHA@example.com", "secret123"))

        assert result["isAdmin"] is True
        users.find_one.assert_awaited_once_with({"email": "asha@example.com"})

    def test_password_reset_stores_only_digest(self):
        users = _users_collection(find_one=_user(), update_one=MagicMock(modified_count=1))
        with patch("app.services.user_service.get_users_collection", return_value=users):
            reset_url = asyncio.run(user_service.request_password_reset("asha@example.com"))

        raw_token = parse_qs(urlparse(reset_url).query)["token"][0]
        assert reset_url.split("?")[0].endswith("/reset-password.html")

        update = users.update_one.await_args.args[1]["$set"]
        assert update["resetPasswordToken"] == security.hash_reset_token(raw_token)
        assert update["resetPasswordToken"] != raw_token
        assert update["resetPasswordExpires"] > datetime.utcnow()
        assert update["resetPasswordExpires"] < datetime.utcnow() + timedelta(minutes=11)

    def test_reset_password_unknown_token(self):
        users = _users_collection(find_one_and_update=None)
        with patch("app.services.user_service.get_users_collection", return_value=users):
            with pytest.raises(BadRequestError):
                asyncio.run(user_service.reset_password("bogus", "newpass1"))

    def test_reset_password_clears_token(self):
        users = _users_collection(find_one_and_update=_user())
        with patch("app.services.user_service.get_users_collection", return_value=users):
            assert asyncio.run(user_service.reset_password("raw", "newpass1")) is True

        query, update = users.find_one_and_update.await_args.args
        assert query["resetPasswordToken"] == security.hash_reset_token("raw")
        assert "$gt" in query["resetPasswordExpires"]
        assert set(update["$unset"]) == {"resetPasswordToken", "resetPasswordExpires"}
        assert security.verify_password("newpass1", update["$set"]["password"])
