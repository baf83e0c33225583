"""Tests for token and demo-header authentication."""

from __future__ import annotations

import inspect
from unittest.mock import MagicMock, patch

import pytest
from firebase_admin import auth

from app.auth.firebase_auth import get_current_user, get_optional_user, get_user_details


@pytest.fixture
def firebase_app():
    with patch("app.auth.firebase_auth._firebase_app", return_value=MagicMock()) as mock_app:
        yield mock_app


class TestTokenAuthentication:
    def test_dependencies_run_in_threadpool(self):
        # verify_id_token can block; sync dependencies run in the threadpool
        assert not inspect.iscoroutinefunction(get_current_user)
        assert not inspect.iscoroutinefunction(get_optional_user)

    def test_missing_token(self, client):
        response = client.get("/households/me", headers={"X-Demo-User-Id": ""})
        assert response.status_code == 401
        assert response.json()["detail"] == "Missing authentication token"

    def test_invalid_demo_id(self, client):
        response = client.get("/households/me", headers={"X-Demo-User-Id": "not a valid id!"})
        assert response.status_code == 400

    def test_valid_token(self, client, firebase_app, household_repo):
        claims = {"uid": "firebase-uid", "email": "ana@example.com", "name": "Ana"}
        with patch("app.auth.firebase_auth.auth.verify_id_token", return_value=claims):
            response = client.get(
                "/me", headers={"X-Demo-User-Id": "", "Authorization": "Bearer good-token"}
            )

        assert response.status_code == 200
        assert response.json()["uid"] == "firebase-uid"
        assert response.json()["is_demo"] is False

    def test_expired_token(self, client, firebase_app):
        error = auth.ExpiredIdTokenError("Token expired", cause=None)
        with patch("app.auth.firebase_auth.auth.verify_id_token", side_effect=error):
            response = client.get("/me", headers={"X-Demo-User-Id": "", "Authorization": "Bearer old"})

        assert response.status_code == 401
        assert response.json()["detail"] == "Authentication token has expired"

    def test_invalid_token_on_optional_route_is_anonymous(self, client, firebase_app, household_repo):
        household_repo.get_invite.return_value = {
            "id": "code123",
            "household_id": "household-2",
            "created_by": "owner-2",
            "created_at": "2024-03-01T00:00:00+00:00",
            "expires_at": None,
            "max_uses": 0,
            "use_count": 0,
            "is_active": True,
        }
        error = auth.InvalidIdTokenError("bad token")
        with patch("app.auth.firebase_auth.auth.verify_id_token", side_effect=error):
            response = client.get(
                "/households/invite/code123", headers={"X-Demo-User-Id": "", "Authorization": "Bearer bad"}
            )

        assert response.status_code == 200
        assert response.json()["current_household_name"] is None


class TestUserDetails:
    def test_demo_user_details_are_synthesised(self):
        assert get_user_details("demo_abc") == ("abc@demo.fintrack.local", "Demo User (abc)")

    def test_missing_firebase_user(self, firebase_app):
        error = auth.UserNotFoundError("gone")
        with patch("app.auth.firebase_auth.auth.get_user", side_effect=error):
            assert get_user_details("uid-1") == (None, None)

    def test_firebase_user(self, firebase_app):
        record = MagicMock(email="ana@example.com", display_name="Ana")
        with patch("app.auth.firebase_auth.auth.get_user", return_value=record):
            assert get_user_details("uid-1") == ("ana@example.com", "Ana")
