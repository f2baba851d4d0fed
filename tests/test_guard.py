"""
tests/test_guard.py -- Authorization guard: token extraction, freshness, roles, ownership.

The freshness tests backdate tokens explicitly instead of sleeping: a token
issued a minute ago must be rejected once the password changes now.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from bson.dbref import DBRef
from fastapi.testclient import TestClient

from app.models.user import User
from app.services.auth import SESSION_COOKIE, ensure_owner
from app.services.token import TokenService
from app.utils.base.errors import Forbidden

ME = "/api/v1/users/me"


def minute_ago() -> datetime:
    return datetime.now(timezone.utc) - timedelta(minutes=1)


class TestTokenExtraction:
    def test_no_token_is_401(self, client: TestClient) -> None:
        resp = client.get(ME)
        assert resp.status_code == 401
        assert resp.json() == {"status": "fail", "message": "User is not logged in"}

    def test_literal_null_cookie_counts_as_absent(self, client: TestClient) -> None:
        client.cookies.set(SESSION_COOKIE, "null")
        resp = client.get(ME)
        assert resp.status_code == 401
        assert resp.json()["message"] == "User is not logged in"

    def test_cookie_token_is_accepted(self, client: TestClient, make_user, tokens: TokenService) -> None:
        user = make_user()
        client.cookies.set(SESSION_COOKIE, tokens.issue(str(user.id)))
        assert client.get(ME).status_code == 200

    def test_bearer_token_is_accepted(self, client: TestClient, make_user, auth_headers) -> None:
        user = make_user()
        assert client.get(ME, headers=auth_headers(user)).status_code == 200

    def test_garbage_token_is_401(self, client: TestClient) -> None:
        resp = client.get(ME, headers={"Authorization": "Bearer garbage"})
        assert resp.status_code == 401

    def test_token_for_deleted_user_is_401(self, client: TestClient, make_user, auth_headers) -> None:
        user = make_user()
        headers = auth_headers(user)
        user.delete()
        resp = client.get(ME, headers=headers)
        assert resp.status_code == 401
        assert resp.json()["message"] == "User does not exist"


class TestFreshness:
    def test_token_issued_before_update_password_is_stale(
        self, client: TestClient, make_user, tokens: TokenService
    ) -> None:
        user = make_user()
        old = {"Authorization": f"Bearer {tokens.issue(str(user.id), issued_at=minute_ago())}"}
        assert client.get(ME, headers=old).status_code == 200

        resp = client.patch(
            "/api/v1/users/updateMyPassword",
            json={"password_current": "Password1", "password": "NewPass12", "password_confirm": "NewPass12"},
            headers=old,
        )
        assert resp.status_code == 200
        fresh = resp.cookies[SESSION_COOKIE]
        client.cookies.clear()

        stale = client.get(ME, headers=old)
        assert stale.status_code == 401
        assert stale.json()["message"] == "Password was changed. Login again"
        assert client.get(ME, headers={"Authorization": f"Bearer {fresh}"}).status_code == 200

    def test_token_issued_before_reset_password_is_stale(
        self, client: TestClient, make_user, tokens: TokenService, notifier
    ) -> None:
        user = make_user(email="known@x.com")
        old = {"Authorization": f"Bearer {tokens.issue(str(user.id), issued_at=minute_ago())}"}

        client.post("/api/v1/users/forgotPassword", json={"email": "known@x.com"})
        token = notifier.reset_tokens["known@x.com"]
        client.patch(
            f"/api/v1/users/resetPassword/{token}",
            json={"password": "NewPass12", "password_confirm": "NewPass12"},
        )
        client.cookies.clear()

        assert client.get(ME, headers=old).status_code == 401

    def test_changed_password_after_compares_issue_time(self) -> None:
        user = User(name="n", email="n@x.com", password="x")
        assert user.changed_password_after(minute_ago()) is False
        user.mark_password_changed()
        assert user.changed_password_after(minute_ago()) is True
        assert user.changed_password_after(datetime.now(timezone.utc)) is False


class TestRoles:
    def test_student_cannot_use_club_routes(self, client: TestClient, make_user, auth_headers) -> None:
        student = make_user("student")
        resp = client.post(
            "/api/v1/events",
            json={"name": "Hackathon", "date": "2999-01-01T10:00:00Z"},
            headers=auth_headers(student),
        )
        assert resp.status_code == 403
        assert resp.json()["status"] == "fail"

    def test_club_cannot_use_student_routes(self, client: TestClient, make_user, auth_headers) -> None:
        club = make_user("club")
        assert client.get("/api/v1/cart", headers=auth_headers(club)).status_code == 403


class TestOwnership:
    @pytest.fixture
    def owner(self) -> User:
        user = User(name="Owner", email="owner@x.com", role="club", password="x")
        user.save()
        return user

    def test_same_id_in_every_reference_form(self, owner: User) -> None:
        for ref in (owner, owner.id, str(owner.id), DBRef("users", owner.id)):
            ensure_owner(owner, ref)

    def test_different_owner_is_forbidden(self, owner: User) -> None:
        other = User(name="Other", email="other@x.com", role="club", password="x")
        other.save()
        for ref in (other, other.id, str(other.id), DBRef("users", other.id)):
            with pytest.raises(Forbidden):
                ensure_owner(owner, ref)

    def test_missing_owner_is_forbidden(self, owner: User) -> None:
        with pytest.raises(Forbidden):
            ensure_owner(owner, None)


class TestRateLimit:
    def test_repeat_within_window_is_429(self, client: TestClient, redis_client, make_user) -> None:
        make_user(email="s@x.com")
        redis_client.ttl.return_value = 1
        resp = client.post("/api/v1/users/login", json={"email": "s@x.com", "password": "Password1"})
        assert resp.status_code == 429
        assert resp.json()["message"] == "Rate limited. Try again in 1s"

    def test_open_window_sets_key(self, client: TestClient, redis_client, make_user) -> None:
        make_user(email="s@x.com")
        client.post("/api/v1/users/login", json={"email": "s@x.com", "password": "Password1"})
        redis_client.setex.assert_called_once()
        assert redis_client.setex.call_args.kwargs["name"].endswith("/api/v1/users/login")
