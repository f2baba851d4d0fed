"""
tests/test_oauth.py -- External identity bridge: find-or-create and session issue.
"""

from __future__ import annotations

from fastapi.testclient import TestClient

from app.models.user import User
from app.services.auth import SESSION_COOKIE, verify_password
from app.services.oauth import derive_display_name

OAUTH = "/api/v1/users/oauth"


class TestFindOrCreate:
    def test_new_identity_creates_verified_student(self, client: TestClient, tokens) -> None:
        resp = client.post(OAUTH, json={"email": "New.User@x.com", "name": "Jane Doe", "photo": "https://img/p.png"})
        assert resp.status_code == 201

        user = User.objects(email="new.user@x.com").first()
        assert user.is_verified is True
        assert user.role == "student"
        assert user.avatar == "https://img/p.png"
        assert user.name.startswith("janedoe") and len(user.name) == len("janedoe") + 4
        assert tokens.verify(resp.cookies[SESSION_COOKIE]).subject_id == str(user.id)

    def test_generated_password_is_random(self, client: TestClient) -> None:
        client.post(OAUTH, json={"email": "n@x.com", "name": "N"})
        user = User.objects(email="n@x.com").first()
        assert not verify_password("", user.password)
        assert not verify_password("N", user.password)

    def test_existing_user_gets_session_without_duplicate(self, client: TestClient, make_user) -> None:
        user = make_user(email="known@x.com")
        resp = client.post(OAUTH, json={"email": "known@x.com", "name": "Known"})
        assert resp.status_code == 200
        assert resp.json()["data"]["user"]["id"] == str(user.id)
        assert User.objects(email="known@x.com").count() == 1

    def test_existing_unverified_user_becomes_verified(self, client: TestClient, make_user) -> None:
        user = make_user(email="pending@x.com", verified=False)
        user.otp = "123456"
        user.save()

        assert client.post(OAUTH, json={"email": "pending@x.com", "name": "P"}).status_code == 200
        user.reload()
        assert user.is_verified is True
        assert user.otp is None

    def test_deactivated_account_is_refused(self, client: TestClient, make_user) -> None:
        user = make_user(email="gone@x.com")
        user.active = False
        user.save()
        assert client.post(OAUTH, json={"email": "gone@x.com", "name": "G"}).status_code == 403


class TestDisplayName:
    def test_collapses_whitespace_and_lowercases(self) -> None:
        name = derive_display_name("  Ada   King Lovelace ")
        assert name[:-4] == "adakinglovelace"
        int(name[-4:], 16)

    def test_empty_name_falls_back(self) -> None:
        assert derive_display_name("").startswith("user")
