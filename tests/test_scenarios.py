"""
tests/test_scenarios.py -- End-to-end account and ownership journeys.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from fastapi.testclient import TestClient


def test_signup_verify_login(client: TestClient, notifier) -> None:
    """Scenario A: wrong OTP fails, right OTP verifies, password login then works."""
    resp = client.post(
        "/api/v1/users/signup",
        json={
            "name": "Ada",
            "email": "a@x.com",
            "role": "student",
            "password": "Password1",
            "password_confirm": "Password1",
        },
    )
    assert resp.status_code == 201

    otp = notifier.otps["a@x.com"]
    wrong = str((int(otp) + 1) % 10 ** 6).zfill(6)
    bad = client.post("/api/v1/users/verify", json={"email": "a@x.com", "otp": wrong})
    assert bad.status_code == 400
    assert bad.json()["message"] == "Invalid or expired OTP"

    assert client.post("/api/v1/users/verify", json={"email": "a@x.com", "otp": otp}).status_code == 200
    client.cookies.clear()

    login = client.post("/api/v1/users/login", json={"email": "a@x.com", "password": "Password1"})
    assert login.status_code == 200
    assert client.get("/api/v1/users/me").json()["data"]["user"]["email"] == "a@x.com"


def test_forgot_reset_login(client: TestClient, make_user, notifier) -> None:
    """Scenario B: after a reset only the new password logs in."""
    make_user(email="known@x.com", password="OldPass12")

    assert client.post("/api/v1/users/forgotPassword", json={"email": "known@x.com"}).status_code == 200
    token = notifier.reset_tokens["known@x.com"]

    reset = client.patch(
        f"/api/v1/users/resetPassword/{token}",
        json={"password": "NewPass1", "password_confirm": "NewPass1"},
    )
    assert reset.status_code == 200
    client.cookies.clear()

    old = client.post("/api/v1/users/login", json={"email": "known@x.com", "password": "OldPass12"})
    assert old.status_code == 401
    new = client.post("/api/v1/users/login", json={"email": "known@x.com", "password": "NewPass1"})
    assert new.status_code == 200


def test_club_event_ownership(client: TestClient, make_user, auth_headers) -> None:
    """Scenario C: club B cannot update club A's event; club A can."""
    club_a = make_user("club")
    club_b = make_user("club")
    date = (datetime.now(timezone.utc) + timedelta(days=7)).isoformat()

    created = client.post("/api/v1/events", json={"name": "Fest", "date": date}, headers=auth_headers(club_a))
    assert created.status_code == 201
    event_id = created.json()["data"]["id"]

    as_b = client.patch(f"/api/v1/events/{event_id}", json={"price": 5}, headers=auth_headers(club_b))
    assert as_b.status_code == 403

    as_a = client.patch(f"/api/v1/events/{event_id}", json={"price": 5}, headers=auth_headers(club_a))
    assert as_a.status_code == 200
    assert as_a.json()["data"]["price"] == 5
