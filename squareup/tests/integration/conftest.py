"""
tests/integration/conftest.py — Fixtures and helpers for all integration tests.

Design:
  - The app is created once per session with create_app("testing").
    TestingConfig uses TEST_DATABASE_URL, or in-memory SQLite when unset
    (Flask-SQLAlchemy keeps a single shared connection for :memory:).
  - Tables are created once via db.create_all().
  - After every test all rows are deleted, children first, so tests are
    isolated.
  - One-time codes are pinned to FIXED_OTP by patching
    auth_service._generate_code, so signup works without reading logs.

Helper functions (not fixtures), callable with any arguments:
  - signup(client, username, ...)      → {"user", "access_token", "refresh_token"}
  - auth_headers(token)                → {"Authorization": "Bearer <token>"}
  - make_transaction(client, ...)      → transaction dict
  - add_contribution(client, ...)      → HTTP response
  - vote(client, ...) / unvote(...)    → HTTP response
"""

from __future__ import annotations

from unittest.mock import patch

import pytest

from squareup.app import create_app
from squareup.app.extensions import db as _db

FIXED_OTP = "123456"
PASSWORD = "secret1!"


# ═══════════════════════════════════════════════════════════════════════════
# Session-scoped app fixture
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture(scope="session")
def app():
    flask_app = create_app("testing")

    with flask_app.app_context():
        _db.create_all()

    yield flask_app

    with flask_app.app_context():
        _db.session.remove()
        _db.drop_all()


# ═══════════════════════════════════════════════════════════════════════════
# Function-scoped isolation
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture(autouse=True)
def clean_tables(app):
    yield

    with app.app_context():
        _db.session.rollback()
        for table in reversed(_db.metadata.sorted_tables):
            _db.session.execute(table.delete())
        _db.session.commit()


@pytest.fixture(autouse=True)
def fixed_otp():
    with patch(
        "squareup.app.services.auth_service._generate_code",
        return_value=FIXED_OTP,
    ) as mock_generate:
        yield mock_generate


@pytest.fixture
def client(app):
    return app.test_client()


# ═══════════════════════════════════════════════════════════════════════════
# Shared helper functions (not fixtures)
# ═══════════════════════════════════════════════════════════════════════════

def auth_headers(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def signup(
    client,
    username: str = "alice",
    email: str | None = None,
    password: str = PASSWORD,
    first_name: str | None = None,
    last_name: str = "Tester",
) -> dict:
    """Requests a signup code and signs up. Returns the response data."""
    if email is None:
        email = f"{username}@test.com"

    resp = client.post("/api/send-otp", json={"email": email, "purpose": "signup"})
    assert resp.status_code == 200, f"send-otp failed: {resp.get_json()}"

    resp = client.post(
        "/api/signup",
        json={
            "first_name": first_name or username.capitalize(),
            "last_name": last_name,
            "username": username,
            "email": email,
            "password": password,
            "otp": FIXED_OTP,
        },
    )
    assert resp.status_code == 201, f"signup failed: {resp.get_json()}"
    return resp.get_json()["data"]


def make_transaction(client, token: str, user_ids: list[int], name: str = "Trip") -> dict:
    resp = client.post(
        "/api/create-transaction",
        json={"name": name, "user_ids": user_ids},
        headers=auth_headers(token),
    )
    assert resp.status_code == 201, f"create-transaction failed: {resp.get_json()}"
    return resp.get_json()["data"]


def add_contribution(
    client,
    token: str,
    transaction_id: int,
    receiver_amounts: dict,
    total_amount="30.00",
    description: str = "Dinner",
):
    return client.post(
        "/api/add-contribution",
        json={
            "transaction_id": transaction_id,
            "description": description,
            "total_amount": total_amount,
            "receiver_amounts": {str(k): v for k, v in receiver_amounts.items()},
        },
        headers=auth_headers(token),
    )


def vote(client, token: str, transaction_id: int):
    return client.post(
        "/api/add-vote-to-delete-transaction",
        json={"transaction_id": transaction_id},
        headers=auth_headers(token),
    )


def unvote(client, token: str, transaction_id: int):
    return client.post(
        "/api/remove-vote-to-delete-transaction",
        json={"transaction_id": transaction_id},
        headers=auth_headers(token),
    )


def user_transactions(client, token: str) -> dict:
    resp = client.get("/api/get-user-transactions", headers=auth_headers(token))
    assert resp.status_code == 200, resp.get_json()
    return resp.get_json()["data"]
