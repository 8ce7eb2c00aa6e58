"""
tests/integration/test_contributions_feed.py — GET /api/get-contributions

Cursor paging over the contributions of the caller's groups:
  - pages are newest first and disjoint
  - has_more turns false on a short page
  - afterId must name a contribution the caller can see
"""

from __future__ import annotations

import pytest

from squareup.app.errors import ErrorCode

from .conftest import add_contribution, auth_headers, make_transaction, signup


def _feed(client, token: str, **params):
    return client.get("/api/get-contributions", query_string=params, headers=auth_headers(token))


@pytest.fixture
def ledger(client):
    """alice and bob share a group holding five contributions D1..D5."""
    alice = signup(client, "alice")
    bob = signup(client, "bob")
    b = bob["user"]["user_id"]
    group = make_transaction(client, alice["access_token"], [b])

    ids = []
    for n in range(1, 6):
        resp = add_contribution(
            client, alice["access_token"], group["transaction_id"], {b: f"{n}.00"},
            total_amount=f"{n}.00", description=f"D{n}",
        )
        ids.append(resp.get_json()["data"]["contribution"]["contribution_id"])

    return {"alice": alice, "bob": bob, "tid": group["transaction_id"], "ids": ids}


def test_pages_are_disjoint_and_cover_everything(client, ledger):
    token = ledger["bob"]["access_token"]
    seen: list[str] = []
    after = None

    while True:
        params = {"limit": 2}
        if after is not None:
            params["afterId"] = after
        resp = _feed(client, token, **params)
        assert resp.status_code == 200
        page = resp.get_json()["data"]

        seen.extend(c["description"] for c in page["contributions"])
        if not page["has_more"]:
            break
        after = page["contributions"][-1]["contribution_id"]

    assert seen == ["D5", "D4", "D3", "D2", "D1"]


def test_page_carries_user_details(client, ledger):
    page = _feed(client, ledger["alice"]["access_token"], limit=1).get_json()["data"]

    assert page["has_more"] is True
    usernames = {u["username"] for u in page["user_details"]}
    assert usernames == {"alice", "bob"}


def test_default_limit_returns_everything_when_small(client, ledger):
    page = _feed(client, ledger["alice"]["access_token"]).get_json()["data"]

    assert len(page["contributions"]) == 5
    assert page["has_more"] is False


def test_limit_is_clamped_to_maximum(app, client, ledger, monkeypatch):
    monkeypatch.setitem(app.config, "CONTRIBUTIONS_MAX_LIMIT", 3)

    page = _feed(client, ledger["alice"]["access_token"], limit=100).get_json()["data"]

    assert len(page["contributions"]) == 3
    assert page["has_more"] is True


def test_unknown_after_id_is_not_found(client, ledger):
    resp = _feed(client, ledger["alice"]["access_token"], afterId=99999)

    assert resp.status_code == 404
    assert resp.get_json()["error"]["code"] == ErrorCode.CONTRIBUTION_NOT_FOUND


def test_outsider_sees_nothing_and_cannot_use_foreign_cursor(client, ledger):
    carol = signup(client, "carol")
    token = carol["access_token"]

    page = _feed(client, token).get_json()["data"]
    assert page == {"contributions": [], "user_details": [], "has_more": False}

    resp = _feed(client, token, afterId=ledger["ids"][0])
    assert resp.status_code == 404


def test_non_numeric_limit_rejected(client, ledger):
    resp = _feed(client, ledger["alice"]["access_token"], limit="many")

    assert resp.status_code == 400
    assert resp.get_json()["error"]["field"] == "limit"
