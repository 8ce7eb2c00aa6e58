"""
tests/integration/test_friends.py — Friend requests, friendships and user search.

Endpoints covered:
  GET  /api/get-friends, /api/get-friend-requests, /api/search-users
  POST /api/add-friend-request, /api/accept-friend-request,
       /api/remove-friend-request, /api/remove-outgoing-friend-request,
       /api/remove-friend
"""

from __future__ import annotations

import pytest

from squareup.app.errors import ErrorCode

from .conftest import auth_headers, signup


def _post(client, token: str, path: str, user_id: int):
    return client.post(f"/api/{path}", json={"user_id": user_id}, headers=auth_headers(token))


def _get(client, token: str, path: str, **params) -> dict:
    resp = client.get(f"/api/{path}", query_string=params, headers=auth_headers(token))
    assert resp.status_code == 200, resp.get_json()
    return resp.get_json()["data"]


@pytest.fixture
def people(client):
    alice = signup(client, "alice")
    bob = signup(client, "bob")
    return {
        "alice": alice["access_token"],
        "bob": bob["access_token"],
        "a": alice["user"]["user_id"],
        "b": bob["user"]["user_id"],
    }


class TestRequests:

    def test_request_shows_up_on_both_sides(self, client, people):
        resp = _post(client, people["alice"], "add-friend-request", people["b"])

        assert resp.status_code == 201
        assert resp.get_json()["data"]["receiver"]["username"] == "bob"

        alice_side = _get(client, people["alice"], "get-friend-requests")
        bob_side = _get(client, people["bob"], "get-friend-requests")
        assert [u["user_id"] for u in alice_side["outgoing"]] == [people["b"]]
        assert alice_side["incoming"] == []
        assert [u["user_id"] for u in bob_side["incoming"]] == [people["a"]]

    def test_accept_makes_mutual_friends(self, client, people):
        _post(client, people["alice"], "add-friend-request", people["b"])

        resp = _post(client, people["bob"], "accept-friend-request", people["a"])

        assert resp.status_code == 200
        assert resp.get_json()["data"]["friend"]["user_id"] == people["a"]
        assert [f["username"] for f in _get(client, people["alice"], "get-friends")["friends"]] == ["bob"]
        assert [f["username"] for f in _get(client, people["bob"], "get-friends")["friends"]] == ["alice"]
        assert _get(client, people["bob"], "get-friend-requests") == {"incoming": [], "outgoing": []}

    def test_duplicate_request_in_either_direction(self, client, people):
        _post(client, people["alice"], "add-friend-request", people["b"])

        same = _post(client, people["alice"], "add-friend-request", people["b"])
        reverse = _post(client, people["bob"], "add-friend-request", people["a"])

        assert same.status_code == reverse.status_code == 409
        assert reverse.get_json()["error"]["code"] == ErrorCode.FRIEND_REQUEST_EXISTS

    def test_request_to_self_or_unknown_user(self, client, people):
        self_req = _post(client, people["alice"], "add-friend-request", people["a"])
        ghost = _post(client, people["alice"], "add-friend-request", 99999)

        assert self_req.status_code == 422
        assert self_req.get_json()["error"]["code"] == ErrorCode.SELF_FRIEND_REQUEST
        assert ghost.status_code == 404
        assert ghost.get_json()["error"]["code"] == ErrorCode.USER_NOT_FOUND

    def test_reject_incoming_request(self, client, people):
        _post(client, people["alice"], "add-friend-request", people["b"])

        resp = _post(client, people["bob"], "remove-friend-request", people["a"])

        assert resp.status_code == 200
        assert _get(client, people["alice"], "get-friend-requests")["outgoing"] == []
        assert _get(client, people["bob"], "get-friends")["friends"] == []

    def test_withdraw_outgoing_request(self, client, people):
        _post(client, people["alice"], "add-friend-request", people["b"])

        resp = _post(client, people["alice"], "remove-outgoing-friend-request", people["b"])

        assert resp.status_code == 200
        assert _get(client, people["bob"], "get-friend-requests")["incoming"] == []

    def test_receiver_cannot_withdraw_senders_request(self, client, people):
        _post(client, people["alice"], "add-friend-request", people["b"])

        resp = _post(client, people["bob"], "remove-outgoing-friend-request", people["a"])

        assert resp.status_code == 404
        assert resp.get_json()["error"]["code"] == ErrorCode.FRIEND_REQUEST_NOT_FOUND

    def test_accept_without_request(self, client, people):
        resp = _post(client, people["bob"], "accept-friend-request", people["a"])

        assert resp.status_code == 404
        assert resp.get_json()["error"]["code"] == ErrorCode.FRIEND_REQUEST_NOT_FOUND


class TestFriendships:

    @pytest.fixture
    def friends(self, client, people):
        _post(client, people["alice"], "add-friend-request", people["b"])
        _post(client, people["bob"], "accept-friend-request", people["a"])
        return people

    def test_request_to_existing_friend(self, client, friends):
        resp = _post(client, friends["bob"], "add-friend-request", friends["a"])

        assert resp.status_code == 409
        assert resp.get_json()["error"]["code"] == ErrorCode.ALREADY_FRIENDS

    def test_remove_friend_ends_both_sides(self, client, friends):
        resp = _post(client, friends["bob"], "remove-friend", friends["a"])

        assert resp.status_code == 200
        assert resp.get_json()["data"] == {"removed": True, "user_id": friends["a"]}
        assert _get(client, friends["alice"], "get-friends")["friends"] == []
        assert _get(client, friends["bob"], "get-friends")["friends"] == []

    def test_remove_non_friend(self, client, friends):
        _post(client, friends["alice"], "remove-friend", friends["b"])

        resp = _post(client, friends["alice"], "remove-friend", friends["b"])

        assert resp.status_code == 404
        assert resp.get_json()["error"]["code"] == ErrorCode.NOT_FRIENDS


class TestSearchUsers:

    def test_prefix_match_is_case_insensitive_and_excludes_caller(self, client, people):
        signup(client, "alicia")
        signup(client, "albert")

        data = _get(client, people["alice"], "search-users", prefix="AL")

        assert [u["username"] for u in data["users"]] == ["albert", "alicia"]

    def test_like_wildcards_are_literal(self, client, people):
        signup(client, "a_b")
        signup(client, "axb")

        data = _get(client, people["bob"], "search-users", prefix="a_")

        assert [u["username"] for u in data["users"]] == ["a_b"]

    def test_blank_prefix_rejected(self, client, people):
        resp = client.get(
            "/api/search-users", query_string={"prefix": "  "}, headers=auth_headers(people["alice"]),
        )

        assert resp.status_code == 400
