"""
Unit tests for query_service serializers, feed paging and user search.

DB-free: sessions are MagicMocks; get_user_details is patched where the test
is about the feed itself.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

from squareup.app.errors import AppError, ErrorCode
from squareup.app.services import query_service

TS = datetime(2026, 3, 1, 12, 30, tzinfo=timezone.utc)


def _user(uid: int, username: str, first: str = "Ann", last: str = "Lee"):
    return SimpleNamespace(
        id=uid,
        username=username,
        first_name=first,
        last_name=last,
        display_name=f"{first} {last}",
    )


def _contribution(cid: int, sender_id: int, shares: dict[int, str], group_id: int = 1):
    return SimpleNamespace(
        id=cid,
        group_id=group_id,
        sender_id=sender_id,
        description=f"c{cid}",
        total_amount=Decimal("30.00"),
        created_at=TS,
        receiver_shares=[
            SimpleNamespace(user_id=uid, amount=Decimal(amount)) for uid, amount in shares.items()
        ],
    )


def test_build_user_summary():
    assert query_service.build_user_summary(_user(4, "ann.lee")) == {
        "user_id": 4,
        "username": "ann.lee",
        "first_name": "Ann",
        "last_name": "Lee",
        "name": "Ann Lee",
    }


def test_build_contribution_dict_sends_amounts_as_strings():
    result = query_service.build_contribution_dict(_contribution(9, 1, {2: "15.00", 3: "15.00"}))

    assert result == {
        "contribution_id": 9,
        "transaction_id": 1,
        "sender_id": 1,
        "description": "c9",
        "total_amount": "30.00",
        "receiver_amounts": {"2": "15.00", "3": "15.00"},
        "created_at": TS.isoformat(),
    }


def test_get_user_details_skips_query_for_no_ids():
    session = MagicMock()

    assert query_service.get_user_details([], session) == []
    session.execute.assert_not_called()


@patch("squareup.app.services.query_service.get_user_details", return_value=[])
def test_feed_full_page_reports_has_more(mock_details):
    session = MagicMock()
    session.execute.return_value.scalars.return_value.all.return_value = [
        _contribution(3, 1, {2: "1.00"}),
        _contribution(2, 2, {3: "1.00"}),
    ]

    result = query_service.list_contributions_for_user(user_id=1, limit=2, session=session)

    assert [c["contribution_id"] for c in result["contributions"]] == [3, 2]
    assert result["has_more"] is True
    referenced = set(mock_details.call_args.args[0])
    assert referenced == {1, 2, 3}


@patch("squareup.app.services.query_service.get_user_details", return_value=[])
def test_feed_short_page_has_no_more(mock_details):
    session = MagicMock()
    session.execute.return_value.scalars.return_value.all.return_value = [
        _contribution(1, 1, {2: "1.00"}),
    ]

    result = query_service.list_contributions_for_user(user_id=1, limit=15, session=session)

    assert result["has_more"] is False


def test_feed_unknown_cursor_is_contribution_not_found():
    session = MagicMock()
    session.execute.return_value.scalar_one_or_none.return_value = None

    with pytest.raises(AppError) as exc_info:
        query_service.list_contributions_for_user(user_id=1, limit=15, session=session, after_id=77)

    err = exc_info.value
    assert err.code == ErrorCode.CONTRIBUTION_NOT_FOUND
    assert err.http_status == 404
    assert err.field == "afterId"


@pytest.mark.parametrize(
    "raw, escaped",
    [
        ("ann", "ann"),
        ("a_b", "a\\_b"),
        ("50%", "50\\%"),
        ("back\\slash", "back\\\\slash"),
    ],
)
def test_escape_like(raw, escaped):
    assert query_service._escape_like(raw) == escaped


def test_search_serializes_matches():
    session = MagicMock()
    session.execute.return_value.scalars.return_value.all.return_value = [
        _user(2, "alex"),
        _user(3, "alexa"),
    ]

    result = query_service.search_users_by_username_prefix("ALE", caller_id=1, session=session)

    assert [u["username"] for u in result] == ["alex", "alexa"]
    session.execute.assert_called_once()
