"""
Unit tests for balance_service data-access helpers and build_balance_summary.

DB-free: sessions are MagicMocks and compute_balances is patched where the
test is about the wire shape.
"""

from __future__ import annotations

from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

from squareup.app.errors import AppError, ErrorCode
from squareup.app.services import balance_service


def test_get_member_ids_returns_scalars():
    session = MagicMock()
    session.execute.return_value.scalars.return_value.all.return_value = [3, 1, 2]

    assert balance_service.get_member_ids(group_id=9, session=session) == [3, 1, 2]
    session.execute.assert_called_once()


def test_get_share_rows_is_a_single_query():
    session = MagicMock()
    rows = [SimpleNamespace(sender_id=1, receiver_id=2, amount=Decimal("5.00"))]
    session.execute.return_value.all.return_value = rows

    assert balance_service.get_share_rows(group_id=4, session=session) == rows
    session.execute.assert_called_once()


@patch("squareup.app.services.balance_service.get_member_ids", return_value=[1, 2, 3])
@patch("squareup.app.services.balance_service.get_share_rows")
def test_compute_balances_from_stored_rows(mock_rows, mock_members):
    mock_rows.return_value = [
        SimpleNamespace(sender_id=1, receiver_id=2, amount=Decimal("15.00")),
        SimpleNamespace(sender_id=1, receiver_id=3, amount=Decimal("15.00")),
        SimpleNamespace(sender_id=2, receiver_id=1, amount=Decimal("10.00")),
    ]

    net, debts = balance_service.compute_balances(group_id=7, session=MagicMock())

    assert net == {1: Decimal("20.00"), 2: Decimal("-5.00"), 3: Decimal("-15.00")}
    assert debts == {2: {1: Decimal("5.00")}, 3: {1: Decimal("15.00")}}


@patch("squareup.app.services.balance_service.compute_balances")
def test_build_balance_summary_uses_string_keys_and_amounts(mock_compute):
    mock_compute.return_value = (
        {1: Decimal("20.00"), 2: Decimal("-5.00"), 3: Decimal("-15.00")},
        {2: {1: Decimal("5.00")}, 3: {1: Decimal("15.00")}},
    )

    summary = balance_service.build_balance_summary(group_id=7, session=MagicMock())

    assert summary["net_amounts"] == {"1": "20.00", "2": "-5.00", "3": "-15.00"}
    assert summary["debts"] == {"2": {"1": "5.00"}, "3": {"1": "15.00"}}
    assert summary["simplified_debts"] == [
        {"from_user_id": 3, "to_user_id": 1, "amount": "15.00"},
        {"from_user_id": 2, "to_user_id": 1, "amount": "5.00"},
    ]


@patch("squareup.app.services.balance_service.compute_balances")
def test_build_balance_summary_rejects_nonzero_sum(mock_compute):
    mock_compute.return_value = ({1: Decimal("10.00"), 2: Decimal("-9.99")}, {})

    with pytest.raises(AppError) as exc_info:
        balance_service.build_balance_summary(group_id=7, session=MagicMock())

    err = exc_info.value
    assert err.code == ErrorCode.INTERNAL_ERROR
    assert err.http_status == 500
