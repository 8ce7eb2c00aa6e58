"""
Unit tests for contribution_service.add_contribution.

The group lookup is patched; the session is a MagicMock that records what
was added. No database, no Flask.
"""

from __future__ import annotations

from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

from squareup.app.errors import AppError, ErrorCode, WarningCode
from squareup.app.models.contribution import Contribution
from squareup.app.services import contribution_service

GROUP = SimpleNamespace(id=5, member_ids=[1, 2, 3])


def _add(sender_id=1, total="30.00", receivers=None, session=None):
    if receivers is None:
        receivers = {2: "15.00", 3: "15.00"}
    return contribution_service.add_contribution(
        group_id=GROUP.id,
        sender_id=sender_id,
        description="Dinner",
        total_amount=Decimal(total),
        receiver_amounts={uid: Decimal(a) for uid, a in receivers.items()},
        session=session or MagicMock(),
    )


@pytest.fixture(autouse=True)
def group_lookup():
    with patch(
        "squareup.app.services.contribution_service.get_group_or_404",
        return_value=GROUP,
    ) as mock_get:
        yield mock_get


def test_happy_path_adds_contribution_with_shares(group_lookup):
    session = MagicMock()

    contribution, warnings = _add(session=session)

    assert isinstance(contribution, Contribution)
    assert contribution.group_id == 5
    assert contribution.sender_id == 1
    assert contribution.total_amount == Decimal("30.00")
    assert contribution.receiver_amounts == {2: Decimal("15.00"), 3: Decimal("15.00")}
    assert warnings == []
    session.add.assert_called_once_with(contribution)
    session.flush.assert_called_once()
    group_lookup.assert_called_once_with(5, session, for_update=True)


def test_unknown_group_propagates_invalid_group(group_lookup):
    group_lookup.side_effect = AppError(ErrorCode.INVALID_GROUP, "gone", 404)
    session = MagicMock()

    with pytest.raises(AppError) as exc_info:
        _add(session=session)

    assert exc_info.value.code == ErrorCode.INVALID_GROUP
    session.add.assert_not_called()


def test_sender_outside_group_is_invalid_member():
    session = MagicMock()

    with pytest.raises(AppError) as exc_info:
        _add(sender_id=9, session=session)

    assert exc_info.value.code == ErrorCode.INVALID_MEMBER
    assert exc_info.value.http_status == 422
    session.add.assert_not_called()


def test_receiver_outside_group_is_invalid_member():
    with pytest.raises(AppError) as exc_info:
        _add(receivers={2: "10.00", 42: "5.00"})

    assert exc_info.value.code == ErrorCode.INVALID_MEMBER
    assert exc_info.value.field == "receiver_amounts"


def test_sender_listed_as_receiver_is_invalid_member():
    with pytest.raises(AppError) as exc_info:
        _add(receivers={1: "10.00", 2: "10.00"})

    assert exc_info.value.code == ErrorCode.INVALID_MEMBER


@pytest.mark.parametrize("total", ["0.00", "-1.00"])
def test_non_positive_total_is_invalid_amount(total):
    with pytest.raises(AppError) as exc_info:
        _add(total=total)

    assert exc_info.value.code == ErrorCode.INVALID_AMOUNT
    assert exc_info.value.http_status == 400
    assert exc_info.value.field == "total_amount"


def test_non_positive_receiver_amount_is_invalid_amount():
    with pytest.raises(AppError) as exc_info:
        _add(receivers={2: "10.00", 3: "0.00"})

    assert exc_info.value.code == ErrorCode.INVALID_AMOUNT
    assert exc_info.value.field == "receiver_amounts"


def test_no_receivers_is_invalid_amount():
    with pytest.raises(AppError) as exc_info:
        _add(receivers={})

    assert exc_info.value.code == ErrorCode.INVALID_AMOUNT


def test_allocation_above_total_is_recorded_with_warning():
    session = MagicMock()

    contribution, warnings = _add(total="20.00", receivers={2: "15.00", 3: "15.00"}, session=session)

    session.add.assert_called_once_with(contribution)
    assert [w["code"] for w in warnings] == [WarningCode.ALLOCATION_EXCEEDS_TOTAL]
    assert "30.00" in warnings[0]["message"]


def test_allocation_below_total_has_no_warning():
    # The sender's own share is simply not listed.
    _, warnings = _add(total="45.00", receivers={2: "15.00", 3: "15.00"})

    assert warnings == []
