"""
services/contribution_service.py — Contribution store.

A contribution records that `sender_id` paid `total_amount` on behalf of the
group and how much each receiver owes the sender for it.

Rules enforced here:
  INVALID_GROUP   (404) — group unknown or already deleted
  INVALID_MEMBER  (422) — sender or a receiver outside the group, or the
                          sender listed as a receiver
  INVALID_AMOUNT  (400) — total <= 0, a receiver amount <= 0, or no receivers
  ALLOCATION_EXCEEDS_TOTAL (warning) — receiver amounts add up to more than
                          the total; recorded anyway, the sender is told

The schema rejects non-positive amounts first; the checks are repeated here
so the operation keeps its contract when called without the HTTP layer.

Contributions are append-only. Nothing in this module updates or deletes a
contribution; they disappear only with their group (vote_service).

Layer rules:
  - No Flask imports. Pure Python with a SQLAlchemy session parameter.
  - Commits are the route's responsibility — only flush here. The route holds
    services.locks.group_write_lock(group_id) around the call and the commit.
"""

from __future__ import annotations

import logging
from decimal import Decimal

from sqlalchemy.orm import Session

from squareup.app.errors import AppError, ErrorCode, WarningCode, warning
from squareup.app.models.contribution import Contribution
from squareup.app.models.receiver_share import ReceiverShare
from squareup.app.services.group_service import get_group_or_404

logger = logging.getLogger(__name__)


# ── Private helpers ────────────────────────────────────────────────────────

def _validate_members(
        group_id: int,
        member_ids: list[int],
        sender_id: int,
        receiver_amounts: dict[int, Decimal],
) -> None:
    """Raises INVALID_MEMBER (422) for the first participant outside the group."""
    if sender_id not in member_ids:
        raise AppError(
            ErrorCode.INVALID_MEMBER,
            f"User {sender_id} is not a member of transaction {group_id}.",
            422,
        )

    if sender_id in receiver_amounts:
        raise AppError(
            ErrorCode.INVALID_MEMBER,
            "You cannot owe yourself: remove your own entry from receiver_amounts.",
            422,
            field="receiver_amounts",
        )

    for receiver_id in receiver_amounts:
        if receiver_id not in member_ids:
            raise AppError(
                ErrorCode.INVALID_MEMBER,
                f"User {receiver_id} is not a member of transaction {group_id}.",
                422,
                field="receiver_amounts",
            )


def _validate_amounts(total_amount: Decimal, receiver_amounts: dict[int, Decimal]) -> None:
    """Raises INVALID_AMOUNT (400) for a non-positive total or receiver amount."""
    if total_amount <= 0:
        raise AppError(
            ErrorCode.INVALID_AMOUNT,
            "total_amount must be greater than zero.",
            400,
            field="total_amount",
        )

    if not receiver_amounts:
        raise AppError(
            ErrorCode.INVALID_AMOUNT,
            "receiver_amounts must name at least one receiver.",
            400,
            field="receiver_amounts",
        )

    for receiver_id, amount in receiver_amounts.items():
        if amount <= 0:
            raise AppError(
                ErrorCode.INVALID_AMOUNT,
                f"The amount for user {receiver_id} must be greater than zero.",
                400,
                field="receiver_amounts",
            )


def _allocation_warnings(total_amount: Decimal, receiver_amounts: dict[int, Decimal]) -> list[dict]:
    allocated = sum(receiver_amounts.values(), Decimal("0.00"))
    if allocated <= total_amount:
        return []
    return [warning(
        WarningCode.ALLOCATION_EXCEEDS_TOTAL,
        f"The allocated amount ({allocated}) exceeds the total ({total_amount}). Recorded anyway.",
    )]


# ── Public service functions ───────────────────────────────────────────────

def add_contribution(
        group_id: int,
        sender_id: int,
        description: str,
        total_amount: Decimal,
        receiver_amounts: dict[int, Decimal],
        session: Session,
) -> tuple[Contribution, list[dict]]:
    """
    Appends a contribution to a group.

    Args:
        group_id:         The group ("transaction") being contributed to.
        sender_id:        The payer, always the authenticated caller.
        description:      Validated, non-blank.
        total_amount:     Decimal, 2 places.
        receiver_amounts: {receiver_user_id: Decimal amount owed to the sender}

    Returns:
        (Contribution, warnings). warnings is empty unless the receiver
        amounts exceed the total.
    """
    group = get_group_or_404(group_id, session, for_update=True)
    _validate_members(group_id, group.member_ids, sender_id, receiver_amounts)
    _validate_amounts(total_amount, receiver_amounts)

    contribution = Contribution(
        group_id=group_id,
        sender_id=sender_id,
        description=description,
        total_amount=total_amount,
    )
    contribution.receiver_shares = [
        ReceiverShare(user_id=receiver_id, amount=amount)
        for receiver_id, amount in receiver_amounts.items()
    ]
    session.add(contribution)
    session.flush()

    logger.info(
        "Contribution %s added to transaction %s: sender=%s total=%s receivers=%s",
        contribution.id, group_id, sender_id, total_amount, sorted(receiver_amounts),
    )
    return contribution, _allocation_warnings(total_amount, receiver_amounts)
