"""
services/group_service.py — Group ("transaction") creation and shared guards.

Authorization rules:
  - Any authenticated user may create a group; they are always a member.
  - Only members may write to or vote on a group (NOT_A_MEMBER, 403).

The member set is fixed at creation: there is no add/remove member operation.

get_group_or_404() and require_member() are the guards the contribution and
vote services use as well.

Layer rules:
  - No Flask imports. Pure Python with a SQLAlchemy session parameter.
  - Commits are the route's responsibility — only flush here.
"""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from squareup.app.errors import AppError, ErrorCode
from squareup.app.models.group import Group
from squareup.app.models.membership import Membership
from squareup.app.models.user import User

logger = logging.getLogger(__name__)

MIN_MEMBERS = 2


# ── Shared guards ──────────────────────────────────────────────────────────

def get_group_or_404(group_id: int, session: Session, for_update: bool = False) -> Group:
    """
    Returns the Group or raises INVALID_GROUP (404).

    for_update=True issues SELECT ... FOR UPDATE so concurrent writers to the
    same group queue up behind the row lock (PostgreSQL; a no-op on SQLite,
    where services.locks covers the in-process case).
    """
    group = session.get(Group, group_id, with_for_update=for_update)
    if group is None:
        raise AppError(
            ErrorCode.INVALID_GROUP,
            f"Transaction {group_id} does not exist.",
            404,
            field="transaction_id",
        )
    return group


def require_member(group: Group, user_id: int) -> None:
    """Raises NOT_A_MEMBER (403) if user_id is not a member of the group."""
    if user_id not in group.member_ids:
        raise AppError(
            ErrorCode.NOT_A_MEMBER,
            f"You are not a member of transaction {group.id}.",
            403,
        )


# ── Public service functions ───────────────────────────────────────────────

def create_group(
        name: str,
        creator_id: int,
        user_ids: list[int],
        session: Session,
) -> Group:
    """
    Creates a group whose members are the creator plus `user_ids`.

    The creator is added even if absent from `user_ids`; duplicates collapse
    and the given order is kept (creator first).

    Raises:
      AppError(INVALID_GROUP_SIZE, 422) — fewer than 2 distinct members
      AppError(USER_NOT_FOUND, 404)     — some user id does not exist

    Returns: the new Group with memberships loaded.
    """
    member_ids: list[int] = []
    for uid in [creator_id, *user_ids]:
        if uid not in member_ids:
            member_ids.append(uid)

    if len(member_ids) < MIN_MEMBERS:
        raise AppError(
            ErrorCode.INVALID_GROUP_SIZE,
            f"A transaction needs at least {MIN_MEMBERS} members, including you.",
            422,
            field="user_ids",
        )

    found = set(
        session.execute(select(User.id).where(User.id.in_(member_ids))).scalars().all()
    )
    missing = [uid for uid in member_ids if uid not in found]
    if missing:
        raise AppError(
            ErrorCode.USER_NOT_FOUND,
            f"User {missing[0]} does not exist.",
            404,
            field="user_ids",
        )

    group = Group(name=name, created_by=creator_id)
    group.memberships = [
        Membership(user_id=uid, position=position)
        for position, uid in enumerate(member_ids)
    ]
    session.add(group)
    session.flush()

    logger.info(
        "Created transaction %s (%r) by user %s with members %s",
        group.id, name, creator_id, member_ids,
    )
    return group
