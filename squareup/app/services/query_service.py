"""
services/query_service.py — Read-side projections served to the client.

  list_contributions_for_user()       GET /api/get-contributions
  get_groups_for_user()               GET /api/get-user-transactions
  search_users_by_username_prefix()   GET /api/search-users

Plus the serializers every route uses for users, contributions and groups,
so one entity always has one wire shape. Amounts leave as strings.

Visibility: a user sees the contributions of the groups they belong to.

Layer rules:
  - No Flask imports. Pure Python with a SQLAlchemy session parameter.
  - Read-only: nothing here adds, flushes or deletes.
"""

from __future__ import annotations

from collections.abc import Iterable

from sqlalchemy import and_, func, or_, select
from sqlalchemy.orm import Session, selectinload

from squareup.app.errors import AppError, ErrorCode
from squareup.app.models.contribution import Contribution
from squareup.app.models.group import Group
from squareup.app.models.membership import Membership
from squareup.app.models.user import User
from squareup.app.services import balance_service

SEARCH_RESULT_LIMIT = 20


# ── Serializers ────────────────────────────────────────────────────────────

def build_user_summary(user: User) -> dict:
    return {
        "user_id": user.id,
        "username": user.username,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "name": user.display_name,
    }


def build_contribution_dict(contribution: Contribution) -> dict:
    return {
        "contribution_id": contribution.id,
        "transaction_id": contribution.group_id,
        "sender_id": contribution.sender_id,
        "description": contribution.description,
        "total_amount": str(contribution.total_amount),
        "receiver_amounts": {
            str(share.user_id): str(share.amount)
            for share in contribution.receiver_shares
        },
        "created_at": contribution.created_at.isoformat(),
    }


def build_group_dict(group: Group, session: Session) -> dict:
    """Group with its contributions (newest first) and freshly computed balances."""
    contributions = sorted(
        group.contributions,
        key=lambda c: (c.created_at, c.id),
        reverse=True,
    )
    return {
        "transaction_id": group.id,
        "name": group.name,
        "user_ids": group.member_ids,
        "created_at": group.created_at.isoformat(),
        "created_by": group.created_by,
        "votes_to_delete": sorted(vote.user_id for vote in group.delete_votes),
        "contributions": [build_contribution_dict(c) for c in contributions],
        **balance_service.build_balance_summary(group.id, session),
    }


def get_user_details(user_ids: Iterable[int], session: Session) -> list[dict]:
    """User summaries for the given ids, ordered by id. Unknown ids are skipped."""
    ids = sorted(set(user_ids))
    if not ids:
        return []
    users = session.execute(
        select(User).where(User.id.in_(ids)).order_by(User.id)
    ).scalars().all()
    return [build_user_summary(u) for u in users]


# ── Contribution feed ──────────────────────────────────────────────────────

def _visible_group_ids(user_id: int):
    return select(Membership.group_id).where(Membership.user_id == user_id)


def list_contributions_for_user(
        user_id: int,
        limit: int,
        session: Session,
        after_id: int | None = None,
) -> dict:
    """
    One page of the contributions visible to user_id, newest first.

    Ordering is (created_at desc, id desc). `after_id` is the id of the last
    contribution of the previous page; the next page starts strictly after
    it, so consecutive pages are disjoint.

    Raises:
      AppError(CONTRIBUTION_NOT_FOUND, 404) — after_id unknown or not visible

    Returns:
      {"contributions": [...], "user_details": [...], "has_more": bool}
      has_more is True when the page is full (len == limit).
    """
    stmt = (
        select(Contribution)
        .where(Contribution.group_id.in_(_visible_group_ids(user_id)))
        .options(selectinload(Contribution.receiver_shares))
        .order_by(Contribution.created_at.desc(), Contribution.id.desc())
    )

    if after_id is not None:
        cursor = session.execute(
            select(Contribution).where(
                Contribution.id == after_id,
                Contribution.group_id.in_(_visible_group_ids(user_id)),
            )
        ).scalar_one_or_none()
        if cursor is None:
            raise AppError(
                ErrorCode.CONTRIBUTION_NOT_FOUND,
                f"Contribution {after_id} does not exist or is not visible to you.",
                404,
                field="afterId",
            )
        stmt = stmt.where(
            or_(
                Contribution.created_at < cursor.created_at,
                and_(
                    Contribution.created_at == cursor.created_at,
                    Contribution.id < cursor.id,
                ),
            )
        )

    contributions = list(session.execute(stmt.limit(limit)).scalars().all())

    referenced: set[int] = set()
    for c in contributions:
        referenced.add(c.sender_id)
        referenced.update(share.user_id for share in c.receiver_shares)

    return {
        "contributions": [build_contribution_dict(c) for c in contributions],
        "user_details": get_user_details(referenced, session),
        "has_more": len(contributions) == limit,
    }


# ── Groups with balances ───────────────────────────────────────────────────

def get_groups_for_user(user_id: int, session: Session) -> dict:
    """
    Every group user_id belongs to, newest first, each with its netting output.

    Returns:
      {"transactions": [...], "user_details": [...]}
      user_details covers every member of every returned group.
    """
    stmt = (
        select(Group)
        .where(Group.id.in_(_visible_group_ids(user_id)))
        .options(
            selectinload(Group.memberships),
            selectinload(Group.delete_votes),
            selectinload(Group.contributions).selectinload(Contribution.receiver_shares),
        )
        .order_by(Group.created_at.desc(), Group.id.desc())
    )
    groups = list(session.execute(stmt).scalars().all())

    member_ids: set[int] = set()
    for group in groups:
        member_ids.update(group.member_ids)

    return {
        "transactions": [build_group_dict(group, session) for group in groups],
        "user_details": get_user_details(member_ids, session),
    }


# ── User search ────────────────────────────────────────────────────────────

def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def search_users_by_username_prefix(prefix: str, caller_id: int, session: Session) -> list[dict]:
    """
    Case-insensitive username prefix match, caller excluded, at most
    SEARCH_RESULT_LIMIT results ordered by username.
    """
    pattern = _escape_like(prefix.lower()) + "%"
    stmt = (
        select(User)
        .where(
            func.lower(User.username).like(pattern, escape="\\"),
            User.id != caller_id,
        )
        .order_by(User.username)
        .limit(SEARCH_RESULT_LIMIT)
    )
    return [build_user_summary(u) for u in session.execute(stmt).scalars().all()]
