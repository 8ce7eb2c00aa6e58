"""
services/vote_service.py — Unanimous vote to delete ("square up") a group.

State machine per group:

    Active(votes ⊂ members) ──vote/unvote──▶ Active(...)
    Active(votes == members) ──────────────▶ Deleted   (terminal)

The transition to Deleted happens inside the vote that completes the set:
the group row and everything hanging off it (memberships, contributions,
receiver shares, votes) are deleted in the same flush. After that every
vote or unvote on the group fails with INVALID_GROUP (404).

The server decides who the last voter is from stored votes and membership.
A client's "you are the last voter" prompt is a prediction only.

Concurrency:
  Callers hold services.locks.group_write_lock(group_id) around the call and
  the commit, and get_group_or_404(..., for_update=True) locks the group row.
  Two members casting the final votes at the same time therefore run one
  after the other: the first records its vote, the second sees the full set
  and deletes exactly once.

Decisions:
  - A repeated vote by the same member is a no-op, not an error.
  - Unvoting without a recorded vote is a no-op.
"""

from __future__ import annotations

import logging

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from squareup.app.models.delete_vote import DeleteVote
from squareup.app.models.group import Group
from squareup.app.services.group_service import get_group_or_404, require_member

logger = logging.getLogger(__name__)


# ── Data access helpers ────────────────────────────────────────────────────

def get_voter_ids(group_id: int, session: Session) -> set[int]:
    """Returns the ids of members who currently vote to delete the group."""
    stmt = select(DeleteVote.user_id).where(DeleteVote.group_id == group_id)
    return set(session.execute(stmt).scalars().all())


def _record_vote(group_id: int, user_id: int, session: Session) -> None:
    session.add(DeleteVote(group_id=group_id, user_id=user_id))
    session.flush()


def _discard_vote(group_id: int, user_id: int, session: Session) -> None:
    session.execute(
        delete(DeleteVote).where(
            DeleteVote.group_id == group_id,
            DeleteVote.user_id == user_id,
        )
    )
    session.flush()


def _delete_group(group: Group, session: Session) -> None:
    """Deletes the group; ORM cascades take its members, contributions and votes."""
    session.delete(group)
    session.flush()


def _vote_state(group_id: int, member_ids: list[int], voter_ids: set[int], deleted: bool) -> dict:
    return {
        "transaction_id": group_id,
        "user_ids": member_ids,
        "votes_to_delete": [uid for uid in member_ids if uid in voter_ids],
        "deleted": deleted,
    }


# ── Public service functions ───────────────────────────────────────────────

def add_vote(group_id: int, user_id: int, session: Session) -> dict:
    """
    Records user_id's vote to delete the group and deletes the group when the
    vote set becomes the full member set.

    Raises:
      AppError(INVALID_GROUP, 404) — group unknown or already deleted
      AppError(NOT_A_MEMBER, 403)  — user_id is not in the group

    Returns:
      {"transaction_id", "user_ids", "votes_to_delete", "deleted": bool}
    """
    group = get_group_or_404(group_id, session, for_update=True)
    require_member(group, user_id)

    member_ids = list(group.member_ids)
    voter_ids = get_voter_ids(group_id, session)

    if user_id in voter_ids:
        logger.debug("User %s already voted to delete transaction %s", user_id, group_id)
    else:
        _record_vote(group_id, user_id, session)
        voter_ids.add(user_id)

    if voter_ids.issuperset(member_ids):
        _delete_group(group, session)
        logger.info("Transaction %s deleted by unanimous vote (last voter %s)", group_id, user_id)
        return _vote_state(group_id, member_ids, voter_ids, deleted=True)

    logger.info(
        "User %s voted to delete transaction %s (%d/%d)",
        user_id, group_id, len(voter_ids), len(member_ids),
    )
    return _vote_state(group_id, member_ids, voter_ids, deleted=False)


def remove_vote(group_id: int, user_id: int, session: Session) -> dict:
    """
    Withdraws user_id's vote. No-op when the user has not voted.

    Raises:
      AppError(INVALID_GROUP, 404) — group unknown or already deleted
      AppError(NOT_A_MEMBER, 403)  — user_id is not in the group
    """
    group = get_group_or_404(group_id, session, for_update=True)
    require_member(group, user_id)

    voter_ids = get_voter_ids(group_id, session)
    if user_id in voter_ids:
        _discard_vote(group_id, user_id, session)
        voter_ids.discard(user_id)
        logger.info("User %s withdrew their vote on transaction %s", user_id, group_id)

    return _vote_state(group_id, list(group.member_ids), voter_ids, deleted=False)
