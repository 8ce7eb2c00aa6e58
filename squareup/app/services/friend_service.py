"""
services/friend_service.py — Friend requests and friendships.

    (none) ──send──▶ Pending(a→b) ──accept──▶ Friends(a, b)
                          │
                          └──reject / withdraw──▶ (none)
    Friends(a, b) ──remove──▶ (none)

A pending request is one FriendRequest row; a friendship is two mirrored
Friendship rows. Only one pending request may exist per pair, in either
direction.

Layer rules:
  - No Flask imports. Pure Python with a SQLAlchemy session parameter.
  - Commits are the route's responsibility — only flush here.
"""

from __future__ import annotations

import logging

from sqlalchemy import delete, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from squareup.app.errors import AppError, ErrorCode
from squareup.app.models.friend import FriendRequest, Friendship
from squareup.app.models.user import User
from squareup.app.services.query_service import build_user_summary

logger = logging.getLogger(__name__)


# ── Private helpers ────────────────────────────────────────────────────────

def _get_user_or_404(user_id: int, session: Session) -> User:
    user = session.get(User, user_id)
    if user is None:
        raise AppError(
            ErrorCode.USER_NOT_FOUND,
            f"User {user_id} does not exist.",
            404,
            field="user_id",
        )
    return user


def _are_friends(user_id: int, other_id: int, session: Session) -> bool:
    return session.execute(
        select(Friendship.id).where(
            Friendship.user_id == user_id,
            Friendship.friend_id == other_id,
        )
    ).first() is not None


def _get_request(sender_id: int, receiver_id: int, session: Session) -> FriendRequest | None:
    return session.execute(
        select(FriendRequest).where(
            FriendRequest.sender_id == sender_id,
            FriendRequest.receiver_id == receiver_id,
        )
    ).scalar_one_or_none()


def _get_request_or_404(sender_id: int, receiver_id: int, session: Session) -> FriendRequest:
    request = _get_request(sender_id, receiver_id, session)
    if request is None:
        raise AppError(
            ErrorCode.FRIEND_REQUEST_NOT_FOUND,
            f"There is no pending friend request from user {sender_id} to user {receiver_id}.",
            404,
            field="user_id",
        )
    return request


# ── Public service functions ───────────────────────────────────────────────

def send_friend_request(sender_id: int, receiver_id: int, session: Session) -> dict:
    """
    Creates a pending request sender → receiver.

    Raises:
      AppError(SELF_FRIEND_REQUEST, 422)
      AppError(USER_NOT_FOUND, 404)
      AppError(ALREADY_FRIENDS, 409)
      AppError(FRIEND_REQUEST_EXISTS, 409) — pending in either direction
    """
    if sender_id == receiver_id:
        raise AppError(
            ErrorCode.SELF_FRIEND_REQUEST,
            "You cannot send a friend request to yourself.",
            422,
            field="user_id",
        )

    receiver = _get_user_or_404(receiver_id, session)

    if _are_friends(sender_id, receiver_id, session):
        raise AppError(
            ErrorCode.ALREADY_FRIENDS,
            f"You are already friends with {receiver.username}.",
            409,
            field="user_id",
        )

    if _get_request(sender_id, receiver_id, session) or _get_request(receiver_id, sender_id, session):
        raise AppError(
            ErrorCode.FRIEND_REQUEST_EXISTS,
            f"A friend request between you and {receiver.username} is already pending.",
            409,
            field="user_id",
        )

    session.add(FriendRequest(sender_id=sender_id, receiver_id=receiver_id))
    try:
        session.flush()
    except IntegrityError:
        # A concurrent send for the same pair won the unique constraint.
        raise AppError(
            ErrorCode.FRIEND_REQUEST_EXISTS,
            f"A friend request between you and {receiver.username} is already pending.",
            409,
            field="user_id",
        )
    logger.info("Friend request %s -> %s", sender_id, receiver_id)
    return build_user_summary(receiver)


def accept_friend_request(receiver_id: int, sender_id: int, session: Session) -> dict:
    """
    Turns the pending request sender → receiver into a friendship.

    Raises:
      AppError(FRIEND_REQUEST_NOT_FOUND, 404)
      AppError(ALREADY_FRIENDS, 409) — a concurrent accept of the same
        request committed first
    """
    request = _get_request_or_404(sender_id, receiver_id, session)
    session.delete(request)
    session.add_all([
        Friendship(user_id=receiver_id, friend_id=sender_id),
        Friendship(user_id=sender_id, friend_id=receiver_id),
    ])
    try:
        session.flush()
    except IntegrityError:
        raise AppError(
            ErrorCode.ALREADY_FRIENDS,
            "This friend request has already been accepted.",
            409,
            field="user_id",
        )
    logger.info("Friend request %s -> %s accepted", sender_id, receiver_id)
    return build_user_summary(_get_user_or_404(sender_id, session))


def reject_friend_request(receiver_id: int, sender_id: int, session: Session) -> None:
    """Deletes an incoming pending request without creating a friendship."""
    request = _get_request_or_404(sender_id, receiver_id, session)
    session.delete(request)
    session.flush()


def withdraw_friend_request(sender_id: int, receiver_id: int, session: Session) -> None:
    """Deletes an outgoing pending request."""
    request = _get_request_or_404(sender_id, receiver_id, session)
    session.delete(request)
    session.flush()


def remove_friend(user_id: int, friend_id: int, session: Session) -> None:
    """
    Ends a friendship (both mirrored rows).

    Raises:
      AppError(NOT_FRIENDS, 404)
    """
    if not _are_friends(user_id, friend_id, session):
        raise AppError(
            ErrorCode.NOT_FRIENDS,
            f"You are not friends with user {friend_id}.",
            404,
            field="user_id",
        )

    session.execute(
        delete(Friendship).where(
            or_(
                (Friendship.user_id == user_id) & (Friendship.friend_id == friend_id),
                (Friendship.user_id == friend_id) & (Friendship.friend_id == user_id),
            )
        )
    )
    session.flush()
    logger.info("Friendship %s <-> %s removed", user_id, friend_id)


def list_friends(user_id: int, session: Session) -> list[dict]:
    stmt = (
        select(User)
        .join(Friendship, Friendship.friend_id == User.id)
        .where(Friendship.user_id == user_id)
        .order_by(User.username)
    )
    return [build_user_summary(u) for u in session.execute(stmt).scalars().all()]


def list_friend_requests(user_id: int, session: Session) -> dict:
    """Pending requests: {"incoming": [senders], "outgoing": [receivers]}"""
    incoming = session.execute(
        select(User)
        .join(FriendRequest, FriendRequest.sender_id == User.id)
        .where(FriendRequest.receiver_id == user_id)
        .order_by(FriendRequest.created_at.desc(), FriendRequest.id.desc())
    ).scalars().all()

    outgoing = session.execute(
        select(User)
        .join(FriendRequest, FriendRequest.receiver_id == User.id)
        .where(FriendRequest.sender_id == user_id)
        .order_by(FriendRequest.created_at.desc(), FriendRequest.id.desc())
    ).scalars().all()

    return {
        "incoming": [build_user_summary(u) for u in incoming],
        "outgoing": [build_user_summary(u) for u in outgoing],
    }
