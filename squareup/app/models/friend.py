"""
models/friend.py — FriendRequest and Friendship table definitions.

No business logic. No imports from services or routes.

A FriendRequest row exists only while the request is pending; accepting,
rejecting or withdrawing deletes it. A friendship is stored as two mirrored
Friendship rows (a→b and b→a) so "list my friends" is a single-column lookup.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from squareup.app.extensions import db


class FriendRequest(db.Model):
    __tablename__ = "friend_requests"

    __table_args__ = (
        UniqueConstraint("sender_id", "receiver_id", name="uq_friend_requests_pair"),
        CheckConstraint("sender_id <> receiver_id", name="ck_friend_requests_not_self"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    sender_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    receiver_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    sender: Mapped["User"] = relationship("User", foreign_keys=[sender_id])  # noqa: F821
    receiver: Mapped["User"] = relationship("User", foreign_keys=[receiver_id])  # noqa: F821

    def __repr__(self) -> str:  # pragma: no cover
        return f"<FriendRequest {self.sender_id}->{self.receiver_id}>"


class Friendship(db.Model):
    __tablename__ = "friendships"

    __table_args__ = (
        UniqueConstraint("user_id", "friend_id", name="uq_friendships_pair"),
        CheckConstraint("user_id <> friend_id", name="ck_friendships_not_self"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    friend_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    friend: Mapped["User"] = relationship("User", foreign_keys=[friend_id])  # noqa: F821

    def __repr__(self) -> str:  # pragma: no cover
        return f"<Friendship {self.user_id}<->{self.friend_id}>"
