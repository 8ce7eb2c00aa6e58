"""
models/delete_vote.py — DeleteVote table definition.

One row per member who has voted to delete ("square up") a group.
The vote set of a group is exactly the set of its DeleteVote rows.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from squareup.app.extensions import db


class DeleteVote(db.Model):
    __tablename__ = "delete_votes"

    __table_args__ = (
        # A member votes at most once; repeat votes are no-ops in the service.
        UniqueConstraint("group_id", "user_id", name="uq_delete_votes_group_user"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    group_id: Mapped[int] = mapped_column(
        ForeignKey("groups.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    group: Mapped["Group"] = relationship(  # noqa: F821
        "Group",
        back_populates="delete_votes",
    )

    def __repr__(self) -> str:  # pragma: no cover
        return f"<DeleteVote group_id={self.group_id} user_id={self.user_id}>"
