"""
models/membership.py — Who belongs to a group ("transaction").

The member set is written once, when the group is created, and removed
with the group. `position` keeps the order the creator listed members in
(creator first), which is the order `user_ids` comes back in.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from squareup.app.extensions import db


class Membership(db.Model):
    __tablename__ = "memberships"
    __table_args__ = (
        UniqueConstraint("user_id", "group_id", name="uq_memberships_user_group"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    # RESTRICT: a user who still belongs to a group cannot be deleted.
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True,
    )
    group_id: Mapped[int] = mapped_column(
        ForeignKey("groups.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    joined_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now(),
    )

    user: Mapped["User"] = relationship("User", back_populates="memberships")  # noqa: F821
    group: Mapped["Group"] = relationship("Group", back_populates="memberships")  # noqa: F821

    def __repr__(self) -> str:  # pragma: no cover
        return f"<Membership group={self.group_id} user={self.user_id} #{self.position}>"
