"""
models/group.py — Group table definition.

A group is called a "transaction" on the wire (`transaction_id`,
POST /api/create-transaction). No business logic here.

The member set is fixed at creation. Deleting a group (unanimous vote)
removes its memberships, contributions and votes in the same transaction;
the ORM cascades below carry that out on every backend, the FK
ON DELETE CASCADE clauses back it up on PostgreSQL.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from squareup.app.extensions import db


class Group(db.Model):
    __tablename__ = "groups"

    __table_args__ = (
        # Also enforced by the marshmallow schema.
        CheckConstraint(
            "LENGTH(TRIM(name)) > 0",
            name="ck_groups_name_nonempty",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )

    # SET NULL so deleting a creator's account does not take the group with it.
    created_by: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    # ── Relationships ──────────────────────────────────────────────────────

    creator: Mapped["User | None"] = relationship(  # noqa: F821
        "User",
        foreign_keys=[created_by],
    )

    memberships: Mapped[list["Membership"]] = relationship(  # noqa: F821
        "Membership",
        back_populates="group",
        order_by="Membership.position",
        cascade="all, delete-orphan",
    )

    contributions: Mapped[list["Contribution"]] = relationship(  # noqa: F821
        "Contribution",
        back_populates="group",
        cascade="all, delete-orphan",
    )

    delete_votes: Mapped[list["DeleteVote"]] = relationship(  # noqa: F821
        "DeleteVote",
        back_populates="group",
        cascade="all, delete-orphan",
    )

    @property
    def member_ids(self) -> list[int]:
        """Member user ids in creation order."""
        return [m.user_id for m in self.memberships]

    def __repr__(self) -> str:  # pragma: no cover
        return f"<Group id={self.id} name={self.name!r}>"
