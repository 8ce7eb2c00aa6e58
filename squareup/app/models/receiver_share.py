"""
models/receiver_share.py — ReceiverShare table definition.

One row per receiver of a contribution: `amount` is what that receiver owes
the contribution's sender.

Key design points:
  - `amount` uses Numeric(12, 2) — never Float.
  - contribution_id is ON DELETE CASCADE — shares are owned by their contribution.
  - UNIQUE(contribution_id, user_id): a receiver appears once per contribution
    (the request body is a JSON object keyed by user id, so duplicates cannot
    be expressed on the wire either).
  - "Sender is never a receiver" is enforced in contribution_service.py.
"""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import CheckConstraint, ForeignKey, Numeric, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from squareup.app.extensions import db


class ReceiverShare(db.Model):
    __tablename__ = "receiver_shares"

    __table_args__ = (
        UniqueConstraint("contribution_id", "user_id", name="uq_receiver_shares_contribution_user"),
        CheckConstraint("amount > 0", name="ck_receiver_shares_amount_positive"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    contribution_id: Mapped[int] = mapped_column(
        ForeignKey("contributions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
    )

    contribution: Mapped["Contribution"] = relationship(  # noqa: F821
        "Contribution",
        back_populates="receiver_shares",
    )

    user: Mapped["User"] = relationship("User")  # noqa: F821

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"<ReceiverShare id={self.id} "
            f"contribution_id={self.contribution_id} "
            f"user_id={self.user_id} "
            f"amount={self.amount}>"
        )
