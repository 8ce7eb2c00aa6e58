"""
models/contribution.py — Contribution table definition.

No business logic. No imports from services or routes.

Key design points:
  - Contributions are append-only. No column is ever updated after insert.
  - `total_amount` uses Numeric(12, 2) — never Float.
  - The split lives in ReceiverShare rows (models/receiver_share.py).
    The receiver amounts are NOT required to add up to total_amount; the
    service warns when they exceed it.
  - `created_at` gets a Python-side default as well as the server default so
    feed ordering has sub-second resolution on every backend.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Numeric,
    String,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from squareup.app.extensions import db


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Contribution(db.Model):
    __tablename__ = "contributions"

    __table_args__ = (
        CheckConstraint("total_amount > 0", name="ck_contributions_total_positive"),
        CheckConstraint(
            "LENGTH(TRIM(description)) > 0",
            name="ck_contributions_description_nonempty",
        ),
        # Feed queries walk (created_at desc, id desc).
        Index("idx_contributions_feed", "created_at", "id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    group_id: Mapped[int] = mapped_column(
        ForeignKey("groups.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # The payer. ON DELETE RESTRICT — history must not lose its payer.
    sender_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    description: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    total_amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=func.now(),
    )

    # ── Relationships ──────────────────────────────────────────────────────

    group: Mapped["Group"] = relationship(  # noqa: F821
        "Group",
        back_populates="contributions",
    )

    sender: Mapped["User"] = relationship(  # noqa: F821
        "User",
        foreign_keys=[sender_id],
    )

    receiver_shares: Mapped[list["ReceiverShare"]] = relationship(  # noqa: F821
        "ReceiverShare",
        back_populates="contribution",
        order_by="ReceiverShare.id",
        cascade="all, delete-orphan",
    )

    @property
    def receiver_amounts(self) -> dict[int, Decimal]:
        """{receiver_user_id: amount owed to the sender}"""
        return {share.user_id: share.amount for share in self.receiver_shares}

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"<Contribution id={self.id} "
            f"group_id={self.group_id} "
            f"sender_id={self.sender_id} "
            f"total_amount={self.total_amount}>"
        )
