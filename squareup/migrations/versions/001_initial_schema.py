"""Initial schema — accounts, friends, groups, contributions, delete votes.

Revision: 001_initial_schema
Created:  2026-10-19

Append-only: never edit this file once it has been applied to a database.
Schema changes go in a new revision.

Creation order (FK dependencies):
  users → refresh_tokens, one_time_codes, friend_requests, friendships
        → groups → memberships, delete_votes
        → contributions → receiver_shares

ON DELETE policies:
  refresh_tokens.user_id          → CASCADE
  friend_requests.*, friendships.* → CASCADE
  groups.created_by               → SET NULL
  memberships.group_id            → CASCADE   (group delete takes its members)
  memberships.user_id             → RESTRICT
  contributions.group_id          → CASCADE   (group delete takes its history)
  contributions.sender_id         → RESTRICT
  receiver_shares.contribution_id → CASCADE
  receiver_shares.user_id         → RESTRICT
  delete_votes.*                  → CASCADE

OTP purpose is a VARCHAR checked by the ORM (Enum(native_enum=False)), so no
PostgreSQL enum type is created.
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision: str = "001_initial_schema"
down_revision: str | None = None
branch_labels: tuple | None = None
depends_on: tuple | None = None


def _created_at(name: str = "created_at") -> sa.Column:
    return sa.Column(
        name,
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=sa.func.now(),
    )


def upgrade() -> None:

    # ── users ──────────────────────────────────────────────────────────────

    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("username", sa.String(30), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("first_name", sa.String(50), nullable=False),
        sa.Column("last_name", sa.String(50), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint("id", name="pk_users"),
        sa.UniqueConstraint("username", name="uq_users_username"),
        sa.UniqueConstraint("email", name="uq_users_email"),
        sa.CheckConstraint("username = LOWER(username)", name="ck_users_username_lower"),
        sa.CheckConstraint("email = LOWER(email) AND email LIKE '%@%'", name="ck_users_email_lower"),
        sa.CheckConstraint(
            "LENGTH(TRIM(first_name)) > 0 AND LENGTH(TRIM(last_name)) > 0",
            name="ck_users_names_nonempty",
        ),
    )

    # ── refresh_tokens ─────────────────────────────────────────────────────

    op.create_table(
        "refresh_tokens",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE", name="fk_refresh_tokens_user"),
            nullable=False,
        ),
        sa.Column("token_hash", sa.String(255), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("revoked", sa.Boolean(), nullable=False, server_default=sa.false()),
        _created_at(),
        sa.PrimaryKeyConstraint("id", name="pk_refresh_tokens"),
        sa.UniqueConstraint("token_hash", name="uq_refresh_tokens_hash"),
    )
    op.create_index("ix_refresh_tokens_user_id", "refresh_tokens", ["user_id"])

    # ── one_time_codes ─────────────────────────────────────────────────────
    # email is not a FK: signup codes exist before their user does.

    op.create_table(
        "one_time_codes",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("purpose", sa.String(20), nullable=False),
        sa.Column("code_hash", sa.String(255), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("consumed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("failed_attempts", sa.Integer(), nullable=False, server_default="0"),
        _created_at(),
        sa.PrimaryKeyConstraint("id", name="pk_one_time_codes"),
    )
    op.create_index("idx_one_time_codes_lookup", "one_time_codes", ["email", "purpose"])

    # ── friend_requests / friendships ──────────────────────────────────────

    op.create_table(
        "friend_requests",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column(
            "sender_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE", name="fk_friend_requests_sender"),
            nullable=False,
        ),
        sa.Column(
            "receiver_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE", name="fk_friend_requests_receiver"),
            nullable=False,
        ),
        _created_at(),
        sa.PrimaryKeyConstraint("id", name="pk_friend_requests"),
        sa.UniqueConstraint("sender_id", "receiver_id", name="uq_friend_requests_pair"),
        sa.CheckConstraint("sender_id <> receiver_id", name="ck_friend_requests_not_self"),
    )
    op.create_index("ix_friend_requests_sender_id", "friend_requests", ["sender_id"])
    op.create_index("ix_friend_requests_receiver_id", "friend_requests", ["receiver_id"])

    op.create_table(
        "friendships",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE", name="fk_friendships_user"),
            nullable=False,
        ),
        sa.Column(
            "friend_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE", name="fk_friendships_friend"),
            nullable=False,
        ),
        _created_at(),
        sa.PrimaryKeyConstraint("id", name="pk_friendships"),
        sa.UniqueConstraint("user_id", "friend_id", name="uq_friendships_pair"),
        sa.CheckConstraint("user_id <> friend_id", name="ck_friendships_not_self"),
    )
    op.create_index("ix_friendships_user_id", "friendships", ["user_id"])

    # ── groups ("transactions" on the wire) ────────────────────────────────

    op.create_table(
        "groups",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column(
            "created_by",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="SET NULL", name="fk_groups_creator"),
            nullable=True,
        ),
        _created_at(),
        sa.PrimaryKeyConstraint("id", name="pk_groups"),
        sa.CheckConstraint("LENGTH(TRIM(name)) > 0", name="ck_groups_name_nonempty"),
    )

    op.create_table(
        "memberships",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="RESTRICT", name="fk_memberships_user"),
            nullable=False,
        ),
        sa.Column(
            "group_id",
            sa.Integer(),
            sa.ForeignKey("groups.id", ondelete="CASCADE", name="fk_memberships_group"),
            nullable=False,
        ),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        _created_at("joined_at"),
        sa.PrimaryKeyConstraint("id", name="pk_memberships"),
        sa.UniqueConstraint("user_id", "group_id", name="uq_memberships_user_group"),
    )
    op.create_index("ix_memberships_user_id", "memberships", ["user_id"])
    op.create_index("ix_memberships_group_id", "memberships", ["group_id"])

    op.create_table(
        "delete_votes",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column(
            "group_id",
            sa.Integer(),
            sa.ForeignKey("groups.id", ondelete="CASCADE", name="fk_delete_votes_group"),
            nullable=False,
        ),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE", name="fk_delete_votes_user"),
            nullable=False,
        ),
        _created_at(),
        sa.PrimaryKeyConstraint("id", name="pk_delete_votes"),
        sa.UniqueConstraint("group_id", "user_id", name="uq_delete_votes_group_user"),
    )
    op.create_index("ix_delete_votes_group_id", "delete_votes", ["group_id"])

    # ── contributions / receiver_shares ────────────────────────────────────
    # Amounts are NUMERIC(12, 2); never FLOAT.

    op.create_table(
        "contributions",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column(
            "group_id",
            sa.Integer(),
            sa.ForeignKey("groups.id", ondelete="CASCADE", name="fk_contributions_group"),
            nullable=False,
        ),
        sa.Column(
            "sender_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="RESTRICT", name="fk_contributions_sender"),
            nullable=False,
        ),
        sa.Column("description", sa.String(255), nullable=False),
        sa.Column("total_amount", sa.Numeric(12, 2), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint("id", name="pk_contributions"),
        sa.CheckConstraint("total_amount > 0", name="ck_contributions_total_positive"),
        sa.CheckConstraint(
            "LENGTH(TRIM(description)) > 0",
            name="ck_contributions_description_nonempty",
        ),
    )
    op.create_index("ix_contributions_group_id", "contributions", ["group_id"])
    op.create_index("ix_contributions_sender_id", "contributions", ["sender_id"])
    op.create_index("idx_contributions_feed", "contributions", ["created_at", "id"])

    op.create_table(
        "receiver_shares",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column(
            "contribution_id",
            sa.Integer(),
            sa.ForeignKey(
                "contributions.id",
                ondelete="CASCADE",
                name="fk_receiver_shares_contribution",
            ),
            nullable=False,
        ),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="RESTRICT", name="fk_receiver_shares_user"),
            nullable=False,
        ),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_receiver_shares"),
        sa.UniqueConstraint(
            "contribution_id",
            "user_id",
            name="uq_receiver_shares_contribution_user",
        ),
        sa.CheckConstraint("amount > 0", name="ck_receiver_shares_amount_positive"),
    )
    op.create_index("ix_receiver_shares_contribution_id", "receiver_shares", ["contribution_id"])
    op.create_index("ix_receiver_shares_user_id", "receiver_shares", ["user_id"])


def downgrade() -> None:
    """Local development reset only; production rolls forward."""
    op.drop_table("receiver_shares")
    op.drop_table("contributions")
    op.drop_table("delete_votes")
    op.drop_table("memberships")
    op.drop_table("groups")
    op.drop_table("friendships")
    op.drop_table("friend_requests")
    op.drop_table("one_time_codes")
    op.drop_table("refresh_tokens")
    op.drop_table("users")
