"""
routes/transactions.py — Groups ("transactions"), contributions and the
unanimous delete vote.

Layer rules:
  - Parse, validate, call the service, commit, return envelope.
  - No business logic. No DB queries.
  - Writes to one group run inside group_write_lock(transaction_id) and
    commit before the lock is released, so two writers never interleave
    their read-check-write sequences on the same group.

Endpoints (url_prefix=/api):
  POST /create-transaction                  → 201
  POST /add-contribution                    → 201  (+ fresh balances, warnings)
  GET  /get-user-transactions               → 200
  POST /add-vote-to-delete-transaction      → 200
  POST /remove-vote-to-delete-transaction   → 200
"""

from __future__ import annotations

from flask import Blueprint, g, jsonify, request

from squareup.app.extensions import db
from squareup.app.middleware.auth_middleware import require_auth
from squareup.app.schemas.transaction_schema import (
    AddContributionSchema,
    CreateTransactionSchema,
    TransactionIdSchema,
)
from squareup.app.services import (
    balance_service,
    contribution_service,
    group_service,
    query_service,
    vote_service,
)
from squareup.app.services.locks import group_write_lock

transactions_bp = Blueprint("transactions", __name__)


@transactions_bp.route("/create-transaction", methods=["POST"])
@require_auth
def create_transaction():
    """POST /create-transaction — Caller is always a member of the new group."""
    data = CreateTransactionSchema().load(request.get_json(force=True) or {})
    group = group_service.create_group(
        name=data["name"],
        creator_id=g.user_id,
        user_ids=data["user_ids"],
        session=db.session,
    )
    result = query_service.build_group_dict(group, db.session)
    db.session.commit()
    return jsonify({"data": result, "warnings": []}), 201


@transactions_bp.route("/add-contribution", methods=["POST"])
@require_auth
def add_contribution():
    """
    POST /add-contribution — The caller is the sender.

    The response carries the group's balances recomputed after the write,
    and an ALLOCATION_EXCEEDS_TOTAL warning when receiver amounts add up to
    more than the total.
    """
    data = AddContributionSchema().load(request.get_json(force=True) or {})
    transaction_id = data["transaction_id"]

    with group_write_lock(transaction_id):
        contribution, warnings = contribution_service.add_contribution(
            group_id=transaction_id,
            sender_id=g.user_id,
            description=data["description"],
            total_amount=data["total_amount"],
            receiver_amounts=data["receiver_amounts"],
            session=db.session,
        )
        result = {
            "contribution": query_service.build_contribution_dict(contribution),
            **balance_service.build_balance_summary(transaction_id, db.session),
        }
        db.session.commit()

    return jsonify({"data": result, "warnings": warnings}), 201


@transactions_bp.route("/get-user-transactions", methods=["GET"])
@require_auth
def get_user_transactions():
    """GET /get-user-transactions — Every group of the caller with balances."""
    result = query_service.get_groups_for_user(
        user_id=g.user_id,
        session=db.session,
    )
    return jsonify({"data": result, "warnings": []}), 200


@transactions_bp.route("/add-vote-to-delete-transaction", methods=["POST"])
@require_auth
def add_vote_to_delete_transaction():
    """
    POST /add-vote-to-delete-transaction

    The vote that completes the member set deletes the group; the response
    then reports "deleted": true and the group is gone (INVALID_GROUP).
    """
    data = TransactionIdSchema().load(request.get_json(force=True) or {})
    transaction_id = data["transaction_id"]

    with group_write_lock(transaction_id):
        result = vote_service.add_vote(
            group_id=transaction_id,
            user_id=g.user_id,
            session=db.session,
        )
        db.session.commit()

    return jsonify({"data": result, "warnings": []}), 200


@transactions_bp.route("/remove-vote-to-delete-transaction", methods=["POST"])
@require_auth
def remove_vote_to_delete_transaction():
    data = TransactionIdSchema().load(request.get_json(force=True) or {})
    transaction_id = data["transaction_id"]

    with group_write_lock(transaction_id):
        result = vote_service.remove_vote(
            group_id=transaction_id,
            user_id=g.user_id,
            session=db.session,
        )
        db.session.commit()

    return jsonify({"data": result, "warnings": []}), 200
