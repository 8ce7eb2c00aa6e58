"""
routes/contributions.py — The caller's contribution feed.

Endpoint (url_prefix=/api):
  GET /get-contributions?limit=15&afterId=123   → 200

Pass the last contribution_id of a page as afterId to get the next page.
has_more is false once a page comes back short.
"""

from __future__ import annotations

from flask import Blueprint, current_app, g, jsonify, request

from squareup.app.extensions import db
from squareup.app.middleware.auth_middleware import require_auth
from squareup.app.schemas.transaction_schema import ContributionFeedQuerySchema
from squareup.app.services import query_service

contributions_bp = Blueprint("contributions", __name__)


@contributions_bp.route("/get-contributions", methods=["GET"])
@require_auth
def get_contributions():
    data = ContributionFeedQuerySchema().load(request.args.to_dict())

    limit = data["limit"] or current_app.config["CONTRIBUTIONS_PAGE_LIMIT"]
    limit = min(limit, current_app.config["CONTRIBUTIONS_MAX_LIMIT"])

    result = query_service.list_contributions_for_user(
        user_id=g.user_id,
        limit=limit,
        session=db.session,
        after_id=data["after_id"],
    )
    return jsonify({"data": result, "warnings": []}), 200
