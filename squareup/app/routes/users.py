# squareup/app/routes/users.py
from flask import Blueprint, g, jsonify, request

from squareup.app.extensions import db
from squareup.app.middleware.auth_middleware import require_auth
from squareup.app.schemas.friend_schema import SearchUsersSchema
from squareup.app.services import query_service

users_bp = Blueprint("users", __name__)


@users_bp.route("/search-users", methods=["GET"])
@require_auth
def search_users():
    # Username prefix search for the add-friend and new-transaction screens.
    data = SearchUsersSchema().load(request.args.to_dict())
    users = query_service.search_users_by_username_prefix(
        prefix=data["prefix"],
        caller_id=g.user_id,
        session=db.session,
    )
    return jsonify({"data": {"users": users}, "warnings": []}), 200
