"""
routes/friends.py — Friend request and friendship route handlers.

Every POST body is {"user_id": <the other party>}; the caller comes from the
access token.

Endpoints (url_prefix=/api):
  GET  /get-friends                       → 200
  GET  /get-friend-requests               → 200  {incoming, outgoing}
  POST /add-friend-request                → 201
  POST /accept-friend-request             → 200  (user_id = sender)
  POST /remove-friend-request             → 200  reject incoming (user_id = sender)
  POST /remove-outgoing-friend-request    → 200  withdraw (user_id = receiver)
  POST /remove-friend                     → 200
"""

from __future__ import annotations

from flask import Blueprint, g, jsonify, request

from squareup.app.extensions import db
from squareup.app.middleware.auth_middleware import require_auth
from squareup.app.schemas.friend_schema import FriendUserSchema
from squareup.app.services import friend_service

friends_bp = Blueprint("friends", __name__)


@friends_bp.route("/get-friends", methods=["GET"])
@require_auth
def get_friends():
    result = friend_service.list_friends(user_id=g.user_id, session=db.session)
    return jsonify({"data": {"friends": result}, "warnings": []}), 200


@friends_bp.route("/get-friend-requests", methods=["GET"])
@require_auth
def get_friend_requests():
    result = friend_service.list_friend_requests(user_id=g.user_id, session=db.session)
    return jsonify({"data": result, "warnings": []}), 200


@friends_bp.route("/add-friend-request", methods=["POST"])
@require_auth
def add_friend_request():
    data = FriendUserSchema().load(request.get_json(force=True) or {})
    result = friend_service.send_friend_request(
        sender_id=g.user_id,
        receiver_id=data["user_id"],
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": {"receiver": result}, "warnings": []}), 201


@friends_bp.route("/accept-friend-request", methods=["POST"])
@require_auth
def accept_friend_request():
    data = FriendUserSchema().load(request.get_json(force=True) or {})
    result = friend_service.accept_friend_request(
        receiver_id=g.user_id,
        sender_id=data["user_id"],
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": {"friend": result}, "warnings": []}), 200


@friends_bp.route("/remove-friend-request", methods=["POST"])
@require_auth
def remove_friend_request():
    """POST /remove-friend-request — Reject a request someone sent the caller."""
    data = FriendUserSchema().load(request.get_json(force=True) or {})
    friend_service.reject_friend_request(
        receiver_id=g.user_id,
        sender_id=data["user_id"],
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": {"removed": True, "user_id": data["user_id"]}, "warnings": []}), 200


@friends_bp.route("/remove-outgoing-friend-request", methods=["POST"])
@require_auth
def remove_outgoing_friend_request():
    """POST /remove-outgoing-friend-request — Withdraw the caller's own request."""
    data = FriendUserSchema().load(request.get_json(force=True) or {})
    friend_service.withdraw_friend_request(
        sender_id=g.user_id,
        receiver_id=data["user_id"],
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": {"removed": True, "user_id": data["user_id"]}, "warnings": []}), 200


@friends_bp.route("/remove-friend", methods=["POST"])
@require_auth
def remove_friend():
    data = FriendUserSchema().load(request.get_json(force=True) or {})
    friend_service.remove_friend(
        user_id=g.user_id,
        friend_id=data["user_id"],
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": {"removed": True, "user_id": data["user_id"]}, "warnings": []}), 200
