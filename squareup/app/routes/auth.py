"""
routes/auth.py — Account and token route handlers.

Layer rules:
  - Parse the body, validate with a schema (ValidationError → 400)
  - Call exactly ONE service function
  - Commit the DB session
  - Return the envelope: {"data": {...}, "warnings": []}

AppError propagates to the global handler in app/__init__.py — routes never
catch it.

Endpoints (url_prefix=/api):
  POST /signup          → 201   no auth
  POST /login           → 200   no auth
  POST /send-otp        → 200   no auth
  POST /verify-token    → 200   no auth
  POST /check-email     → 200   no auth
  POST /check-username  → 200   no auth
  POST /reset-password  → 200   no auth
  POST /refresh-token   → 200   no auth
  POST /logout          → 200   auth
  GET  /me              → 200   auth
"""

from __future__ import annotations

from flask import Blueprint, g, jsonify, request

from squareup.app.extensions import db
from squareup.app.middleware.auth_middleware import require_auth
from squareup.app.schemas.auth_schema import (
    CheckEmailSchema,
    CheckUsernameSchema,
    LoginSchema,
    RefreshTokenSchema,
    ResetPasswordSchema,
    SendOtpSchema,
    SignupSchema,
    VerifyTokenSchema,
)
from squareup.app.services import auth_service

auth_bp = Blueprint("auth", __name__)


@auth_bp.route("/signup", methods=["POST"])
def signup():
    """POST /signup — Create an account with a signup code; return tokens."""
    data = SignupSchema().load(request.get_json(force=True) or {})
    result = auth_service.signup(
        first_name=data["first_name"],
        last_name=data["last_name"],
        username=data["username"],
        email=data["email"],
        password=data["password"],
        otp=data["otp"],
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": result, "warnings": []}), 201


@auth_bp.route("/login", methods=["POST"])
def login():
    """POST /login — user_id is a username or an email."""
    data = LoginSchema().load(request.get_json(force=True) or {})
    result = auth_service.login(
        user_id=data["user_id"],
        password=data["password"],
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": result, "warnings": []}), 200


@auth_bp.route("/send-otp", methods=["POST"])
def send_otp():
    data = SendOtpSchema().load(request.get_json(force=True) or {})
    auth_service.send_otp(
        email=data["email"],
        purpose=data["purpose"],
        session=db.session,
    )
    db.session.commit()
    return jsonify({
        "data": {"sent": True, "email": data["email"]},
        "warnings": [],
    }), 200


@auth_bp.route("/verify-token", methods=["POST"])
def verify_token():
    data = VerifyTokenSchema().load(request.get_json(force=True) or {})
    valid = auth_service.verify_access_token(data["token"])
    return jsonify({"data": {"valid": valid}, "warnings": []}), 200


@auth_bp.route("/check-email", methods=["POST"])
def check_email():
    data = CheckEmailSchema().load(request.get_json(force=True) or {})
    available = auth_service.is_email_available(data["email"], session=db.session)
    return jsonify({
        "data": {"email": data["email"], "available": available},
        "warnings": [],
    }), 200


@auth_bp.route("/check-username", methods=["POST"])
def check_username():
    data = CheckUsernameSchema().load(request.get_json(force=True) or {})
    available = auth_service.is_username_available(data["username"], session=db.session)
    return jsonify({
        "data": {"username": data["username"], "available": available},
        "warnings": [],
    }), 200


@auth_bp.route("/reset-password", methods=["POST"])
def reset_password():
    """POST /reset-password — Verify the reset code, set the new password."""
    data = ResetPasswordSchema().load(request.get_json(force=True) or {})
    auth_service.reset_password(
        email=data["email"],
        otp=data["otp"],
        password=data["password"],
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": {"reset": True}, "warnings": []}), 200


@auth_bp.route("/refresh-token", methods=["POST"])
def refresh_token():
    """POST /refresh-token — Rotate the refresh token; return a new pair."""
    data = RefreshTokenSchema().load(request.get_json(force=True) or {})
    result = auth_service.refresh_tokens(
        raw_refresh_token=data["refresh_token"],
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": result, "warnings": []}), 200


@auth_bp.route("/logout", methods=["POST"])
@require_auth
def logout():
    """POST /logout — Revoke the refresh token. (Auth required.)"""
    data = RefreshTokenSchema().load(request.get_json(force=True) or {})
    auth_service.logout_user(
        raw_refresh_token=data["refresh_token"],
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": {"logged_out": True}, "warnings": []}), 200


@auth_bp.route("/me", methods=["GET"])
@require_auth
def me():
    result = auth_service.get_current_user(user_id=g.user_id, session=db.session)
    return jsonify({"data": result, "warnings": []}), 200
