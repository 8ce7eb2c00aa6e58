"""
middleware/auth_middleware.py — Bearer token authentication.

@require_auth resolves "Authorization: Bearer <access token>" to a user id
and stores it on flask.g.user_id. Routes pass g.user_id to services as a
plain int; services never look at flask.g or headers, so the acting user is
always explicit in every service call.

This layer answers "who is calling" (401) only. Whether the caller may touch
a given transaction is decided by the services (NOT_A_MEMBER, 403).

Error codes:
  TOKEN_MISSING  (401) — no Authorization header
  TOKEN_INVALID  (401) — not "Bearer <token>", bad signature, bad or missing sub
  TOKEN_EXPIRED  (401) — signature fine, exp in the past; call /api/refresh-token
"""

from __future__ import annotations

import functools
import logging
from typing import Callable

import jwt
from flask import current_app, g, request

from squareup.app.errors import AppError, ErrorCode

logger = logging.getLogger(__name__)


def require_auth(f: Callable) -> Callable:
    """
    Route decorator: rejects unauthenticated requests, sets g.user_id.

    Usage:
        @transactions_bp.route("/get-user-transactions", methods=["GET"])
        @require_auth
        def get_user_transactions():
            ... g.user_id ...
    """
    @functools.wraps(f)
    def decorated(*args, **kwargs):
        g.user_id = _user_id_from_token(_bearer_token())
        return f(*args, **kwargs)

    return decorated


def _bearer_token() -> str:
    header = request.headers.get("Authorization", "")
    if not header:
        raise AppError(
            ErrorCode.TOKEN_MISSING,
            "Authentication required. Send 'Authorization: Bearer <token>'.",
            401,
        )

    scheme, _, token = header.partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token or " " in token:
        raise AppError(
            ErrorCode.TOKEN_INVALID,
            "The Authorization header must look like 'Bearer <token>'.",
            401,
        )
    return token


def _user_id_from_token(token: str) -> int:
    """Verifies signature and expiry, returns the integer `sub` claim."""
    try:
        claims = jwt.decode(
            token,
            current_app.config["JWT_SECRET_KEY"],
            algorithms=[current_app.config.get("JWT_ALGORITHM", "HS256")],
        )
    except jwt.ExpiredSignatureError:
        raise AppError(
            ErrorCode.TOKEN_EXPIRED,
            "The access token has expired. Use POST /api/refresh-token to get a new one.",
            401,
        )
    except jwt.InvalidTokenError as exc:
        logger.debug("Rejected access token: %s", exc)
        raise AppError(
            ErrorCode.TOKEN_INVALID,
            "The access token is invalid.",
            401,
        )

    try:
        return int(claims["sub"])
    except (KeyError, TypeError, ValueError):
        raise AppError(
            ErrorCode.TOKEN_INVALID,
            "The access token does not identify a user.",
            401,
        )
