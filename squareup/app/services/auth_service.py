"""
services/auth_service.py — Accounts, one-time codes and tokens.

Responsibilities:
  - Email / username availability checks
  - One-time codes (signup, password reset): issue, deliver, consume
  - User signup and credential validation (username or email + password)
  - JWT access token creation and verification (HS256)
  - Refresh token lifecycle (creation, rotation, revocation)
  - Password hashing (bcrypt) and reset

Layer rules:
  - No imports from routes or schemas
  - No use of flask.request, flask.g, or HTTP status codes
  - current_app.config is read for secrets, TTLs, bcrypt rounds and the
    OTP attempt limit only.

Token design:
  - Access token: JWT, HS256, sub = user_id (str), TTL JWT_ACCESS_TOKEN_EXPIRES
  - Refresh token: random hex string, stored as a SHA-256 hash. Every refresh
    revokes the presented token and issues a new pair (rotation).

One-time codes:
  - 6 digits, stored as a SHA-256 hash, TTL OTP_TTL_SECONDS.
  - Issuing a code invalidates earlier unused codes for the same email and
    purpose. A code is consumed on first successful use, and burned after
    OTP_MAX_ATTEMPTS wrong guesses.
  - deliver_code() is the delivery hook. It logs the code; sending mail is
    outside this service.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import secrets
from datetime import datetime, timedelta, timezone

import bcrypt
import jwt
from flask import current_app
from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from squareup.app.errors import AppError, ErrorCode
from squareup.app.models.one_time_code import OneTimeCode, OtpPurpose
from squareup.app.models.refresh_token import RefreshToken
from squareup.app.models.user import User
from squareup.app.services.query_service import build_user_summary

logger = logging.getLogger(__name__)


# ── Private helpers ────────────────────────────────────────────────────────

def _hash_secret(raw: str) -> str:
    """SHA-256 hex digest. Used for refresh tokens and one-time codes."""
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything stored here is UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _generate_code() -> str:
    return f"{secrets.randbelow(1_000_000):06d}"


def _hash_password(password: str) -> str:
    rounds = current_app.config.get("BCRYPT_LOG_ROUNDS", 12)
    return bcrypt.hashpw(
        password.encode("utf-8"),
        bcrypt.gensalt(rounds=rounds),
    ).decode("utf-8")


def _create_access_token(user_id: int) -> str:
    """
    Creates a signed JWT access token.
    Payload: sub (user_id as str), iat, exp, jti.
    """
    now = datetime.now(timezone.utc)
    expiry = now + current_app.config["JWT_ACCESS_TOKEN_EXPIRES"]
    payload = {
        "sub": str(user_id),
        "iat": now,
        "exp": expiry,
        # Each issued token is unique even if generated in the same second.
        "jti": secrets.token_hex(8),
    }
    return jwt.encode(
        payload,
        current_app.config["JWT_SECRET_KEY"],
        algorithm=current_app.config.get("JWT_ALGORITHM", "HS256"),
    )


def _create_refresh_token(user_id: int, session: Session) -> str:
    """
    Stores the hash of a new refresh token and returns the raw value.
    The raw value is sent to the client once and never persisted.
    """
    raw_token = secrets.token_hex(32)
    expires_at = datetime.now(timezone.utc) + current_app.config["JWT_REFRESH_TOKEN_EXPIRES"]

    session.add(RefreshToken(
        user_id=user_id,
        token_hash=_hash_secret(raw_token),
        expires_at=expires_at,
    ))
    session.flush()

    return raw_token


def _build_token_pair(user_id: int, session: Session) -> dict:
    return {
        "access_token": _create_access_token(user_id),
        "refresh_token": _create_refresh_token(user_id, session),
    }


def _build_user_dict(user: User) -> dict:
    return {
        **build_user_summary(user),
        "email": user.email,
    }


def _find_user_by_email(email: str, session: Session) -> User | None:
    return session.execute(
        select(User).where(func.lower(User.email) == email.lower())
    ).scalar_one_or_none()


def _find_user_by_username(username: str, session: Session) -> User | None:
    return session.execute(
        select(User).where(func.lower(User.username) == username.lower())
    ).scalar_one_or_none()


def _get_live_refresh_token(raw_refresh_token: str, session: Session) -> RefreshToken:
    record = session.execute(
        select(RefreshToken).where(RefreshToken.token_hash == _hash_secret(raw_refresh_token))
    ).scalar_one_or_none()

    now = datetime.now(timezone.utc)
    if record is None or record.revoked or _as_utc(record.expires_at) <= now:
        raise AppError(
            ErrorCode.REFRESH_TOKEN_INVALID,
            "The refresh token is invalid, expired, or has been revoked.",
            401,
        )
    return record


def _consume_code(email: str, purpose: OtpPurpose, code: str, session: Session) -> None:
    """
    Marks the live code for (email, purpose) consumed if `code` matches it.

    Only the newest unconsumed code is live; send_otp() retires older ones.
    A wrong guess is counted against the live code, and the code is burned
    after OTP_MAX_ATTEMPTS wrong guesses, so the correct code no longer
    works either and a new one has to be requested.

    The failed attempt is committed here, before raising: the error handler
    rolls the session back.

    Raises:
      AppError(INVALID_OTP, 400) — no live code, expired, or wrong code.
    """
    record = session.execute(
        select(OneTimeCode)
        .where(
            func.lower(OneTimeCode.email) == email.lower(),
            OneTimeCode.purpose == purpose,
            OneTimeCode.consumed.is_(False),
        )
        .order_by(OneTimeCode.id.desc())
    ).scalars().first()

    invalid = AppError(
        ErrorCode.INVALID_OTP,
        "The verification code is incorrect or has expired.",
        400,
        field="otp",
    )

    if record is None or _as_utc(record.expires_at) <= datetime.now(timezone.utc):
        raise invalid

    if not hmac.compare_digest(record.code_hash, _hash_secret(code)):
        max_attempts = current_app.config.get("OTP_MAX_ATTEMPTS", 5)
        record.failed_attempts = (record.failed_attempts or 0) + 1
        if record.failed_attempts >= max_attempts:
            record.consumed = True
            logger.warning(
                "One-time %s code for %s burned after %d wrong guesses",
                purpose.value, email, record.failed_attempts,
            )
        session.commit()
        raise invalid

    record.consumed = True
    session.flush()


def deliver_code(email: str, code: str, purpose: OtpPurpose) -> None:
    """Delivery hook for one-time codes."""
    logger.info("One-time %s code for %s: %s", purpose.value, email, code)


# ── Availability checks ────────────────────────────────────────────────────

def is_email_available(email: str, session: Session) -> bool:
    return _find_user_by_email(email, session) is None


def is_username_available(username: str, session: Session) -> bool:
    return _find_user_by_username(username, session) is None


# ── One-time codes ─────────────────────────────────────────────────────────

def send_otp(email: str, purpose: OtpPurpose, session: Session) -> None:
    """
    Issues a one-time code for `email` and hands it to deliver_code().

    Signup codes are refused for registered emails (DUPLICATE_EMAIL, 409).
    Reset codes for unknown emails are silently not issued, so the endpoint
    does not reveal which emails have accounts.
    """
    registered = _find_user_by_email(email, session) is not None

    if purpose == OtpPurpose.SIGNUP and registered:
        raise AppError(
            ErrorCode.DUPLICATE_EMAIL,
            f"The email address '{email}' is already registered.",
            409,
            field="email",
        )
    if purpose == OtpPurpose.RESET_PASSWORD and not registered:
        logger.debug("Password reset code requested for unknown email %s", email)
        return

    session.execute(
        update(OneTimeCode)
        .where(
            func.lower(OneTimeCode.email) == email.lower(),
            OneTimeCode.purpose == purpose,
            OneTimeCode.consumed.is_(False),
        )
        .values(consumed=True)
    )

    code = _generate_code()
    ttl = timedelta(seconds=current_app.config.get("OTP_TTL_SECONDS", 600))
    session.add(OneTimeCode(
        email=email,
        purpose=purpose,
        code_hash=_hash_secret(code),
        expires_at=datetime.now(timezone.utc) + ttl,
    ))
    session.flush()

    deliver_code(email, code, purpose)


# ── Accounts ───────────────────────────────────────────────────────────────

def signup(
        first_name: str,
        last_name: str,
        username: str,
        email: str,
        password: str,
        otp: str,
        session: Session,
) -> dict:
    """
    Creates an account after verifying the signup code, and issues tokens.

    Raises:
      AppError(DUPLICATE_EMAIL, 409)
      AppError(DUPLICATE_USERNAME, 409)
      AppError(INVALID_OTP, 400)

    Returns: {"user": {...}, "access_token": "...", "refresh_token": "..."}
    """
    if not is_email_available(email, session):
        raise AppError(
            ErrorCode.DUPLICATE_EMAIL,
            f"The email address '{email}' is already registered.",
            409,
            field="email",
        )

    if not is_username_available(username, session):
        raise AppError(
            ErrorCode.DUPLICATE_USERNAME,
            f"The username '{username}' is already taken.",
            409,
            field="username",
        )

    _consume_code(email, OtpPurpose.SIGNUP, otp, session)

    user = User(
        first_name=first_name,
        last_name=last_name,
        username=username,
        email=email,
        password_hash=_hash_password(password),
    )
    session.add(user)
    session.flush()  # populate user.id before creating the refresh token

    logger.info("User %s (%s) signed up", user.id, username)
    return {
        "user": _build_user_dict(user),
        **_build_token_pair(user.id, session),
    }


def login(user_id: str, password: str, session: Session) -> dict:
    """
    Validates credentials and issues a new token pair.

    `user_id` is whatever the user typed in the login form: a username or
    an email address.

    Raises:
      AppError(INVALID_CREDENTIALS, 401) — unknown user or wrong password.
      The same error for both avoids account enumeration.
    """
    if "@" in user_id:
        user = _find_user_by_email(user_id, session)
    else:
        user = _find_user_by_username(user_id, session)

    if user is None or not bcrypt.checkpw(
            password.encode("utf-8"),
            user.password_hash.encode("utf-8"),
    ):
        logger.debug("Failed login for %r", user_id)
        raise AppError(
            ErrorCode.INVALID_CREDENTIALS,
            "The username, email or password is incorrect.",
            401,
        )

    return {
        "user": _build_user_dict(user),
        **_build_token_pair(user.id, session),
    }


def verify_access_token(token: str) -> bool:
    """True if `token` is a well-formed, unexpired access token signed by us."""
    try:
        payload = jwt.decode(
            token,
            current_app.config["JWT_SECRET_KEY"],
            algorithms=[current_app.config.get("JWT_ALGORITHM", "HS256")],
        )
    except jwt.InvalidTokenError:
        return False
    return payload.get("sub") is not None


def refresh_tokens(raw_refresh_token: str, session: Session) -> dict:
    """
    Rotates a refresh token: the presented one is revoked and a new access +
    refresh pair is returned.

    Raises:
      AppError(REFRESH_TOKEN_INVALID, 401) — not found, revoked, or expired.
    """
    record = _get_live_refresh_token(raw_refresh_token, session)
    record.revoked = True
    session.flush()
    return _build_token_pair(record.user_id, session)


def logout_user(raw_refresh_token: str, session: Session) -> None:
    """
    Revokes a refresh token.

    Raises:
      AppError(REFRESH_TOKEN_INVALID, 401) — token not found, expired or revoked.
    """
    record = _get_live_refresh_token(raw_refresh_token, session)
    record.revoked = True
    session.flush()


def reset_password(email: str, otp: str, password: str, session: Session) -> None:
    """
    Sets a new password after verifying the reset code, and revokes every
    refresh token of the account.

    Raises:
      AppError(INVALID_OTP, 400) — wrong or expired code, or unknown email.
    """
    user = _find_user_by_email(email, session)
    if user is None:
        raise AppError(
            ErrorCode.INVALID_OTP,
            "The verification code is incorrect or has expired.",
            400,
            field="otp",
        )

    _consume_code(email, OtpPurpose.RESET_PASSWORD, otp, session)

    user.password_hash = _hash_password(password)
    session.execute(
        update(RefreshToken)
        .where(RefreshToken.user_id == user.id, RefreshToken.revoked.is_(False))
        .values(revoked=True)
    )
    session.flush()
    logger.info("Password reset for user %s", user.id)


def get_current_user(user_id: int, session: Session) -> dict:
    """
    Returns the profile of the currently authenticated user.

    Raises:
      AppError(USER_NOT_FOUND, 404) — the JWT outlived its user.
    """
    user = session.get(User, user_id)
    if user is None:
        raise AppError(
            ErrorCode.USER_NOT_FOUND,
            f"User {user_id} not found.",
            404,
        )
    return _build_user_dict(user)
