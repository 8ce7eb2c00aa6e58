"""
schemas/auth_schema.py — Marshmallow schemas for account and token endpoints.

Validation responsibility:
  - This file: field types, lengths, formats, password strength.
    Usernames and emails are lower-cased on load, so they are stored and
    compared in one case.
  - services/auth_service.py: DUPLICATE_EMAIL / DUPLICATE_USERNAME,
    INVALID_OTP and INVALID_CREDENTIALS (all need a DB lookup).

IMPORTANT: All schemas inherit from marshmallow.Schema directly.
           Do NOT use ma.Schema — it requires an active Flask app context
           and breaks unit tests. See extensions.py.
"""

from __future__ import annotations

from marshmallow import Schema, ValidationError, fields, post_load, validate

from squareup.app.errors import ErrorCode
from squareup.app.models.one_time_code import OtpPurpose

PASSWORD_MIN_LENGTH = 6


def _validate_password_strength(value: str) -> None:
    """At least 6 characters, one digit and one special character."""
    if len(value) < PASSWORD_MIN_LENGTH:
        raise ValidationError(
            f"Password must be at least {PASSWORD_MIN_LENGTH} characters long."
        )
    if not any(c.isdigit() for c in value):
        raise ValidationError("Password must contain at least one digit.")
    if not any(not c.isalnum() and not c.isspace() for c in value):
        raise ValidationError("Password must contain at least one special character.")


def _validate_non_empty_after_trim(value: str) -> None:
    if not value.strip():
        raise ValidationError("This field must not be blank or contain only whitespace.")


def _username_field(**kwargs) -> fields.Str:
    return fields.Str(
        required=True,
        validate=[
            validate.Length(
                min=3,
                max=30,
                error="Username must be between 3 and 30 characters.",
            ),
            validate.Regexp(
                r"^[A-Za-z0-9_.]+$",
                error="Username may only contain letters, numbers, dots and underscores.",
            ),
        ],
        **kwargs,
    )


def _email_field() -> fields.Email:
    return fields.Email(required=True, validate=validate.Length(max=255))


def _otp_field() -> fields.Str:
    # A malformed code is reported the same way as a wrong one.
    return fields.Str(
        required=True,
        validate=validate.Regexp(r"^\d{6}$", error=ErrorCode.INVALID_OTP),
    )


def _name_field() -> fields.Str:
    return fields.Str(
        required=True,
        validate=[
            validate.Length(min=1, max=50, error="Names must be between 1 and 50 characters."),
            _validate_non_empty_after_trim,
        ],
    )


class _NormalisingSchema(Schema):
    """Lower-cases `username` / `email` and trims names after validation."""

    @post_load
    def normalise(self, data: dict, **kwargs) -> dict:
        for key in ("username", "email"):
            if key in data:
                data[key] = data[key].strip().lower()
        for key in ("first_name", "last_name"):
            if key in data:
                data[key] = data[key].strip()
        return data


class SignupSchema(_NormalisingSchema):
    """
    POST /api/signup

    The client first calls /api/send-otp with purpose "signup"; the code it
    receives by email is sent back here as `otp`.
    """

    first_name = _name_field()
    last_name = _name_field()
    username = _username_field()
    email = _email_field()
    password = fields.Str(
        required=True,
        load_only=True,
        validate=_validate_password_strength,
    )
    otp = _otp_field()


class LoginSchema(Schema):
    """
    POST /api/login

    `user_id` is what the user typed: a username or an email address.
    """

    user_id = fields.Str(
        required=True,
        validate=validate.Length(min=1, max=255),
    )
    password = fields.Str(required=True, load_only=True)


class SendOtpSchema(_NormalisingSchema):
    """POST /api/send-otp"""

    email = _email_field()
    purpose = fields.Enum(
        OtpPurpose,
        by_value=True,
        load_default=OtpPurpose.SIGNUP,
    )


class CheckEmailSchema(_NormalisingSchema):
    """POST /api/check-email"""

    email = _email_field()


class CheckUsernameSchema(_NormalisingSchema):
    """POST /api/check-username"""

    username = _username_field()


class VerifyTokenSchema(Schema):
    """POST /api/verify-token — the access token to check."""

    token = fields.Str(required=True)


class RefreshTokenSchema(Schema):
    """
    POST /api/refresh-token, POST /api/logout

    Validity (revoked, expired, unknown) is checked in auth_service.py
    (REFRESH_TOKEN_INVALID, 401).
    """

    refresh_token = fields.Str(
        required=True,
        validate=validate.Length(min=1, error="refresh_token must not be empty."),
    )


class ResetPasswordSchema(_NormalisingSchema):
    """POST /api/reset-password"""

    email = _email_field()
    otp = _otp_field()
    password = fields.Str(
        required=True,
        load_only=True,
        validate=_validate_password_strength,
    )
