"""
errors.py — AppError and the error/warning code registries.

Services raise AppError; the handlers registered in create_app() turn it into

    {"error": {"code": "INVALID_MEMBER", "message": "...", "field": "..."}}

with the error's HTTP status. Codes are what clients branch on and never
change once shipped; messages are prose for people and may be reworded.

401 means the caller is not authenticated. 403 (NOT_A_MEMBER) means the
caller is known but outside the group. Keep the two apart.
"""

from __future__ import annotations


class AppError(Exception):

    def __init__(
            self,
            code: str,
            message: str,
            http_status: int,
            field: str | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.http_status = http_status
        self.field = field

    def to_dict(self) -> dict:
        body = {"code": self.code, "message": self.message}
        if self.field is not None:
            body["field"] = self.field
        return {"error": body}

    def __repr__(self) -> str:
        return f"AppError({self.code!r}, {self.http_status}, field={self.field!r})"


class ErrorCode:

    # Request validation (400)
    MISSING_FIELD = "MISSING_FIELD"
    INVALID_FIELD = "INVALID_FIELD"
    INVALID_AMOUNT = "INVALID_AMOUNT"
    INVALID_AMOUNT_PRECISION = "INVALID_AMOUNT_PRECISION"

    # Groups and contributions
    INVALID_GROUP = "INVALID_GROUP"                    # 404, unknown or already deleted
    INVALID_GROUP_SIZE = "INVALID_GROUP_SIZE"          # 422, fewer than 2 members
    INVALID_MEMBER = "INVALID_MEMBER"                  # 422, sender/receiver outside the group
    NOT_A_MEMBER = "NOT_A_MEMBER"                      # 403
    CONTRIBUTION_NOT_FOUND = "CONTRIBUTION_NOT_FOUND"  # 404, feed cursor

    # Users and friends
    USER_NOT_FOUND = "USER_NOT_FOUND"                  # 404
    SELF_FRIEND_REQUEST = "SELF_FRIEND_REQUEST"        # 422
    ALREADY_FRIENDS = "ALREADY_FRIENDS"                # 409
    FRIEND_REQUEST_EXISTS = "FRIEND_REQUEST_EXISTS"    # 409
    FRIEND_REQUEST_NOT_FOUND = "FRIEND_REQUEST_NOT_FOUND"  # 404
    NOT_FRIENDS = "NOT_FRIENDS"                        # 404

    # Accounts
    INVALID_OTP = "INVALID_OTP"                        # 400
    DUPLICATE_EMAIL = "DUPLICATE_EMAIL"                # 409
    DUPLICATE_USERNAME = "DUPLICATE_USERNAME"          # 409
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"        # 401
    TOKEN_MISSING = "TOKEN_MISSING"                    # 401
    TOKEN_INVALID = "TOKEN_INVALID"                    # 401
    TOKEN_EXPIRED = "TOKEN_EXPIRED"                    # 401
    REFRESH_TOKEN_INVALID = "REFRESH_TOKEN_INVALID"    # 401

    INTERNAL_ERROR = "INTERNAL_ERROR"                  # 500


class WarningCode:
    """Codes carried in the `warnings` array of a successful response."""

    # Receiver amounts add up to more than the contribution total; the
    # contribution is still recorded.
    ALLOCATION_EXCEEDS_TOTAL = "ALLOCATION_EXCEEDS_TOTAL"


def warning(code: str, message: str) -> dict:
    return {"code": code, "message": message}
