"""
schemas/friend_schema.py — Schemas for friend and user search endpoints.

Existence, friendship and pending-request checks live in
services/friend_service.py. Inherits from marshmallow.Schema directly.
"""

from __future__ import annotations

from marshmallow import EXCLUDE, Schema, ValidationError, fields, post_load, validate

from squareup.app.schemas.transaction_schema import IdField


def _validate_non_empty_after_trim(value: str) -> None:
    if not value.strip():
        raise ValidationError("prefix must not be blank.")


class FriendUserSchema(Schema):
    """
    POST /api/add-friend-request, /api/accept-friend-request,
         /api/remove-friend-request, /api/remove-outgoing-friend-request,
         /api/remove-friend

    `user_id` is always the other party; the caller comes from the token.
    """

    user_id = IdField(
        required=True,
        validate=validate.Range(min=1, error="user_id must be a positive integer."),
    )


class SearchUsersSchema(Schema):
    """GET /api/search-users?prefix=al"""

    class Meta:
        unknown = EXCLUDE

    prefix = fields.Str(
        required=True,
        validate=[
            validate.Length(
                min=1,
                max=30,
                error="prefix must be between 1 and 30 characters.",
            ),
            _validate_non_empty_after_trim,
        ],
    )

    @post_load
    def strip_prefix(self, data: dict, **kwargs) -> dict:
        data["prefix"] = data["prefix"].strip()
        return data
