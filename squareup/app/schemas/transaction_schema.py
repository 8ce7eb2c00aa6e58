"""
schemas/transaction_schema.py — Schemas for groups ("transactions"),
contributions, delete votes and the contribution feed.

Validation responsibility:
  - This file:
      - Field types, lengths, non-blank strings
      - Amount precision (INVALID_AMOUNT_PRECISION) and sign (INVALID_AMOUNT)
      - receiver_amounts keys must be user ids
  - services/*:
      - INVALID_GROUP, INVALID_MEMBER, NOT_A_MEMBER, INVALID_GROUP_SIZE
        (all need the stored group)
      - ALLOCATION_EXCEEDS_TOTAL warning

Amounts may arrive as JSON strings ("12.50") or numbers (12.5). Both load as
Decimal; more than 2 decimal places is rejected, never rounded.

IMPORTANT: Inherits from marshmallow.Schema directly — never ma.Schema.
"""

from __future__ import annotations

from decimal import Decimal

from marshmallow import EXCLUDE, Schema, ValidationError, fields, post_load, validate

from squareup.app.errors import ErrorCode

CENT = Decimal("0.01")

# NUMERIC(12, 2) holds at most 10 integer digits.
MAX_AMOUNT = Decimal("9999999999.99")


def _validate_monetary_amount(value: Decimal) -> None:
    """
    Strictly positive, at most 2 decimal places, fits NUMERIC(12, 2).

    The error handler turns a message equal to an ErrorCode constant into
    that code.
    """
    if value <= 0 or value > MAX_AMOUNT:
        raise ValidationError(ErrorCode.INVALID_AMOUNT)
    if value.as_tuple().exponent < -2:
        raise ValidationError(ErrorCode.INVALID_AMOUNT_PRECISION)


def _validate_non_empty_after_trim(value: str) -> None:
    if not value.strip():
        raise ValidationError("This field must not be blank or contain only whitespace.")


class IdField(fields.Int):
    """
    Integer id that also accepts a string of ASCII digits ("12").

    The mobile client sends ids as strings. Anything else that is not an int
    (1.0, 1.5, "1.5", "one") is rejected; plain non-strict Int would
    truncate 1.5 to 1.
    """

    def __init__(self, **kwargs) -> None:
        super().__init__(strict=True, **kwargs)

    def _deserialize(self, value, attr, data, **kwargs):
        if isinstance(value, str) and value.isascii() and value.isdigit():
            value = int(value)
        return super()._deserialize(value, attr, data, **kwargs)


def _positive_id(name: str) -> IdField:
    return IdField(
        required=True,
        validate=validate.Range(min=1, error=f"{name} must be a positive integer."),
    )


class CreateTransactionSchema(Schema):
    """
    POST /api/create-transaction

    `user_ids` may or may not contain the caller; the service adds the caller
    and enforces the two-member minimum (INVALID_GROUP_SIZE).
    """

    name = fields.Str(
        required=True,
        validate=[
            validate.Length(
                min=1,
                max=100,
                error="Transaction name must be between 1 and 100 characters.",
            ),
            _validate_non_empty_after_trim,
        ],
    )

    user_ids = fields.List(
        _positive_id("user_ids entry"),
        required=True,
    )

    @post_load
    def strip_name(self, data: dict, **kwargs) -> dict:
        data["name"] = data["name"].strip()
        return data


class AddContributionSchema(Schema):
    """
    POST /api/add-contribution

    receiver_amounts: {"<user id>": amount, ...}. JSON object keys are always
    strings; they are loaded as ints. The sender never lists themself.
    """

    transaction_id = _positive_id("transaction_id")

    description = fields.Str(
        required=True,
        validate=[
            validate.Length(
                min=1,
                max=255,
                error="Description must be between 1 and 255 characters.",
            ),
            _validate_non_empty_after_trim,
        ],
    )

    total_amount = fields.Decimal(
        required=True,
        validate=_validate_monetary_amount,
    )

    receiver_amounts = fields.Dict(
        keys=IdField(
            validate=validate.Range(min=1, error="receiver ids must be positive integers."),
        ),
        values=fields.Decimal(validate=_validate_monetary_amount),
        required=True,
    )

    @post_load
    def normalise(self, data: dict, **kwargs) -> dict:
        data["description"] = data["description"].strip()
        data["total_amount"] = data["total_amount"].quantize(CENT)
        data["receiver_amounts"] = {
            receiver_id: amount.quantize(CENT)
            for receiver_id, amount in data["receiver_amounts"].items()
        }
        return data


class TransactionIdSchema(Schema):
    """POST /api/add-vote-to-delete-transaction, /api/remove-vote-to-delete-transaction"""

    transaction_id = _positive_id("transaction_id")


class ContributionFeedQuerySchema(Schema):
    """
    GET /api/get-contributions?limit=15&afterId=123

    Query strings are text, so ids are not strict here. The route clamps
    `limit` to CONTRIBUTIONS_MAX_LIMIT.
    """

    class Meta:
        unknown = EXCLUDE  # cache-busters and other query noise

    limit = fields.Int(
        load_default=None,
        validate=validate.Range(min=1, error="limit must be a positive integer."),
    )
    after_id = fields.Int(
        data_key="afterId",
        load_default=None,
        validate=validate.Range(min=1, error="afterId must be a positive integer."),
    )
