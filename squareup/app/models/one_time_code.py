"""
models/one_time_code.py — OneTimeCode table definition.

Six-digit codes issued by POST /api/send-otp and consumed by signup and
password reset. Only the SHA-256 hash of the code is stored.
"""

from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Enum, Index, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from squareup.app.extensions import db


class OtpPurpose(str, enum.Enum):
    SIGNUP         = "signup"
    RESET_PASSWORD = "reset_password"


def _enum_values(enum_cls: type[enum.Enum]) -> list[str]:
    """Ensure SQLAlchemy stores enum values (e.g., 'signup'), not names ('SIGNUP')."""
    return [member.value for member in enum_cls]


class OneTimeCode(db.Model):
    __tablename__ = "one_time_codes"

    __table_args__ = (
        Index("idx_one_time_codes_lookup", "email", "purpose"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    # Not a FK: signup codes are issued before the user row exists.
    email: Mapped[str] = mapped_column(String(255), nullable=False)

    purpose: Mapped[OtpPurpose] = mapped_column(
        Enum(
            OtpPurpose,
            name="otp_purpose_enum",
            native_enum=False,
            length=20,
            values_callable=_enum_values,
        ),
        nullable=False,
    )

    code_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    consumed: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default="false",
    )

    # Wrong guesses against this code; it is burned at OTP_MAX_ATTEMPTS.
    failed_attempts: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        server_default="0",
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"<OneTimeCode id={self.id} "
            f"email={self.email!r} "
            f"purpose={self.purpose.value} "
            f"consumed={self.consumed} "
            f"failed_attempts={self.failed_attempts}>"
        )
