"""OTPChallenge — one-time codes for login and password reset."""
import uuid
from enum import Enum

from sqlalchemy import Boolean, Column, DateTime, Enum as SQLEnum, Index, String, false
from sqlalchemy.sql import func

from matrimony.db.base import Base


class FlowKind(str, Enum):
    """Which flow a challenge belongs to"""
    LOGIN = "login"
    PASSWORD_RESET = "password_reset"


class OTPChallenge(Base):
    """
    A one-time code emailed to the owner of ``email``.

    Lifecycle
    ---------
    1. Login / forgot-password → any unconsumed row for (email, flow_kind) is
       deleted and a new row inserted (consumed=False).
    2. User submits the code → a single conditional UPDATE flips consumed to
       True if the code matches and the row has not expired.
    3. Expired / consumed rows are never redeemable and can be purged by
       housekeeping at any time.
    """

    __tablename__ = "otp_challenges"

    # Opaque reference handed to the client as ``challenge_ref``
    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String(255), nullable=False, index=True)
    flow_kind = Column(
        SQLEnum(FlowKind, values_callable=lambda kinds: [k.value for k in kinds]),
        nullable=False,
    )

    # HMAC of the code; the plain code only ever travels in the email
    code_hash = Column(String(64), nullable=False)

    created_at = Column(DateTime(timezone=False), server_default=func.now(), nullable=False)
    expires_at = Column(DateTime(timezone=False), nullable=False)
    consumed = Column(Boolean, default=False, nullable=False)
    consumed_at = Column(DateTime(timezone=False), nullable=True)

    # Client metadata captured at issue time
    ip_address = Column(String(64), nullable=True)
    user_agent = Column(String(255), nullable=True)
    locale = Column(String(64), nullable=True)
    platform = Column(String(64), nullable=True)

    __table_args__ = (
        # At most one active challenge per (email, flow_kind)
        Index(
            "uq_otp_challenges_active",
            email,
            flow_kind,
            unique=True,
            postgresql_where=(consumed == false()),
            sqlite_where=(consumed == false()),
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<OTPChallenge(id={self.id!r}, email={self.email!r}, flow={self.flow_kind}, "
            f"expires_at={self.expires_at}, consumed={self.consumed})>"
        )
