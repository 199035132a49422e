"""One-time code issuance and redemption.

Issuing replaces any active challenge for the same (email, flow_kind);
redemption is a single conditional UPDATE so a code can be consumed at most
once no matter how many requests race for it.
"""
import hashlib
import hmac
import logging
import secrets
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, Optional, Tuple

from sqlalchemy import delete, false, or_, select, true, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from matrimony.core.config import settings
from matrimony.errors.exceptions import DeliveryException, InvalidOrExpiredOtpException
from matrimony.models.account import Account
from matrimony.models.otp import FlowKind, OTPChallenge
from matrimony.services.auth_service import get_account_by_email
from matrimony.utils.email import Notifier
from matrimony.utils.helpers import utcnow
from matrimony.utils.logger import log_auth_event

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FlowPolicy:
    ttl: timedelta
    # Login callers already proved their password, so a failed send is
    # reported. Reset callers get the generic answer to hide whether the
    # email is registered.
    delivery_failure_is_fatal: bool

    @property
    def ttl_minutes(self) -> int:
        return int(self.ttl.total_seconds() // 60)


FLOW_POLICIES: Dict[FlowKind, FlowPolicy] = {
    FlowKind.LOGIN: FlowPolicy(
        ttl=timedelta(minutes=settings.OTP_LOGIN_EXPIRE_MINUTES),
        delivery_failure_is_fatal=True,
    ),
    FlowKind.PASSWORD_RESET: FlowPolicy(
        ttl=timedelta(minutes=settings.OTP_RESET_EXPIRE_MINUTES),
        delivery_failure_is_fatal=False,
    ),
}


@dataclass
class ClientInfo:
    """Request metadata stored alongside a challenge"""
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    locale: Optional[str] = None
    platform: Optional[str] = None


def generate_otp(length: Optional[int] = None) -> str:
    """Return a uniformly random numeric code of OTP_LENGTH digits."""
    length = length or settings.OTP_LENGTH
    return f"{secrets.randbelow(10 ** length):0{length}d}"


def hash_otp(code: str) -> str:
    return hmac.new(
        settings.SECRET_KEY.encode("utf-8"), code.encode("utf-8"), hashlib.sha256
    ).hexdigest()


def _is_well_formed(code: str) -> bool:
    return len(code) == settings.OTP_LENGTH and code.isdigit()


# ── issuance ──────────────────────────────────────────────────────────────────

def issue_challenge(
    db: Session,
    email: str,
    flow_kind: FlowKind,
    client: Optional[ClientInfo] = None,
    now: Optional[datetime] = None,
) -> Tuple[OTPChallenge, str]:
    """
    Replace the active challenge for (*email*, *flow_kind*) with a fresh one.

    Returns the committed challenge and the plain-text code. Nothing is sent
    here; call :func:`deliver_challenge` afterwards so no lock is held while
    the email goes out.
    """
    client = client or ClientInfo()
    now = now or utcnow()
    policy = FLOW_POLICIES[flow_kind]
    code = generate_otp()

    try:
        # Serialises concurrent issuance for the same account
        db.execute(
            select(Account.id).where(Account.email == email).with_for_update()
        ).scalar_one_or_none()

        db.execute(
            delete(OTPChallenge)
            .where(
                OTPChallenge.email == email,
                OTPChallenge.flow_kind == flow_kind,
                OTPChallenge.consumed == false(),
            )
            .execution_options(synchronize_session=False)
        )

        challenge = OTPChallenge(
            id=str(uuid.uuid4()),
            email=email,
            flow_kind=flow_kind,
            code_hash=hash_otp(code),
            created_at=now,
            expires_at=now + policy.ttl,
            consumed=False,
            ip_address=client.ip_address,
            user_agent=(client.user_agent or "")[:255] or None,
            locale=client.locale,
            platform=client.platform,
        )
        db.add(challenge)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise

    db.refresh(challenge)
    log_auth_event("OTP ISSUED", email=email, flow=flow_kind.value, challenge=challenge.id)
    return challenge, code


def deliver_challenge(notifier: Notifier, email: str, code: str, flow_kind: FlowKind) -> bool:
    """
    Email *code* to *email*.

    A failed send never touches the stored challenge. Whether the failure is
    raised as DeliveryException depends on the flow's policy.
    """
    policy = FLOW_POLICIES[flow_kind]
    sent = notifier.send(email, code, flow_kind, policy.ttl_minutes)
    if sent:
        return True

    log_auth_event("OTP DELIVERY FAILED", email=email, level=logging.ERROR, flow=flow_kind.value)
    if policy.delivery_failure_is_fatal:
        raise DeliveryException()
    return False


# ── redemption ────────────────────────────────────────────────────────────────

def consume_challenge(
    db: Session,
    challenge_ref: str,
    flow_kind: FlowKind,
    code: str,
    now: Optional[datetime] = None,
) -> Optional[str]:
    """
    Atomically mark the challenge consumed if it is redeemable.

    Runs inside the caller's transaction and does not commit. Returns the
    owning email when exactly one row was flipped, otherwise None. The
    preconditions live in the UPDATE's WHERE clause, so two concurrent calls
    can never both see rowcount 1.
    """
    if not _is_well_formed(code):
        return None
    now = now or utcnow()

    result = db.execute(
        update(OTPChallenge)
        .where(
            OTPChallenge.id == challenge_ref,
            OTPChallenge.flow_kind == flow_kind,
            OTPChallenge.consumed == false(),
            OTPChallenge.code_hash == hash_otp(code),
            OTPChallenge.expires_at > now,
        )
        .values(consumed=True, consumed_at=now)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        return None

    return db.execute(
        select(OTPChallenge.email).where(OTPChallenge.id == challenge_ref)
    ).scalar_one()


def redeem_challenge(
    db: Session,
    challenge_ref: str,
    flow_kind: FlowKind,
    code: str,
    now: Optional[datetime] = None,
) -> Account:
    """
    Consume a challenge and return the account it was issued for.

    Every failure (unknown ref, wrong code, expired, already used, inactive
    account) raises the same InvalidOrExpiredOtpException.
    """
    now = now or utcnow()
    try:
        email = consume_challenge(db, challenge_ref, flow_kind, code, now=now)
        account = get_account_by_email(db, email) if email else None
        if account is None or not account.is_active:
            db.rollback()
            log_auth_event(
                "OTP REJECTED", email=email, level=logging.WARNING,
                flow=flow_kind.value, challenge=challenge_ref,
            )
            raise InvalidOrExpiredOtpException()

        if flow_kind == FlowKind.LOGIN:
            account.last_login = now
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise

    db.refresh(account)
    log_auth_event(
        "OTP REDEEMED", email=account.email, account_code=account.account_code, flow=flow_kind.value
    )
    return account


# ── housekeeping ──────────────────────────────────────────────────────────────

def purge_stale_challenges(
    db: Session,
    retention: Optional[timedelta] = None,
    now: Optional[datetime] = None,
) -> int:
    """
    Delete consumed or expired challenges created before the retention window.

    Purely housekeeping: stale rows are never redeemable anyway.
    """
    now = now or utcnow()
    retention = retention if retention is not None else timedelta(hours=settings.OTP_RETENTION_HOURS)
    cutoff = now - retention

    try:
        result = db.execute(
            delete(OTPChallenge)
            .where(
                or_(OTPChallenge.consumed == true(), OTPChallenge.expires_at <= now),
                OTPChallenge.created_at < cutoff,
            )
            .execution_options(synchronize_session=False)
        )
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise

    if result.rowcount:
        logger.info(f"Purged {result.rowcount} stale OTP challenges")
    return result.rowcount
