"""Password change (authenticated) and reset (OTP-gated)"""
import logging
import string
from typing import List

from sqlalchemy import true, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from matrimony.core.config import settings
from matrimony.errors.exceptions import (
    BadRequestException,
    InvalidOrExpiredOtpException,
    PasswordPolicyException,
    PasswordUpdateFailedException,
    UnauthorizedException,
)
from matrimony.models.account import Account
from matrimony.models.otp import FlowKind
from matrimony.schemas.auth_schemas import Principal
from matrimony.services.auth_service import get_password_hash, verify_credentials
from matrimony.services.otp_service import consume_challenge
from matrimony.utils.logger import log_auth_event

logger = logging.getLogger(__name__)


def check_password_strength(password: str) -> List[str]:
    """Return the policy rules *password* breaks; empty means acceptable."""
    problems = []
    if len(password) < settings.PASSWORD_MIN_LENGTH:
        problems.append(f"Password must be at least {settings.PASSWORD_MIN_LENGTH} characters long")
    if not any(char.islower() for char in password):
        problems.append("Password must contain at least one lowercase letter")
    if not any(char.isupper() for char in password):
        problems.append("Password must contain at least one uppercase letter")
    if not any(char.isdigit() for char in password):
        problems.append("Password must contain at least one digit")
    if not any(char in string.punctuation for char in password):
        problems.append("Password must contain at least one special character")
    return problems


def enforce_password_policy(password: str) -> None:
    problems = check_password_strength(password)
    if problems:
        raise PasswordPolicyException(detail="; ".join(problems))


def _store_password_hash(db: Session, email: str, new_hash: str) -> bool:
    """Replace the stored hash of an active account inside the current transaction.

    Returns False when no active account matches *email*.
    """
    result = db.execute(
        update(Account)
        .where(Account.email == email, Account.is_active == true())
        .values(hashed_password=new_hash)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def change_password(db: Session, principal: Principal, current_password: str, new_password: str) -> None:
    """
    Change the caller's password.

    The stored hash is left untouched unless the current password verifies,
    the new one passes the policy and differs from the current one.
    """
    try:
        verify_credentials(db, principal.email, current_password)
    except UnauthorizedException:
        raise UnauthorizedException(detail="Current password is incorrect") from None

    enforce_password_policy(new_password)
    if new_password == current_password:
        raise BadRequestException(detail="New password must be different from the current password")

    new_hash = get_password_hash(new_password)
    try:
        stored = _store_password_hash(db, principal.email, new_hash)
        if not stored:
            db.rollback()
            raise UnauthorizedException()
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise

    log_auth_event("PASSWORD CHANGED", email=principal.email, account_code=principal.account_code)


def reset_password(db: Session, challenge_ref: str, code: str, new_password: str) -> None:
    """
    Redeem a password_reset challenge and store the new password.

    Consumption and the hash update share one transaction. If anything fails
    after the code has been accepted the transaction is rolled back and
    PasswordUpdateFailedException tells the client to start over. A code
    issued before the account was deactivated is treated as invalid.
    """
    enforce_password_policy(new_password)
    # Hash before touching any row so no lock is held during bcrypt
    new_hash = get_password_hash(new_password)

    try:
        email = consume_challenge(db, challenge_ref, FlowKind.PASSWORD_RESET, code)
    except SQLAlchemyError:
        db.rollback()
        raise

    if email is None:
        db.rollback()
        log_auth_event(
            "RESET OTP REJECTED", level=logging.WARNING, challenge=challenge_ref
        )
        raise InvalidOrExpiredOtpException()

    try:
        stored = _store_password_hash(db, email, new_hash)
        if not stored:
            # Account was deactivated after the code was issued
            db.rollback()
            log_auth_event("RESET REJECTED FOR INACTIVE ACCOUNT", email=email, level=logging.WARNING)
            raise InvalidOrExpiredOtpException()
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error(f"Password update failed after OTP verification for {email}: {exc}")
        log_auth_event("PASSWORD RESET FAILED", email=email, level=logging.ERROR)
        raise PasswordUpdateFailedException() from exc

    log_auth_event("PASSWORD RESET", email=email)
