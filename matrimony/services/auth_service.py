"""Authentication service: password hashing, credential checks and JWT"""
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple
import logging

from passlib.context import CryptContext
from jose import JWTError, jwt
from sqlalchemy import select
from sqlalchemy.orm import Session

from matrimony.core.config import settings
from matrimony.errors.exceptions import UnauthorizedException
from matrimony.models.account import Account
from matrimony.schemas.auth_schemas import Principal
from matrimony.utils.logger import log_auth_event

logger = logging.getLogger(__name__)

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.BCRYPT_ROUNDS
)

INVALID_CREDENTIALS = "Incorrect email or password"


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    """Verify a plain password against a hashed password"""
    if not hashed_password:
        return False
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """Hash a password using bcrypt"""
    return pwd_context.hash(password)


def create_access_token(account: Account) -> Tuple[str, int]:
    """
    Mint a signed session token for *account*.

    Returns the encoded JWT and its lifetime in seconds. Every flow uses the
    same lifetime, ACCESS_TOKEN_EXPIRE_MINUTES.
    """
    lifetime = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    issued_at = datetime.now(timezone.utc).replace(microsecond=0)
    claims = {
        "sub": account.account_code,
        "email": account.email,
        "iat": issued_at,
        "exp": issued_at + lifetime,
    }
    token = jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.ALGORITHM)
    return token, int(lifetime.total_seconds())


def decode_access_token(token: str) -> Optional[Principal]:
    """
    Decode and validate a JWT access token.

    Returns None for anything that is not a well-formed, correctly signed,
    unexpired token carrying ``sub`` and ``email``.
    """
    try:
        payload = jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.ALGORITHM],
            options={"require_exp": True, "require_iat": True, "require_sub": True},
        )
    except JWTError as e:
        logger.info(f"JWT rejected: {str(e)}")
        return None

    account_code = payload.get("sub")
    email = payload.get("email")
    if not account_code or not email:
        return None

    try:
        return Principal(
            account_code=account_code,
            email=email,
            issued_at=datetime.fromtimestamp(int(payload["iat"]), tz=timezone.utc),
            expires_at=datetime.fromtimestamp(int(payload["exp"]), tz=timezone.utc),
        )
    except (TypeError, ValueError):
        return None


def get_account_by_email(db: Session, email: str) -> Optional[Account]:
    """
    Get account by email (exact, case-sensitive match)
    """
    return db.execute(select(Account).where(Account.email == email)).scalar_one_or_none()


def get_account_by_code(db: Session, account_code: str) -> Optional[Account]:
    """
    Get account by its public account code
    """
    return db.execute(
        select(Account).where(Account.account_code == account_code)
    ).scalar_one_or_none()


def verify_credentials(db: Session, email: str, password: str) -> Account:
    """
    Check *email* / *password* and return the account.

    Unknown email, inactive account and wrong password all raise the same
    UnauthorizedException. A dummy hash verification runs for unknown emails
    so both paths cost one bcrypt round.
    """
    account = get_account_by_email(db, email)
    if account is None:
        pwd_context.dummy_verify()
        log_auth_event("LOGIN REJECTED", email=email, level=logging.WARNING)
        raise UnauthorizedException(detail=INVALID_CREDENTIALS)

    password_ok = verify_password(password, account.hashed_password)
    if not password_ok or not account.is_active:
        log_auth_event(
            "LOGIN REJECTED", email=email, account_code=account.account_code, level=logging.WARNING
        )
        raise UnauthorizedException(detail=INVALID_CREDENTIALS)

    return account
