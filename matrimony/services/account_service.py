"""Account registration"""
import logging
from typing import Optional

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from matrimony.errors.exceptions import ConflictException
from matrimony.models.account import Account
from matrimony.schemas.auth_schemas import RegisterRequest
from matrimony.services.auth_service import get_password_hash
from matrimony.services.password_service import enforce_password_policy
from matrimony.utils.helpers import generate_account_code
from matrimony.utils.logger import log_auth_event

logger = logging.getLogger(__name__)

_ACCOUNT_CODE_ATTEMPTS = 20


def email_or_phone_taken(db: Session, email: str, phone: Optional[str] = None) -> bool:
    conditions = [Account.email == email]
    if phone:
        conditions.append(Account.primary_phone == phone)
    return db.execute(select(Account.id).where(or_(*conditions)).limit(1)).first() is not None


def _unused_account_code(db: Session) -> str:
    for _ in range(_ACCOUNT_CODE_ATTEMPTS):
        code = generate_account_code()
        exists = db.execute(
            select(Account.id).where(Account.account_code == code)
        ).first()
        if exists is None:
            return code
    raise ConflictException(detail="Could not allocate an account code, please retry")


def register_account(db: Session, data: RegisterRequest) -> Account:
    """
    Create a new account with a hashed password
    """
    enforce_password_policy(data.password)

    if email_or_phone_taken(db, data.email, data.primary_phone):
        raise ConflictException(detail="An account with this email or phone number already exists")

    account = Account(
        account_code=_unused_account_code(db),
        email=data.email,
        hashed_password=get_password_hash(data.password),
        first_name=data.first_name,
        last_name=data.last_name,
        middle_name=data.middle_name,
        primary_phone=data.primary_phone,
        is_active=True,
    )

    try:
        db.add(account)
        db.commit()
    except IntegrityError:
        # Lost a race with a concurrent registration
        db.rollback()
        raise ConflictException(detail="An account with this email or phone number already exists")
    except SQLAlchemyError:
        db.rollback()
        raise

    db.refresh(account)
    log_auth_event("ACCOUNT REGISTERED", email=account.email, account_code=account.account_code)
    return account
