"""Unit tests for password change and reset"""
import pytest
from sqlalchemy.exc import OperationalError

from matrimony.errors.exceptions import (
    BadRequestException,
    InvalidOrExpiredOtpException,
    PasswordPolicyException,
    PasswordUpdateFailedException,
    UnauthorizedException,
)
from matrimony.models.otp import FlowKind, OTPChallenge
from matrimony.schemas.auth_schemas import Principal
from matrimony.services import password_service
from matrimony.services.auth_service import verify_password
from matrimony.services.otp_service import issue_challenge
from matrimony.services.password_service import (
    change_password,
    check_password_strength,
    reset_password,
)
from matrimony.utils.helpers import utcnow

from conftest import PASSWORD


def _principal(account):
    now = utcnow()
    return Principal(account_code=account.account_code, email=account.email, issued_at=now, expires_at=now)


@pytest.mark.parametrize(
    "password",
    ["short1!", "alllower1!", "ALLUPPER1!", "NoDigits!!", "NoSpecial11"],
)
def test_weak_passwords_are_rejected(password):
    assert check_password_strength(password)


def test_strong_password_passes():
    assert check_password_strength("NewPass1!") == []


def test_change_password_with_wrong_current_keeps_hash(db, account):
    before = account.hashed_password

    with pytest.raises(UnauthorizedException):
        change_password(db, _principal(account), "Wrong1!pass", "NewPass1!")

    db.refresh(account)
    assert account.hashed_password == before


def test_change_password_rejects_weak_new_password(db, account):
    before = account.hashed_password
    with pytest.raises(PasswordPolicyException):
        change_password(db, _principal(account), PASSWORD, "weak")
    db.refresh(account)
    assert account.hashed_password == before


def test_change_password_rejects_same_password(db, account):
    with pytest.raises(BadRequestException):
        change_password(db, _principal(account), PASSWORD, PASSWORD)


def test_change_password_updates_hash(db, account):
    change_password(db, _principal(account), PASSWORD, "NewPass1!")
    db.refresh(account)
    assert verify_password("NewPass1!", account.hashed_password)
    assert not verify_password(PASSWORD, account.hashed_password)


def test_reset_password_consumes_challenge(db, account):
    challenge, code = issue_challenge(db, account.email, FlowKind.PASSWORD_RESET)
    challenge_id = challenge.id

    reset_password(db, challenge_id, code, "NewPass1!")

    db.expire_all()
    assert verify_password("NewPass1!", account.hashed_password)
    assert db.get(OTPChallenge, challenge_id).consumed is True

    with pytest.raises(InvalidOrExpiredOtpException):
        reset_password(db, challenge_id, code, "Another1!")


def test_reset_password_rejects_login_challenge(db, account):
    challenge, code = issue_challenge(db, account.email, FlowKind.LOGIN)
    with pytest.raises(InvalidOrExpiredOtpException):
        reset_password(db, challenge.id, code, "NewPass1!")


def test_weak_reset_password_does_not_burn_code(db, account):
    challenge, code = issue_challenge(db, account.email, FlowKind.PASSWORD_RESET)
    challenge_id = challenge.id

    with pytest.raises(PasswordPolicyException):
        reset_password(db, challenge_id, code, "weak")

    db.expire_all()
    assert db.get(OTPChallenge, challenge_id).consumed is False


def test_hash_update_failure_after_verification(db, account, monkeypatch):
    challenge, code = issue_challenge(db, account.email, FlowKind.PASSWORD_RESET)
    before = account.hashed_password

    def broken_store(*args, **kwargs):
        raise OperationalError("UPDATE accounts", {}, Exception("disk I/O error"))

    monkeypatch.setattr(password_service, "_store_password_hash", broken_store)

    with pytest.raises(PasswordUpdateFailedException) as exc:
        reset_password(db, challenge.id, code, "NewPass1!")

    assert exc.value.status_code == 500
    db.refresh(account)
    assert account.hashed_password == before


def test_reset_password_rejected_after_deactivation(db, account):
    challenge, code = issue_challenge(db, account.email, FlowKind.PASSWORD_RESET)
    challenge_id = challenge.id
    before = account.hashed_password

    account.is_active = False
    db.commit()

    with pytest.raises(InvalidOrExpiredOtpException):
        reset_password(db, challenge_id, code, "NewPass1!")

    db.expire_all()
    assert account.hashed_password == before
    assert db.get(OTPChallenge, challenge_id).consumed is False
