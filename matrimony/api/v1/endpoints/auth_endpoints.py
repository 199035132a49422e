"""Authentication endpoints"""
import logging
import uuid
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Request, status
from sqlalchemy.orm import Session

from matrimony.core.dependencies import get_db, get_notifier
from matrimony.errors.exceptions import (
    BadRequestException,
    InvalidOrExpiredOtpException,
    UnauthorizedException,
)
from matrimony.middleware.auth import get_current_principal
from matrimony.models.otp import FlowKind
from matrimony.schemas.auth_schemas import (
    AccountSummary,
    ChallengeResponse,
    ForgotPasswordRequest,
    LoginRequest,
    MessageResponse,
    OTPVerifyRequest,
    PasswordChange,
    Principal,
    RegisterRequest,
    RegisterResponse,
    ResetPasswordRequest,
    Token,
)
from matrimony.services.account_service import register_account
from matrimony.services.auth_service import (
    create_access_token,
    get_account_by_code,
    get_account_by_email,
    verify_credentials,
)
from matrimony.services.otp_service import (
    FLOW_POLICIES,
    ClientInfo,
    deliver_challenge,
    issue_challenge,
    redeem_challenge,
)
from matrimony.services.password_service import change_password, reset_password
from matrimony.utils.email import Notifier

router = APIRouter()
logger = logging.getLogger(__name__)

RESET_MESSAGE = "If your email is registered, you will receive a password reset code."


def _client_info(request: Request, locale: Optional[str] = None, platform: Optional[str] = None) -> ClientInfo:
    return ClientInfo(
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("User-Agent"),
        locale=locale or request.headers.get("Accept-Language"),
        platform=platform,
    )


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
def register(body: RegisterRequest, db: Session = Depends(get_db)):
    """
    ## Register a new account

    **Role:** Public.

    Creates the account immediately; sign-in then goes through the usual
    login + OTP steps.

    - HTTP 400 → password does not meet the policy / malformed body.
    - HTTP 409 → email or phone already registered.
    """
    account = register_account(db, body)
    return RegisterResponse(message="Account registered successfully", account_code=account.account_code)


@router.post("/login", response_model=ChallengeResponse)
def login(
    body: LoginRequest,
    request: Request,
    db: Session = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
):
    """
    ## Login with email and password (Step 1 of 2)

    **Role:** Public.

    Verifies the password and emails a one-time code. The response carries
    only an opaque `challenge_ref`; the code itself is never returned.

    ### Frontend integration
    1. POST `{ email, password }`.
    2. HTTP 200 → show the code entry screen, keep `challenge_ref`.
    3. HTTP 401 → "Incorrect email or password" (same for unknown emails).
    4. HTTP 500 → the email could not be sent; let the user try again.
    5. Next: **POST /auth/verify-otp**.
    """
    account = verify_credentials(db, body.email, body.password)

    challenge, code = issue_challenge(
        db,
        account.email,
        FlowKind.LOGIN,
        client=_client_info(request, body.locale, body.platform),
    )
    deliver_challenge(notifier, account.email, code, FlowKind.LOGIN)

    return ChallengeResponse(
        message="Please verify the code sent to your email.",
        challenge_ref=challenge.id,
        expires_in=int(FLOW_POLICIES[FlowKind.LOGIN].ttl.total_seconds()),
    )


@router.post("/verify-otp", response_model=Token)
def verify_otp(body: OTPVerifyRequest, db: Session = Depends(get_db)):
    """
    ## Verify the login code (Step 2 of 2)

    **Role:** Public.

    Consumes the challenge and returns a bearer token. A code works exactly
    once; wrong, expired and already-used codes all answer 401
    "Invalid or expired OTP".
    """
    account = redeem_challenge(db, body.challenge_ref, FlowKind.LOGIN, body.code)
    access_token, expires_in = create_access_token(account)
    return Token(
        access_token=access_token,
        expires_in=expires_in,
        account=AccountSummary.model_validate(account),
    )


@router.get("/me", response_model=AccountSummary)
def get_current_account(
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    """
    ## Get the authenticated account

    **Auth:** `Authorization: Bearer <token>` header required.
    """
    account = get_account_by_code(db, principal.account_code)
    if account is None or not account.is_active:
        raise UnauthorizedException(detail="Account not found")
    return account


@router.post("/change-password", response_model=MessageResponse)
def change_password_endpoint(
    body: PasswordChange,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    """
    ## Change the current account's password

    **Auth:** `Authorization: Bearer <token>` header required.

    - HTTP 400 → new password fails the policy or equals the current one.
    - HTTP 401 → missing/invalid token or incorrect current password.
    """
    change_password(db, principal, body.current_password, body.new_password)
    return MessageResponse(message="Password changed successfully")


@router.post("/forgot-password", response_model=ChallengeResponse)
def forgot_password(
    body: ForgotPasswordRequest,
    request: Request,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
):
    """
    ## Request a password reset code

    **Role:** Public.

    Always answers 200 with the same shape. For unknown or deactivated
    emails the `challenge_ref` is random and can never be redeemed. The code
    is emailed after the response is sent so response time does not depend
    on whether the account exists.
    """
    expires_in = int(FLOW_POLICIES[FlowKind.PASSWORD_RESET].ttl.total_seconds())

    account = get_account_by_email(db, body.email)
    if account is None or not account.is_active:
        return ChallengeResponse(
            message=RESET_MESSAGE, challenge_ref=str(uuid.uuid4()), expires_in=expires_in
        )

    challenge, code = issue_challenge(
        db, account.email, FlowKind.PASSWORD_RESET, client=_client_info(request)
    )
    background_tasks.add_task(deliver_challenge, notifier, account.email, code, FlowKind.PASSWORD_RESET)

    return ChallengeResponse(message=RESET_MESSAGE, challenge_ref=challenge.id, expires_in=expires_in)


@router.post("/reset-password", response_model=MessageResponse)
def reset_password_endpoint(body: ResetPasswordRequest, db: Session = Depends(get_db)):
    """
    ## Reset the password with an emailed code

    **Role:** Public.

    - HTTP 400 → "Invalid or expired OTP", or the new password fails the policy.
    - HTTP 500 → code accepted but the password could not be stored; restart
      from **POST /auth/forgot-password**.
    """
    try:
        reset_password(db, body.challenge_ref, body.code, body.new_password)
    except InvalidOrExpiredOtpException as exc:
        raise BadRequestException(detail=exc.detail) from None
    return MessageResponse(message="Password reset successfully")
