"""Pydantic schemas for request/response validation"""
from matrimony.schemas.auth_schemas import (
    RegisterRequest,
    RegisterResponse,
    AccountSummary,
    LoginRequest,
    ChallengeResponse,
    OTPVerifyRequest,
    Token,
    Principal,
    PasswordChange,
    ForgotPasswordRequest,
    ResetPasswordRequest,
    MessageResponse,
)

__all__ = [
    "RegisterRequest",
    "RegisterResponse",
    "AccountSummary",
    "LoginRequest",
    "ChallengeResponse",
    "OTPVerifyRequest",
    "Token",
    "Principal",
    "PasswordChange",
    "ForgotPasswordRequest",
    "ResetPasswordRequest",
    "MessageResponse",
]
