"""Authentication and account schemas"""
from pydantic import BaseModel, ConfigDict, EmailStr, Field
from typing import Optional
from datetime import datetime


class RegisterRequest(BaseModel):
    """Schema for creating a new account"""
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=128)
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    middle_name: Optional[str] = Field(None, max_length=100)
    primary_phone: Optional[str] = Field(None, max_length=32)


class RegisterResponse(BaseModel):
    message: str
    account_code: str


class AccountSummary(BaseModel):
    """Public view of an account"""
    model_config = ConfigDict(from_attributes=True)

    account_code: str
    email: str
    first_name: str
    last_name: str
    full_name: str
    last_login: Optional[datetime] = None


class LoginRequest(BaseModel):
    """Step 1 of login: email + password, optional client hints"""
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=128)
    locale: Optional[str] = Field(None, max_length=64)
    platform: Optional[str] = Field(None, max_length=64)


class ChallengeResponse(BaseModel):
    """Returned whenever a code has been (or may have been) emailed"""
    message: str
    challenge_ref: str
    expires_in: int = Field(..., description="Seconds until the code expires")


class OTPVerifyRequest(BaseModel):
    challenge_ref: str = Field(..., min_length=1, max_length=64)
    code: str = Field(..., min_length=1, max_length=16)


class Token(BaseModel):
    """Token response schema"""
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    account: AccountSummary


class Principal(BaseModel):
    """Authenticated caller, decoded from a bearer token"""
    account_code: str
    email: str
    issued_at: datetime
    expires_at: datetime


class PasswordChange(BaseModel):
    """Schema for changing password"""
    current_password: str = Field(..., min_length=1, max_length=128)
    new_password: str = Field(..., min_length=1, max_length=128)


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    challenge_ref: str = Field(..., min_length=1, max_length=64)
    code: str = Field(..., min_length=1, max_length=16)
    new_password: str = Field(..., min_length=1, max_length=128)


class MessageResponse(BaseModel):
    message: str
