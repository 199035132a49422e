"""Custom exceptions for error handling"""
from fastapi import HTTPException, status


class BaseHTTPException(HTTPException):
    """Base exception class for all custom HTTP exceptions"""
    def __init__(self, detail: str = None, headers: dict = None):
        super().__init__(
            status_code=self.status_code,
            detail=detail or self.detail,
            headers=headers
        )


class BadRequestException(BaseHTTPException):
    """400 Bad Request"""
    status_code = status.HTTP_400_BAD_REQUEST
    detail = "Bad request"


class PasswordPolicyException(BadRequestException):
    """New password rejected by the strength policy"""
    detail = "Password does not meet the strength requirements"


class UnauthorizedException(BaseHTTPException):
    """401 Unauthorized"""
    status_code = status.HTTP_401_UNAUTHORIZED
    detail = "Not authenticated"

    def __init__(self, detail: str = None):
        super().__init__(
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"}
        )


class InvalidOrExpiredOtpException(UnauthorizedException):
    """
    Any failed OTP redemption. Wrong code, expired, already used and unknown
    challenge all share this one message.
    """
    detail = "Invalid or expired OTP"


class ForbiddenException(BaseHTTPException):
    """403 Forbidden"""
    status_code = status.HTTP_403_FORBIDDEN
    detail = "Forbidden"


class ConflictException(BaseHTTPException):
    """409 Conflict"""
    status_code = status.HTTP_409_CONFLICT
    detail = "Resource already exists"


class InternalServerException(BaseHTTPException):
    """500 Internal Server Error"""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    detail = "Internal server error"


class DeliveryException(InternalServerException):
    """The verification email could not be sent"""
    detail = "Could not deliver the verification code. Please try again to receive a new code."


class PasswordUpdateFailedException(InternalServerException):
    """OTP was consumed but the new password could not be stored"""
    detail = (
        "Your code was verified but the password could not be updated. "
        "Please restart the password reset process."
    )
