"""Error handling module"""
from matrimony.errors.exceptions import (
    BadRequestException,
    PasswordPolicyException,
    UnauthorizedException,
    InvalidOrExpiredOtpException,
    ForbiddenException,
    ConflictException,
    InternalServerException,
    DeliveryException,
    PasswordUpdateFailedException,
)

__all__ = [
    "BadRequestException",
    "PasswordPolicyException",
    "UnauthorizedException",
    "InvalidOrExpiredOtpException",
    "ForbiddenException",
    "ConflictException",
    "InternalServerException",
    "DeliveryException",
    "PasswordUpdateFailedException",
]
