"""Database models"""
from matrimony.models.account import Account
from matrimony.models.otp import FlowKind, OTPChallenge

__all__ = ["Account", "FlowKind", "OTPChallenge"]
