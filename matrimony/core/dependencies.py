"""FastAPI dependencies"""
from typing import Generator
from sqlalchemy.orm import Session
from matrimony.db.session import SessionLocal
from matrimony.utils.email import Notifier, SmtpNotifier


def get_db() -> Generator:
    """
    Database session dependency
    Yields a database session and ensures it's closed after use
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


_notifier = SmtpNotifier()


def get_notifier() -> Notifier:
    """Email notifier used for OTP delivery"""
    return _notifier
