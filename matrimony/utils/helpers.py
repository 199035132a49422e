"""Small shared helpers"""
import secrets
from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    """Naive UTC timestamp, the form every DateTime column stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def generate_account_code(now: Optional[datetime] = None) -> str:
    """Public account identifier, formatted ``YYYYMMDD-HHMMSS-XX``."""
    now = now or utcnow()
    return f"{now:%Y%m%d-%H%M%S}-{secrets.randbelow(100):02d}"
