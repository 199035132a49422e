"""Account model - the credential record for a matrimony profile"""
from sqlalchemy import Column, Integer, String, Boolean, DateTime
from sqlalchemy.sql import func
from matrimony.db.base import Base


class Account(Base):
    """
    Registered account. Created at registration, never deleted: deactivation
    flips ``is_active``. ``hashed_password`` is only ever replaced by the
    password change / reset flows.
    """
    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    account_code = Column(String(32), unique=True, nullable=False, index=True)
    # Matched exactly as stored, no case folding
    email = Column(String(255), unique=True, nullable=False, index=True)
    hashed_password = Column(String(255), nullable=False)

    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    middle_name = Column(String(100), nullable=True)
    primary_phone = Column(String(32), unique=True, nullable=True, index=True)

    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime(timezone=False), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=False), onupdate=func.now(), nullable=True)
    last_login = Column(DateTime(timezone=False), nullable=True)

    def __repr__(self):
        return f"<Account(id={self.id}, account_code='{self.account_code}', email='{self.email}')>"

    @property
    def full_name(self) -> str:
        parts = [self.first_name, self.middle_name, self.last_name]
        return " ".join(p for p in parts if p)
