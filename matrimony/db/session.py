"""Engine and session factory"""
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from matrimony.core.config import settings

_connect_args = {}
if settings.DATABASE_URL.startswith("sqlite"):
    # SQLite connections are shared across the threadpool that serves sync routes
    _connect_args = {"check_same_thread": False, "timeout": 30}

engine = create_engine(
    settings.DATABASE_URL,
    pool_pre_ping=True,
    connect_args=_connect_args,
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
