"""Initialize database tables"""
import logging
from matrimony.db.base import Base
from matrimony.db.session import engine
from matrimony.models import Account, OTPChallenge  # noqa: F401  (register tables)

logger = logging.getLogger(__name__)


def init_db() -> None:
    """Create all database tables"""
    try:
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables created successfully")
    except Exception as e:
        logger.error(f"Error creating database tables: {str(e)}")
        raise
