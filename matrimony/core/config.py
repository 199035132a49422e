"""Application configuration"""
import os
from dotenv import load_dotenv

load_dotenv()


class Settings:
    # Database Configuration
    DATABASE_USER = os.getenv("DATABASE_USER", "postgres")
    DATABASE_PASSWORD = os.getenv("DATABASE_PASSWORD", "123456")
    DATABASE_HOST = os.getenv("DATABASE_HOST", "localhost")
    DATABASE_PORT = os.getenv("DATABASE_PORT", "5432")
    DATABASE_NAME = os.getenv("DATABASE_NAME", "matrimony")

    @property
    def DATABASE_URL(self) -> str:
        """Full database URL; DATABASE_URL in the environment wins over the parts"""
        url = os.getenv("DATABASE_URL")
        if url:
            return url
        return f"postgresql://{self.DATABASE_USER}:{self.DATABASE_PASSWORD}@{self.DATABASE_HOST}:{self.DATABASE_PORT}/{self.DATABASE_NAME}"

    # Logging Configuration
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    LOG_FILE = os.getenv("LOG_FILE", "matrimony/logs/logs.txt")

    # Development/Production Settings
    ENVIRONMENT = os.getenv("ENVIRONMENT", "production")
    DEBUG = os.getenv("DEBUG", "false").lower() == "true"

    # Project Metadata
    PROJECT_NAME = "Matrimony Services API"
    PROJECT_VERSION = "2.0.0"
    API_V1_STR = "/api/v1"

    # API key guarding the /auth routes (disabled when empty)
    API_KEY = os.getenv("API_KEY", "")

    # CORS
    ALLOWED_ORIGINS = os.getenv("ALLOWED_ORIGINS", "http://localhost:3000")
    ORIGINS_CACHE_TTL_SECONDS = int(os.getenv("ORIGINS_CACHE_TTL_SECONDS", 300))

    # JWT Authentication
    SECRET_KEY = os.getenv("SECRET_KEY", "your-secret-key-change-this-in-production-min-32-chars")
    ALGORITHM = os.getenv("ALGORITHM", "HS256")
    ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", 60 * 24))  # 24 hours

    # Password hashing / policy
    BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", 12))
    PASSWORD_MIN_LENGTH = int(os.getenv("PASSWORD_MIN_LENGTH", 8))

    # SMTP / Email configuration
    SMTP_HOST = os.getenv("SMTP_HOST", "smtp.gmail.com")
    SMTP_PORT = int(os.getenv("SMTP_PORT", 587))
    SMTP_USER = os.getenv("SMTP_USER", "")
    SMTP_PASS = os.getenv("SMTP_PASS", "")
    EMAIL_FROM = os.getenv("EMAIL_FROM", "noreply@matrimonyservices.com")
    EMAIL_FROM_NAME = os.getenv("EMAIL_FROM_NAME", "Matrimony Services")

    # OTP: one code length for every flow, one expiry per flow
    OTP_LENGTH = int(os.getenv("OTP_LENGTH", 6))
    OTP_LOGIN_EXPIRE_MINUTES = int(os.getenv("OTP_LOGIN_EXPIRE_MINUTES", 10))
    OTP_RESET_EXPIRE_MINUTES = int(os.getenv("OTP_RESET_EXPIRE_MINUTES", 15))

    # How long consumed/expired challenges are kept before purge
    OTP_RETENTION_HOURS = int(os.getenv("OTP_RETENTION_HOURS", 24))


settings = Settings()
