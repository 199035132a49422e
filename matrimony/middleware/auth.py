"""Authentication dependencies"""
import hmac
from typing import Optional

from fastapi import Depends, Header
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from matrimony.core.config import settings
from matrimony.errors.exceptions import UnauthorizedException
from matrimony.schemas.auth_schemas import Principal
from matrimony.services.auth_service import decode_access_token

bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Principal:
    """Resolve the bearer token into the caller's Principal"""
    if credentials is None or not credentials.credentials:
        raise UnauthorizedException(detail="Bearer token is required")

    principal = decode_access_token(credentials.credentials)
    if principal is None:
        raise UnauthorizedException(detail="Invalid or expired token")
    return principal


async def require_api_key(x_api_key: Optional[str] = Header(None, alias="X-API-Key")) -> None:
    """Reject requests without the configured X-API-Key; no-op when none is configured"""
    expected = settings.API_KEY
    if not expected:
        return
    if not x_api_key or not hmac.compare_digest(x_api_key.encode(), expected.encode()):
        raise UnauthorizedException(detail="Invalid API key")
