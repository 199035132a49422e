"""API v1 router aggregation"""
from fastapi import APIRouter, Depends
from matrimony.api.v1.endpoints import auth_endpoints
from matrimony.middleware.auth import require_api_key

api_router = APIRouter()

api_router.include_router(
    auth_endpoints.router,
    prefix="/auth",
    tags=["Authentication"],
    dependencies=[Depends(require_api_key)],
)
