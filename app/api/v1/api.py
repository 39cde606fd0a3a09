# === backend/app/api/v1/api.py ===
from fastapi import APIRouter
from .endpoints import endpoints, sql

api_router = APIRouter()
api_router.include_router(endpoints.router, prefix="/endpoints", tags=["Endpoints"])
api_router.include_router(sql.router, prefix="/sql", tags=["SQL"])
