"""
Central API router that aggregates all route modules.
"""

from fastapi import APIRouter
from app.api.routes import households, maintenance, seasons

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(seasons.router)
api_router.include_router(households.router)
api_router.include_router(households.inhabitants_router)
api_router.include_router(maintenance.router)
