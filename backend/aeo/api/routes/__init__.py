"""
API Routes
"""

from fastapi import APIRouter

from .webhook import router as webhook_router
from .jobs import router as jobs_router
from .analytics import router as analytics_router

api_router = APIRouter()

api_router.include_router(webhook_router, prefix="/webhook", tags=["Ingestion"])
api_router.include_router(jobs_router, prefix="/jobs", tags=["Jobs"])
api_router.include_router(analytics_router, prefix="/analytics", tags=["Analytics"])
