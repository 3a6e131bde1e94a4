"""
Main API router
"""
from fastapi import APIRouter

from leave_approval.api.v1 import health, leaves, version

api_router = APIRouter()

api_router.include_router(health.router, tags=["health"])
api_router.include_router(version.router, tags=["version"])
api_router.include_router(leaves.router, prefix="/leaves", tags=["leaves"])
