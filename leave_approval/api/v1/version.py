"""
Version and metadata endpoint
"""
from fastapi import APIRouter
from leave_approval.core.config import settings
from leave_approval.core.constants import SERVICE_NAME, DEFAULT_VERSION

router = APIRouter()


@router.get("/version")
async def get_version():
    """
    Get application version and metadata

    Returns:
        Service name, version, environment and the configured approval chain
    """
    return {
        "service": SERVICE_NAME,
        "version": settings.VERSION or DEFAULT_VERSION,
        "env": settings.APP_ENV,
        "approval_chain": settings.get_approval_chain_levels(),
    }
