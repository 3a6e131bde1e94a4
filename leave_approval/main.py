"""
Leave Approval Service - Main Application Entry Point
"""
import logging
from urllib.parse import urlparse, urlunparse

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from fastapi import HTTPException

from leave_approval.api.router import api_router
from leave_approval.core.config import settings
from leave_approval.core.constants import DEFAULT_VERSION
from leave_approval.core.errors import (
    leave_error_handler,
    http_exception_handler,
    validation_exception_handler,
    generic_exception_handler
)
from leave_approval.core.exceptions import LeaveError
from leave_approval.core.logging import setup_logging
from leave_approval.db.session import init_models

# Setup logging first
setup_logging()
logger = logging.getLogger(__name__)


def _mask_database_url(url: str) -> str:
    """Mask password in DATABASE_URL for safe logging; show full path for sqlite."""
    parsed = urlparse(url)
    if parsed.scheme.startswith("sqlite") or not parsed.password:
        return url
    netloc = f"{parsed.username}:****@{parsed.hostname or ''}"
    if parsed.port:
        netloc += f":{parsed.port}"
    return urlunparse(parsed._replace(netloc=netloc))


# Create FastAPI app
app = FastAPI(
    title="Leave Approval Service",
    description="Multi-level leave approval and leave balance ledger",
    version=settings.VERSION or DEFAULT_VERSION
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_allowed_origins_list(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register exception handlers
app.add_exception_handler(LeaveError, leave_error_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)

# Include all API routes under /api/v1
app.include_router(api_router, prefix="/api/v1")


@app.on_event("startup")
def startup_log_config() -> None:
    """Log effective configuration (secrets masked) and create SQLite tables."""
    logger.info("DATABASE_URL (app): %s", _mask_database_url(settings.DATABASE_URL))
    logger.info("Approval chain: %s", ",".join(settings.get_approval_chain_levels()))
    init_models()
