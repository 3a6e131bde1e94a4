"""
Health check endpoint
"""
from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.orm import Session
from leave_approval.core.constants import SERVICE_NAME
from leave_approval.core.deps import get_db

router = APIRouter()


@router.get("/health")
async def health_check(db: Session = Depends(get_db)):
    """
    Health check endpoint

    Returns service status and whether the database answers.
    """
    db.execute(text("SELECT 1"))
    return {
        "status": "ok",
        "service": SERVICE_NAME,
        "database": "ok",
    }
