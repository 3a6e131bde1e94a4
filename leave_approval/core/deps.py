"""
Dependencies for FastAPI endpoints
"""
from typing import Generator
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from leave_approval.db.session import SessionLocal
from leave_approval.core.security import decode_token
from leave_approval.models.user import User
from leave_approval.services.notification_service import Notifier, DatabaseNotifier
from leave_approval.services.org_directory import OrgDirectory, SqlOrgDirectory


security = HTTPBearer()


def get_db() -> Generator:
    """Dependency for getting database session"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db)
) -> User:
    """
    Get current authenticated user from JWT token (``sub`` holds the user id)
    """
    try:
        payload = decode_token(credentials.credentials)
        sub_value = payload.get("sub")
        if sub_value is None:
            raise ValueError("Missing subject")
        user_id = int(sub_value)
    except (ValueError, TypeError):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not user.active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Inactive user"
        )

    return user


def get_org_directory(db: Session = Depends(get_db)) -> OrgDirectory:
    """Org hierarchy used to build approval chains"""
    return SqlOrgDirectory(db)


def get_notifier(db: Session = Depends(get_db)) -> Notifier:
    """Notification sink for leave transitions"""
    return DatabaseNotifier(db)
