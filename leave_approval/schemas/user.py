"""
User schemas
"""
from typing import Optional
from pydantic import BaseModel, ConfigDict


class UserBrief(BaseModel):
    """Schema for the user summary embedded in leave responses"""
    id: int
    name: str
    email: str
    role: str
    manager_id: Optional[int] = None

    model_config = ConfigDict(from_attributes=True)
