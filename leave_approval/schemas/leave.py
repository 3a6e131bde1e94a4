"""
Leave schemas
"""
from datetime import date, datetime
from decimal import Decimal
from typing import Optional, List
from pydantic import BaseModel, Field, model_validator, field_serializer
from pydantic import ConfigDict
from leave_approval.models.leave import LeaveType, LeaveStatus, HalfDaySession, ApprovalStatus
from leave_approval.schemas.user import UserBrief
from leave_approval.utils.datetime_utils import iso_8601_utc


class LeaveApplyRequest(BaseModel):
    """Schema for applying leave"""
    leave_type: LeaveType = Field(..., description="Type of leave")
    start_date: date = Field(..., description="First day of leave")
    end_date: date = Field(..., description="Last day of leave")
    is_half_day: bool = Field(False, description="Half-day leave (single day only)")
    half_day_session: Optional[HalfDaySession] = Field(None, description="first_half or second_half (required for half-day)")
    reason: Optional[str] = Field(None, max_length=2000, description="Reason for leave")

    @model_validator(mode="after")
    def drop_session_for_full_day(self) -> "LeaveApplyRequest":
        if not self.is_half_day:
            self.half_day_session = None
        return self


class DecisionRequest(BaseModel):
    """Schema for approve/reject actions"""
    comments: Optional[str] = Field(None, max_length=2000, description="Optional comments for the decision")


class LeaveApprovalOut(BaseModel):
    """One level of a request's approval chain"""
    id: int
    approver_id: int
    approver: Optional[UserBrief] = None
    approval_order: int
    status: ApprovalStatus
    comments: Optional[str] = None
    decided_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("decided_at", when_used="always")
    def _ser_datetime(self, dt: Optional[datetime]) -> Optional[str]:
        return iso_8601_utc(dt)


class LeaveOut(BaseModel):
    """Schema for leave output (includes the approval chain)"""
    id: int
    user_id: int
    user: Optional[UserBrief] = None
    leave_type: LeaveType
    start_date: date
    end_date: date
    is_half_day: bool
    half_day_session: Optional[HalfDaySession] = None
    days_count: Decimal
    reason: Optional[str] = None
    status: LeaveStatus
    current_approval_level: int
    total_approval_levels: int
    approver_id: Optional[int] = Field(None, description="ID of the last deciding approver")
    comments: Optional[str] = Field(None, description="Comments of the last decision")
    decided_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
    approvals: List[LeaveApprovalOut] = []

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("days_count", when_used="always")
    def _ser_days(self, value: Decimal) -> float:
        return float(value)

    @field_serializer("decided_at", "cancelled_at", "created_at", "updated_at", when_used="always")
    def _ser_datetime(self, dt: Optional[datetime]) -> Optional[str]:
        return iso_8601_utc(dt)


class LeaveListResponse(BaseModel):
    """Schema for paginated leave list response"""
    items: List[LeaveOut]
    total: int
    page: int
    limit: int
    total_pages: int


class LeaveActionResponse(BaseModel):
    """Schema for approve/reject/cancel responses"""
    message: str
    leave_request: LeaveOut


class LeaveBalanceOut(BaseModel):
    """Schema for a user's leave balance for one year"""
    user_id: int
    year: int
    sick_leave: Decimal
    casual_leave: Decimal
    earned_leave: Decimal
    comp_off: Decimal
    paternity_maternity: Decimal
    birthday_leave: Decimal

    model_config = ConfigDict(from_attributes=True)

    @field_serializer(
        "sick_leave", "casual_leave", "earned_leave", "comp_off", "paternity_maternity", "birthday_leave",
        when_used="always",
    )
    def _ser_days(self, value: Decimal) -> float:
        return float(value)
