"""Pydantic schemas for API request/response validation"""

from pydantic import BaseModel, Field
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional


class DueSchema(BaseModel):
    """Single member due"""

    id: str
    association_id: str
    member_id: str
    member_name: Optional[str] = None
    amount: Decimal
    due_date: date
    period_start: date
    status: str
    paid_date: Optional[datetime] = None
    paid_amount: Optional[Decimal] = None
    payment_method: Optional[str] = None
    notes: Optional[str] = None


class AssociationDuesResponse(BaseModel):
    """Response for GET /v1/associations/{association_id}/dues"""

    association_id: str
    dues: List[DueSchema]


class MemberFailureSchema(BaseModel):
    """Member whose due could not be generated"""

    member_id: str
    error: str


class GenerateDuesResponse(BaseModel):
    """Response for POST /v1/associations/{association_id}/dues/generate"""

    message: str
    generated_count: int
    existing_count: int
    due_date: date
    period_start: date
    period_end: date
    failures: List[MemberFailureSchema] = []


class MarkPaidRequest(BaseModel):
    """Request body for PUT /v1/dues/{due_id}/mark-paid"""

    paid_amount: Optional[Decimal] = Field(None, ge=0, description="Amount received, defaults to the due amount")
    payment_method: Optional[str] = Field(None, description="cash, transfer, mobile money...")
    notes: Optional[str] = None


class MarkPaidResponse(BaseModel):
    """Response for PUT /v1/dues/{due_id}/mark-paid"""

    message: str
    due: DueSchema


class MemberDueItem(DueSchema):
    """Due in a member's cross-association listing"""

    association_name: Optional[str] = None
    currency: Optional[str] = None


class DuesStatsSchema(BaseModel):
    """Counts and totals over a member's dues"""

    total: int
    paid: int
    pending: int
    overdue: int
    total_amount: Decimal
    paid_amount: Decimal


class MemberDuesResponse(BaseModel):
    """Response for GET /v1/members/{member_id}/dues"""

    member_id: str
    dues: List[MemberDueItem]
    stats: DuesStatsSchema
