import uuid
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field, ConfigDict

from app.models.membership import MembershipStatus
from app.models.payment import PaymentMethod, PaymentStatus, PaymentType


class ManualPaymentRequest(BaseModel):
    membership_id: uuid.UUID
    type: PaymentType = PaymentType.DUES
    method: PaymentMethod = Field(..., examples=["cash"])
    amount_cents: Optional[int] = Field(None, ge=0, examples=[5000])
    months: Optional[int] = Field(None, ge=1, le=120)
    billing_date: Optional[date] = None
    paid_at: Optional[datetime] = None
    notes: Optional[str] = Field(None, max_length=255)


class SettleRequest(BaseModel):
    method: PaymentMethod = Field(..., examples=["check"])
    paid_at: Optional[datetime] = None
    notes: Optional[str] = Field(None, max_length=255)
    processor_payment_id: Optional[str] = Field(None, max_length=100)


class PaymentResponse(BaseModel):
    id: uuid.UUID
    membership_id: uuid.UUID
    member_id: uuid.UUID
    type: PaymentType
    method: Optional[PaymentMethod]
    status: PaymentStatus
    amount_cents: int
    processor_fee_cents: int
    platform_fee_cents: int
    total_charged_cents: int
    net_amount_cents: int
    months_credited: int
    invoice_number: Optional[str]
    due_date: Optional[date]
    period_start: Optional[date]
    period_end: Optional[date]
    period_label: Optional[str]
    notes: Optional[str]
    recorded_by: Optional[str]
    reminder_count: int
    requires_review: bool
    paid_at: Optional[datetime]
    failed_at: Optional[datetime]
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class SettlementResponse(BaseModel):
    success: bool
    outcome: str
    new_paid_months: Optional[int] = None
    new_status: Optional[MembershipStatus] = None
    became_eligible: bool = False
    next_payment_due: Optional[date] = None
    membership_updated: bool = False
    error: Optional[str] = None


class PaymentWithSettlement(BaseModel):
    payment: PaymentResponse
    settlement: SettlementResponse


class ReminderResponse(BaseModel):
    payment_id: uuid.UUID
    reminder_count: int
    requires_review: bool


class OverduePaymentRow(BaseModel):
    payment_id: uuid.UUID
    membership_id: uuid.UUID
    invoice_number: Optional[str]
    period_label: Optional[str]
    due_date: date
    days_overdue: int
    amount_cents: int
    status: PaymentStatus
    reminder_count: int
    requires_review: bool
