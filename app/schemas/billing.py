import uuid
from datetime import date
from decimal import Decimal
from typing import Dict, Optional, List

from pydantic import BaseModel, Field

from app.models.membership import BillingFrequency, MembershipStatus


class BillingRunRequest(BaseModel):
    billing_date: Optional[date] = Field(None, examples=["2025-02-01"])
    dry_run: bool = False


class StatusRecommendationResponse(BaseModel):
    membership_id: uuid.UUID
    current_status: MembershipStatus
    recommended_status: MembershipStatus
    reason: str
    applied: bool


class BillingRunResponse(BaseModel):
    organization_id: uuid.UUID
    billing_date: Optional[date]
    dry_run: bool
    success: bool
    payments_created: int
    payment_ids: List[uuid.UUID]
    skipped: int
    status_updates: int
    recommendations: List[StatusRecommendationResponse]
    errors: List[dict]


class ReminderRunRequest(BaseModel):
    today: Optional[date] = Field(None, examples=["2025-01-08"])


class ReminderRunResponse(BaseModel):
    success: bool
    reminders_queued: int
    payments_marked_for_review: int
    errors: List[dict]


class BillingConfigResponse(BaseModel):
    eligibility_months: int
    lapse_days: int
    cancel_months: int
    reminder_schedule: List[int]
    max_reminders: int
    send_invoice_reminders: bool
    auto_lapse: bool


class FeePreviewRequest(BaseModel):
    base_amount_cents: int = Field(..., ge=0, examples=[5000])
    frequency: BillingFrequency = BillingFrequency.MONTHLY
    # 없으면 기관 설정 사용
    platform_fee_dollars: Optional[Decimal] = Field(None, ge=0)
    pass_fees_to_member: Optional[bool] = None


class FeeBreakdownResponse(BaseModel):
    base_amount_cents: int
    processor_fee_cents: int
    platform_fee_cents: int
    total_fees_cents: int
    charge_amount_cents: int
    net_amount_cents: int


class FeeSettingsRequest(BaseModel):
    pass_fees_to_member: Optional[bool] = None
    # 주기별 달러 금액, 주지 않은 주기는 기존 값 유지
    platform_fees: Optional[Dict[str, Decimal]] = Field(None, examples=[{"monthly": 2, "annual": 10}])


class FeeSettingsResponse(BaseModel):
    pass_fees_to_member: bool
    platform_fees: Dict[str, Decimal]
