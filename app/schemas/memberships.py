import uuid
from datetime import date, datetime
from typing import Optional, List

from pydantic import BaseModel, Field, ConfigDict

from app.models.membership import BillingFrequency, EnrollmentFeeStatus, MembershipStatus


class MembershipResponse(BaseModel):
    id: uuid.UUID
    member_id: uuid.UUID
    plan_id: uuid.UUID
    status: MembershipStatus
    billing_frequency: BillingFrequency
    billing_anniversary_day: Optional[int]
    bill_on_month_end: bool
    paid_months: int
    next_payment_due: Optional[date]
    last_payment_date: Optional[date]
    join_date: Optional[date]
    eligible_date: Optional[date]
    cancelled_date: Optional[date]
    enrollment_fee_status: EnrollmentFeeStatus
    agreement_sent_at: Optional[datetime]
    agreement_signed_at: Optional[datetime]

    model_config = ConfigDict(from_attributes=True)


class EligibilityResponse(BaseModel):
    membership_id: uuid.UUID
    status: MembershipStatus
    paid_months: int
    eligibility_months: int
    months_remaining: int
    is_eligible: bool
    eligible_date: Optional[date]


class StatusOverrideRequest(BaseModel):
    status: MembershipStatus
    reason: str = Field(..., min_length=1, max_length=255)


class SideEffectReportResponse(BaseModel):
    succeeded: List[str] = []
    failed: dict[str, str] = {}


class AgreementSentResponse(BaseModel):
    membership: MembershipResponse
    side_effects: SideEffectReportResponse


class ChangeFrequencyRequest(BaseModel):
    billing_frequency: BillingFrequency


class ChangeFrequencyResponse(BaseModel):
    membership: MembershipResponse
    previous_frequency: BillingFrequency
    new_frequency: BillingFrequency
