import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, ConfigDict

from app.models.application import ApplicationStatus
from app.schemas.memberships import MembershipResponse, SideEffectReportResponse


class RejectRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=255)


class ApplicationResponse(BaseModel):
    id: uuid.UUID
    first_name: str
    last_name: str
    email: str
    status: ApplicationStatus
    paid_months: int
    reviewed_by: Optional[str]
    reviewed_at: Optional[datetime]
    rejection_reason: Optional[str]
    member_id: Optional[uuid.UUID]
    membership_id: Optional[uuid.UUID]

    model_config = ConfigDict(from_attributes=True)


class ApprovalResponse(BaseModel):
    application: ApplicationResponse
    membership: MembershipResponse
    side_effects: SideEffectReportResponse
