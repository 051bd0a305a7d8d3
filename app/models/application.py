"""
application.py

재가입 신청(ReturningApplication) 모델 정의 파일.

예전에 회원이었던 사람이 다시 가입을 신청하면 PENDING으로 생성되고,
관리자가 승인(APPROVED)하면 Member + Membership이 만들어진다.
관리자는 승인 전에 이전 납부 개월 수(paid_months)를 조정할 수 있다.

PENDING -> APPROVED / REJECTED 전이는 한 번만 일어난다.
(동시에 두 관리자가 처리하면 조건부 UPDATE로 한 명만 성공)

"""

import uuid
from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import DateTime, Enum as SAEnum, ForeignKey, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base
from app.models.membership import BillingFrequency, EnrollmentFeeStatus


class ApplicationStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ReturningApplication(Base):
    __tablename__ = "returning_applications"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    organization_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    plan_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("plans.id"), nullable=False)

    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(30), nullable=True)

    billing_frequency: Mapped[BillingFrequency] = mapped_column(
        SAEnum(BillingFrequency, name="billing_frequency"),
        nullable=False,
        default=BillingFrequency.MONTHLY,
    )
    paid_months: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    enrollment_fee_status: Mapped[EnrollmentFeeStatus] = mapped_column(
        SAEnum(EnrollmentFeeStatus, name="enrollment_fee_status"),
        nullable=False,
        default=EnrollmentFeeStatus.UNPAID,
    )

    status: Mapped[ApplicationStatus] = mapped_column(
        SAEnum(ApplicationStatus, name="application_status"),
        nullable=False,
        default=ApplicationStatus.PENDING,
        index=True,
    )
    reviewed_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(String(255), nullable=True)

    member_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, ForeignKey("members.id"), nullable=True)
    membership_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, ForeignKey("memberships.id"), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False
    )
