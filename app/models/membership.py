"""
membership.py

회원권(Membership) 모델 정의 파일.

회원권은 청구(billing)의 대상이다.
상태(status), 청구 주기, 청구 기념일, 납부 개월 수, 다음 납부일,
가입비 상태, 약정서(agreement) 서명 여부를 관리한다.

paid_months / next_payment_due / 상태 전이는
결제 정산(app.services.settlement)에서만 변경한다.

"""

import uuid
from datetime import date, datetime, timezone
from enum import Enum

from sqlalchemy import Boolean, Date, DateTime, Enum as SAEnum, ForeignKey, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base


"""
회원권 상태(MembershipStatus)

- PENDING            : 가입 직후, 온보딩 미완료
- AWAITING_SIGNATURE : 약정서 발송됨, 서명 대기
- WAITING_PERIOD     : 서명 + 납부 중, 자격 개월 수 미달
- CURRENT            : 자격 개월 수 충족, 납부 정상
- LAPSED             : 납부 연체
- CANCELLED          : 해지 (종료 상태)

"""

class MembershipStatus(str, Enum):
    PENDING = "pending"
    AWAITING_SIGNATURE = "awaiting_signature"
    WAITING_PERIOD = "waiting_period"
    CURRENT = "current"
    LAPSED = "lapsed"
    CANCELLED = "cancelled"


class BillingFrequency(str, Enum):
    MONTHLY = "monthly"
    BIANNUAL = "biannual"
    ANNUAL = "annual"


class EnrollmentFeeStatus(str, Enum):
    UNPAID = "unpaid"
    PAID = "paid"
    WAIVED = "waived"


class Membership(Base):
    __tablename__ = "memberships"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    organization_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    member_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("members.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    plan_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("plans.id"), nullable=False, index=True)

    status: Mapped[MembershipStatus] = mapped_column(
        SAEnum(MembershipStatus, name="membership_status"),
        nullable=False,
        default=MembershipStatus.PENDING,
        index=True,
    )
    billing_frequency: Mapped[BillingFrequency] = mapped_column(
        SAEnum(BillingFrequency, name="billing_frequency"),
        nullable=False,
        default=BillingFrequency.MONTHLY,
    )
    # 가입 당시 청구일 기록용 (조회 전용). 날짜 계산은 next_payment_due + bill_on_month_end만 사용
    billing_anniversary_day: Mapped[int | None] = mapped_column(Integer, nullable=True)
    # True면 매달 말일에 청구 (2/28 -> 3/31)
    bill_on_month_end: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    paid_months: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    next_payment_due: Mapped[date | None] = mapped_column(Date, nullable=True, index=True)
    last_payment_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    join_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    eligible_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    cancelled_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    enrollment_fee_status: Mapped[EnrollmentFeeStatus] = mapped_column(
        SAEnum(EnrollmentFeeStatus, name="enrollment_fee_status"),
        nullable=False,
        default=EnrollmentFeeStatus.UNPAID,
    )
    agreement_sent_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    agreement_signed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    processor_customer_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    processor_subscription_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    processor_subscription_status: Mapped[str | None] = mapped_column(String(30), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    @property
    def enrollment_fee_resolved(self) -> bool:
        return self.enrollment_fee_status in (EnrollmentFeeStatus.PAID, EnrollmentFeeStatus.WAIVED)

    @property
    def has_active_processor_subscription(self) -> bool:
        return bool(self.processor_subscription_id) and self.processor_subscription_status in ("active", "trialing")
