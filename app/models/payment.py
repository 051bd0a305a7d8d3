"""
payment.py

결제(Payment) 모델 정의 파일.

결제는 하나의 회원권에 속한 금전 이벤트(인보이스)이다.
- 청구 배치 또는 관리자 수동 기록으로 PENDING 생성
- 정산(settlement)되면 COMPLETED, 이후 금액 필드는 변경하지 않음
- 실패 처리되면 FAILED
- 그 이후에는 리마인더 관련 필드(reminder_*, requires_review)만 변경

금액은 모두 cents 단위 정수.

"""

import uuid
from datetime import date, datetime, timezone
from enum import Enum

from sqlalchemy import Boolean, Date, DateTime, Enum as SAEnum, ForeignKey, Index, Integer, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base


class PaymentType(str, Enum):
    ENROLLMENT_FEE = "enrollment_fee"
    DUES = "dues"
    BACK_DUES = "back_dues"


class PaymentMethod(str, Enum):
    PROCESSOR = "processor"
    CASH = "cash"
    CHECK = "check"
    ZELLE = "zelle"
    OTHER = "other"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


# 아직 돈이 들어오지 않은 상태 (정산/리마인더 대상)
OPEN_PAYMENT_STATUSES = (PaymentStatus.PENDING, PaymentStatus.FAILED)


class Payment(Base):
    __tablename__ = "payments"
    __table_args__ = (
        UniqueConstraint("organization_id", "invoice_number", name="uq_payments_org_invoice_number"),
        Index("ix_payments_membership_id", "membership_id"),
        Index("ix_payments_due_date_reminders", "due_date", "reminder_count"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    organization_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    membership_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("memberships.id", ondelete="CASCADE"), nullable=False
    )
    member_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("members.id", ondelete="CASCADE"), nullable=False
    )

    type: Mapped[PaymentType] = mapped_column(SAEnum(PaymentType, name="payment_type"), nullable=False)
    method: Mapped[PaymentMethod | None] = mapped_column(SAEnum(PaymentMethod, name="payment_method"), nullable=True)
    status: Mapped[PaymentStatus] = mapped_column(
        SAEnum(PaymentStatus, name="payment_status"),
        nullable=False,
        default=PaymentStatus.PENDING,
        index=True,
    )

    amount_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    processor_fee_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    platform_fee_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_charged_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    net_amount_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    months_credited: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # 인보이스 메타데이터
    invoice_number: Mapped[str | None] = mapped_column(String(32), nullable=True)
    due_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    period_start: Mapped[date | None] = mapped_column(Date, nullable=True)
    period_end: Mapped[date | None] = mapped_column(Date, nullable=True)
    period_label: Mapped[str | None] = mapped_column(String(50), nullable=True)

    processor_payment_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    notes: Mapped[str | None] = mapped_column(String(255), nullable=True)
    recorded_by: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # 리마인더 관리
    reminder_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    reminder_sent_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    reminders_paused: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    requires_review: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False
    )
    paid_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    failed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    refunded_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
