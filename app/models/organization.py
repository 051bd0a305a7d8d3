"""
organization.py

기관(Organization) 및 인보이스 번호 카운터(InvoiceSequence) 모델 정의 파일.

Organization은 멀티 테넌트의 경계이다.
모든 플랜/회원/회원권/결제는 정확히 하나의 기관에 속하며
다른 기관의 데이터에는 접근할 수 없다.

"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Integer, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.core.config import settings
from app.db.base import Base


def default_platform_fees() -> dict:
    return {"monthly": 0, "biannual": 0, "annual": 0}


"""
기관(Organization) 모델

- timezone            : 청구일/오늘 날짜 계산 기준 (IANA 이름)
- platform_fees       : 청구 주기별 플랫폼 수수료 (달러 단위, 예: {"monthly": 2})
- pass_fees_to_member : True면 수수료를 회원에게 전가(gross-up)
- billing_config      : 기관별 청구 설정 override (JSON, 없으면 기본값)

"""

class Organization(Base):
    __tablename__ = "organizations"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    slug: Mapped[str] = mapped_column(String(100), unique=True, index=True, nullable=False)

    timezone: Mapped[str] = mapped_column(String(64), nullable=False, default=lambda: settings.DEFAULT_TIMEZONE)
    country: Mapped[str] = mapped_column(String(2), nullable=False, default="US")
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="USD")

    platform_fees: Mapped[dict | None] = mapped_column(JSON, nullable=True, default=default_platform_fees)
    pass_fees_to_member: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    billing_config: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, index=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False
    )


class InvoiceSequence(Base):
    """기관 + 연월(YYYYMM)별 인보이스 일련번호 카운터.

    last_sequence는 반드시 DB 단일 upsert(INSERT ... ON CONFLICT DO UPDATE ... RETURNING)
    로만 증가시킨다. 애플리케이션에서 읽고-쓰기 하면 동시 청구 시 번호가 중복된다.
    """

    __tablename__ = "invoice_sequences"
    __table_args__ = (
        UniqueConstraint("organization_id", "year_month", name="uq_invoice_sequences_org_month"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    organization_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    year_month: Mapped[str] = mapped_column(String(6), nullable=False)  # YYYYMM
    last_sequence: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
