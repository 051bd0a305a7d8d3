import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base
from app.models.membership import BillingFrequency


class Plan(Base):
    """기관별 요금제. 금액은 모두 cents 단위 정수.

    회원권에서 참조된 이후에는 가격을 바꾸지 않고 is_active 토글만 허용한다.
    """

    __tablename__ = "plans"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    organization_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True
    )

    name: Mapped[str] = mapped_column(String(100), nullable=False)

    monthly_price_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    biannual_price_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    annual_price_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    enrollment_fee_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False
    )

    def price_for(self, frequency: BillingFrequency) -> int:
        prices = {
            BillingFrequency.MONTHLY: self.monthly_price_cents,
            BillingFrequency.BIANNUAL: self.biannual_price_cents,
            BillingFrequency.ANNUAL: self.annual_price_cents,
        }
        return prices[BillingFrequency(frequency)]
