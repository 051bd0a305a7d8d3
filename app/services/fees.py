"""
services/fees.py

청구 금액/수수료 계산 로직.

이 파일은 하나의 청구(dues 등)에 대해
결제대행사 수수료, 플랫폼 수수료, 실제 청구 금액, 기관 순수익을 계산한다.
DB/HTTP를 전혀 모르는 순수 함수만 둔다.

계산 규칙:
- 결제대행사 수수료 = round_half_up(금액 x percent) + fixed_cents
- 수수료 비전가(pass_fees_to_member=False)
    charge = base, net = base - 결제대행사 수수료 - 플랫폼 수수료
- 수수료 전가(pass_fees_to_member=True, gross-up)
    charge - fee(charge) - platform == base 를 만족하는 가장 작은 cents 금액
- base가 0이면 모든 값 0 (gross-up 하지 않음)

금액은 모두 cents 단위 정수, 반올림은 ROUND_HALF_UP.

관련 파일:
- app.core.deps          : Settings 값으로 ProcessorFeeSchedule 생성
- app.services.billing_run : 청구 생성 시 호출
- app.routers.billing    : 수수료 미리보기 API

"""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from app.core.exceptions import BillingValidationError, ConfigurationError
from app.models.membership import BillingFrequency


def round_half_up(value: Decimal) -> int:
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def dollars_to_cents(amount) -> int:
    """달러(major unit) 금액을 cents 정수로 변환. 음수/숫자 아님은 검증 오류."""
    if isinstance(amount, bool):
        raise BillingValidationError("amount must be a number")
    try:
        value = Decimal(str(amount))
    except (InvalidOperation, ValueError):
        raise BillingValidationError("amount must be a number")
    if not value.is_finite():
        raise BillingValidationError("amount must be a number")
    if value < 0:
        raise BillingValidationError("amount must not be negative")
    return round_half_up(value * 100)


@dataclass(frozen=True)
class ProcessorFeeSchedule:
    percent: Decimal
    fixed_cents: int

    def __post_init__(self):
        if not (Decimal("0") <= Decimal(self.percent) < Decimal("1")):
            raise ConfigurationError("processor fee percent must be in [0, 1)")
        if self.fixed_cents < 0:
            raise ConfigurationError("processor fixed fee must not be negative")

    def fee_for(self, amount_cents: int) -> int:
        return round_half_up(Decimal(amount_cents) * Decimal(self.percent)) + self.fixed_cents


# 2.9% + 30 cents
STANDARD_PROCESSOR_FEES = ProcessorFeeSchedule(percent=Decimal("0.029"), fixed_cents=30)


@dataclass(frozen=True)
class FeeBreakdown:
    base_amount_cents: int
    processor_fee_cents: int
    platform_fee_cents: int
    total_fees_cents: int
    charge_amount_cents: int
    net_amount_cents: int


def _zero_breakdown() -> FeeBreakdown:
    return FeeBreakdown(0, 0, 0, 0, 0, 0)


def manual_breakdown(amount_cents: int) -> FeeBreakdown:
    """현금/수표 등 결제대행사를 거치지 않는 결제: 수수료 0."""
    _validate_base(amount_cents)
    return FeeBreakdown(
        base_amount_cents=amount_cents,
        processor_fee_cents=0,
        platform_fee_cents=0,
        total_fees_cents=0,
        charge_amount_cents=amount_cents,
        net_amount_cents=amount_cents,
    )


def _validate_base(base_amount_cents) -> None:
    if isinstance(base_amount_cents, bool) or not isinstance(base_amount_cents, int):
        raise BillingValidationError("base amount must be an integer number of cents")
    if base_amount_cents < 0:
        raise BillingValidationError("base amount must not be negative")


def _gross_up(base: int, platform: int, schedule: ProcessorFeeSchedule) -> int:
    def net(charge: int) -> int:
        return charge - schedule.fee_for(charge) - platform

    seed = (Decimal(base + platform + schedule.fixed_cents)) / (Decimal("1") - Decimal(schedule.percent))
    charge = round_half_up(seed)

    # net은 1 cent 단위로 0 또는 1씩 증가하므로 최소 금액에서 net == base
    while net(charge) < base:
        charge += 1
    while net(charge - 1) >= base:
        charge -= 1
    return charge


def calculate_fees(
    base_amount_cents: int,
    platform_fee_dollars=0,
    pass_fees_to_member: bool = False,
    *,
    schedule: ProcessorFeeSchedule = STANDARD_PROCESSOR_FEES,
) -> FeeBreakdown:
    _validate_base(base_amount_cents)
    platform_fee_cents = dollars_to_cents(platform_fee_dollars)

    if base_amount_cents == 0:
        return _zero_breakdown()

    if pass_fees_to_member:
        charge = _gross_up(base_amount_cents, platform_fee_cents, schedule)
    else:
        charge = base_amount_cents

    processor_fee = schedule.fee_for(charge)
    return FeeBreakdown(
        base_amount_cents=base_amount_cents,
        processor_fee_cents=processor_fee,
        platform_fee_cents=platform_fee_cents,
        total_fees_cents=processor_fee + platform_fee_cents,
        charge_amount_cents=charge,
        net_amount_cents=charge - processor_fee - platform_fee_cents,
    )


def platform_fee_for(platform_fees: dict | None, frequency: BillingFrequency) -> Decimal:
    """기관의 주기별 플랫폼 수수료(달러) 조회."""
    if not isinstance(platform_fees, dict):
        raise ConfigurationError("organization platform fee schedule is missing")

    key = BillingFrequency(frequency).value
    if key not in platform_fees:
        raise ConfigurationError(f"platform fee for '{key}' is not configured")

    raw = platform_fees[key]
    if isinstance(raw, bool):
        raise ConfigurationError(f"platform fee for '{key}' is not a number")
    try:
        value = Decimal(str(raw))
    except (InvalidOperation, ValueError):
        raise ConfigurationError(f"platform fee for '{key}' is not a number")
    if not value.is_finite() or value < 0:
        raise ConfigurationError(f"platform fee for '{key}' must be a non-negative number")
    return value
