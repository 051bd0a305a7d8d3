"""
services/organizations.py

기관 수수료 설정 변경 로직.

- pass_fees_to_member 토글
- 주기별 플랫폼 수수료(platform_fees) 부분 변경: 주지 않은 주기는 기존 값 유지
- 변경 후 스케줄은 세 주기 모두 음수가 아닌 숫자여야 저장

"""

import logging
from decimal import Decimal

from app.core.exceptions import BillingValidationError, ConfigurationError
from app.models.membership import BillingFrequency
from app.models.organization import Organization, default_platform_fees
from app.services.fees import platform_fee_for
from app.services.store import BillingStore

logger = logging.getLogger(__name__)


def fee_settings_snapshot(org: Organization) -> dict:
    return {
        "pass_fees_to_member": org.pass_fees_to_member,
        "platform_fees": dict(org.platform_fees or {}),
    }


def _merged_schedule(current: dict | None, changes: dict) -> dict:
    known = {f.value for f in BillingFrequency}
    unknown = sorted(set(changes) - known)
    if unknown:
        raise BillingValidationError(f"unknown billing frequency: {', '.join(unknown)}")

    schedule = default_platform_fees()
    if isinstance(current, dict):
        schedule.update({k: v for k, v in current.items() if k in known})
    schedule.update(changes)

    # JSON 컬럼에 그대로 저장할 수 있도록 숫자로 정규화
    merged = {}
    for frequency in BillingFrequency:
        try:
            value = platform_fee_for(schedule, frequency)
        except ConfigurationError as e:
            raise BillingValidationError(str(e))
        merged[frequency.value] = int(value) if value == value.to_integral_value() else float(value)
    return merged


def update_fee_settings(
    store: BillingStore,
    org: Organization,
    *,
    pass_fees_to_member: bool | None = None,
    platform_fees: dict[str, Decimal] | None = None,
) -> dict:
    """수수료 설정 변경. 변경 전 설정을 반환."""
    if pass_fees_to_member is None and platform_fees is None:
        raise BillingValidationError("no fee settings to update")
    if pass_fees_to_member is not None and not isinstance(pass_fees_to_member, bool):
        raise BillingValidationError("pass_fees_to_member must be a boolean")

    before = fee_settings_snapshot(org)

    values = {}
    if pass_fees_to_member is not None:
        values["pass_fees_to_member"] = pass_fees_to_member
    if platform_fees is not None:
        values["platform_fees"] = _merged_schedule(org.platform_fees, platform_fees)
    store.update_organization(org.id, values)

    logger.info("fee settings updated organization=%s fields=%s", org.id, sorted(values))
    return before
