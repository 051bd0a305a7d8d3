"""
services/invoice.py

인보이스 번호 / 청구 기간 메타데이터 생성.

인보이스 번호 형식: INV-{기관코드}-{YYYYMM}-{NNNN}
- 기관코드: 기관 이름 앞의 "Organization", "Islamic Center", "Islamic Centre", "IC"를
  제거한 뒤 첫 두 단어의 첫 글자 (한 단어면 앞 두 글자)
- NNNN: 기관 + 연월별 일련번호, DB 단일 upsert로 증가 (store.reserve_invoice_sequence)

일련번호 예약이 실패하면 DependencyError(재시도 가능)를 발생시키고
임의의 번호(타임스탬프 등)를 만들어 내지 않는다.

기간 라벨:
- monthly  : "January 2025"
- biannual : "Jan 2025 - Jul 2025" (끝 월 = 시작 + 6개월)
- annual   : "2025-2026"

"""

import calendar
import logging
import re
from dataclasses import dataclass
from datetime import date

from app.core.exceptions import BillingError, BillingValidationError, DependencyError, NotFoundError
from app.models.membership import BillingFrequency
from app.services.billing_dates import add_months, months_for_frequency, period_end_for, today_in_timezone
from app.services.store import BillingStore

logger = logging.getLogger(__name__)

_ORG_PREFIX_RE = re.compile(r"^(Organization|Islamic Center|IC|Islamic Centre)\s+", re.IGNORECASE)
_WORD_SPLIT_RE = re.compile(r"[\s-]+")

# 1/6/12개월 ad-hoc 결제는 주기 라벨을 그대로 쓴다
_FREQUENCY_BY_MONTHS = {
    1: BillingFrequency.MONTHLY,
    6: BillingFrequency.BIANNUAL,
    12: BillingFrequency.ANNUAL,
}


@dataclass(frozen=True)
class InvoiceMetadata:
    invoice_number: str
    due_date: date
    period_start: date
    period_end: date
    period_label: str
    months_credited: int


def extract_org_code(name: str) -> str:
    cleaned = _ORG_PREFIX_RE.sub("", name.strip()).strip()
    words = [w for w in _WORD_SPLIT_RE.split(cleaned) if w]

    if len(words) >= 2:
        return (words[0][0] + words[1][0]).upper()
    return cleaned[:2].upper()


def _short_label(d: date) -> str:
    return f"{calendar.month_abbr[d.month]} {d.year}"


def format_period_label(start: date, frequency: BillingFrequency) -> str:
    frequency = BillingFrequency(frequency)

    if frequency == BillingFrequency.ANNUAL:
        return f"{start.year}-{start.year + 1}"
    if frequency == BillingFrequency.BIANNUAL:
        end = add_months(start, 6)
        return f"{_short_label(start)} - {_short_label(end)}"
    return f"{calendar.month_name[start.month]} {start.year}"


def format_ad_hoc_label(start: date, months: int) -> str:
    if months in _FREQUENCY_BY_MONTHS:
        return format_period_label(start, _FREQUENCY_BY_MONTHS[months])

    end = period_end_for(start, months)
    if (start.year, start.month) == (end.year, end.month):
        return _short_label(start)
    return f"{_short_label(start)} - {_short_label(end)}"


def _resolve_billing_date(org, billing_date: date | None, timezone: str | None) -> date:
    if billing_date is not None:
        return billing_date
    return today_in_timezone(timezone or org.timezone)


def _get_organization(store: BillingStore, organization_id):
    org = store.get_organization(organization_id)
    if org is None:
        raise NotFoundError(f"organization not found: {organization_id}")
    return org


def _reserve_number(store: BillingStore, org, billing_date: date) -> str:
    year_month = f"{billing_date.year:04d}{billing_date.month:02d}"

    try:
        sequence = store.reserve_invoice_sequence(org.id, year_month)
    except BillingError:
        raise
    except Exception as e:
        logger.error("invoice sequence reservation failed org=%s year_month=%s: %s", org.id, year_month, e)
        raise DependencyError(f"failed to reserve invoice number: {type(e).__name__}") from e

    if isinstance(sequence, bool) or not isinstance(sequence, int) or sequence < 1:
        raise DependencyError(f"failed to reserve invoice number: invalid sequence {sequence!r}")

    return f"INV-{extract_org_code(org.name)}-{year_month}-{sequence:04d}"


def generate_invoice_number(store: BillingStore, organization_id, billing_date: date | None = None) -> str:
    org = _get_organization(store, organization_id)
    billing_date = _resolve_billing_date(org, billing_date, None)
    return _reserve_number(store, org, billing_date)


def generate_invoice_metadata(
    store: BillingStore,
    organization_id,
    billing_date: date | None,
    frequency: BillingFrequency,
    timezone: str | None = None,
) -> InvoiceMetadata:
    months = months_for_frequency(frequency)
    org = _get_organization(store, organization_id)
    start = _resolve_billing_date(org, billing_date, timezone)

    invoice_number = _reserve_number(store, org, start)
    return InvoiceMetadata(
        invoice_number=invoice_number,
        due_date=start,
        period_start=start,
        period_end=period_end_for(start, months),
        period_label=format_period_label(start, frequency),
        months_credited=months,
    )


def generate_ad_hoc_invoice_metadata(
    store: BillingStore,
    organization_id,
    billing_date: date | None,
    months_credited: int,
    timezone: str | None = None,
) -> InvoiceMetadata:
    """임의 개월 수(밀린 회비 등) 결제용 메타데이터."""
    if isinstance(months_credited, bool) or not isinstance(months_credited, int) or months_credited < 1:
        raise BillingValidationError("months credited must be a positive integer")

    org = _get_organization(store, organization_id)
    start = _resolve_billing_date(org, billing_date, timezone)

    invoice_number = _reserve_number(store, org, start)
    return InvoiceMetadata(
        invoice_number=invoice_number,
        due_date=start,
        period_start=start,
        period_end=period_end_for(start, months_credited),
        period_label=format_ad_hoc_label(start, months_credited),
        months_credited=months_credited,
    )
