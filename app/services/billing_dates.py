"""
services/billing_dates.py

청구 기념일(anniversary) 날짜 계산 모음.

- 다음 청구일: 청구 주기(1/6/12개월)만큼 이동, 일(day)은 유지하되
  대상 월의 길이에 맞춰 자른다 (1/31 -> 2/28 -> 3/28)
- month_end_anchor=True(회원권의 bill_on_month_end)이고 현재 날짜가 말일이면
  대상 월의 말일로 이동한다 (1/31 -> 2/28 -> 3/31)
- 날짜 차이 계산은 정오(12:00) 기준으로 한다

모든 날짜는 기관 timezone 기준의 달력 날짜(date)이다.

"""

import calendar
import re
from datetime import date, datetime, time, timedelta
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from app.core.exceptions import BillingValidationError, ConfigurationError
from app.models.membership import BillingFrequency


_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

_FREQUENCY_MONTHS = {
    BillingFrequency.MONTHLY: 1,
    BillingFrequency.BIANNUAL: 6,
    BillingFrequency.ANNUAL: 12,
}


def months_for_frequency(frequency: BillingFrequency) -> int:
    try:
        return _FREQUENCY_MONTHS[BillingFrequency(frequency)]
    except ValueError:
        raise BillingValidationError(f"unknown billing frequency: {frequency}")


def is_last_day_of_month(d: date) -> bool:
    return d.day == calendar.monthrange(d.year, d.month)[1]


def add_months(current: date, months: int, *, month_end_anchor: bool = False) -> date:
    if not isinstance(current, date):
        raise BillingValidationError("date is required")

    total = current.month - 1 + months
    year = current.year + total // 12
    month = total % 12 + 1
    last_day = calendar.monthrange(year, month)[1]

    if month_end_anchor and is_last_day_of_month(current):
        day = last_day
    else:
        day = min(current.day, last_day)
    return date(year, month, day)


def calculate_next_billing_date(
    current: date,
    frequency: BillingFrequency,
    *,
    month_end_anchor: bool = False,
) -> date:
    return add_months(current, months_for_frequency(frequency), month_end_anchor=month_end_anchor)


def period_end_for(period_start: date, months: int) -> date:
    # 다음 기간 시작 전날
    return add_months(period_start, months) - timedelta(days=1)


def days_between(start: date, end: date) -> int:
    from_dt = datetime.combine(start, time(12, 0))
    to_dt = datetime.combine(end, time(12, 0))
    return (to_dt - from_dt).days


def today_in_timezone(tz_name: str) -> date:
    try:
        tz = ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        raise ConfigurationError(f"unknown timezone: {tz_name}")
    return datetime.now(tz).date()


def parse_billing_date(value: str) -> date:
    """'YYYY-MM-DD' 형식만 허용."""
    if not isinstance(value, str) or not _DATE_RE.match(value):
        raise BillingValidationError("date must be in 'YYYY-MM-DD' format")
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise BillingValidationError(f"invalid calendar date: {value}")


def first_due_date(join_date: date, anniversary_day: int) -> date:
    """가입일 이후(당일 포함) 첫 청구 기념일."""
    if not 1 <= anniversary_day <= 31:
        raise BillingValidationError("billing anniversary day must be between 1 and 31")

    last_day = calendar.monthrange(join_date.year, join_date.month)[1]
    candidate = date(join_date.year, join_date.month, min(anniversary_day, last_day))
    if candidate >= join_date:
        return candidate

    nxt = add_months(date(join_date.year, join_date.month, 1), 1)
    last_day = calendar.monthrange(nxt.year, nxt.month)[1]
    return date(nxt.year, nxt.month, min(anniversary_day, last_day))


_PERIOD_RE = re.compile(r"^\d{4}-\d{2}$")


"""
리포트 period 형식 검증

- 'YYYY-MM' 형식만 허용
- 월(month)은 01 ~ 12 범위만 허용
- 인보이스 번호에 쓰는 'YYYYMM'을 반환

"""

def validate_period(period: str) -> str:
    if not _PERIOD_RE.match(period):
        raise BillingValidationError("period must be in 'YYYY-MM' format")

    month = int(period.split("-")[1])
    if month < 1 or month > 12:
        raise BillingValidationError("month must be between 01 and 12")
    return period.replace("-", "")
