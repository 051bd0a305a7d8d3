from datetime import date

import pytest

from app.core.exceptions import BillingValidationError, ConfigurationError
from app.models.membership import BillingFrequency
from app.services.billing_dates import (
    add_months,
    calculate_next_billing_date,
    days_between,
    first_due_date,
    is_last_day_of_month,
    months_for_frequency,
    parse_billing_date,
    period_end_for,
    today_in_timezone,
    validate_period,
)


def test_month_end_clamps_without_anchor():
    feb = add_months(date(2025, 1, 31), 1)
    assert feb == date(2025, 2, 28)
    assert add_months(feb, 1) == date(2025, 3, 28)


def test_month_end_anchor_keeps_last_day():
    feb = add_months(date(2025, 1, 31), 1, month_end_anchor=True)
    assert feb == date(2025, 2, 28)
    assert add_months(feb, 1, month_end_anchor=True) == date(2025, 3, 31)


def test_anchor_ignored_mid_month():
    assert add_months(date(2025, 1, 15), 1, month_end_anchor=True) == date(2025, 2, 15)


def test_leap_year():
    assert add_months(date(2024, 1, 31), 1) == date(2024, 2, 29)
    assert add_months(date(2024, 2, 29), 12) == date(2025, 2, 28)


def test_negative_months():
    assert add_months(date(2025, 3, 15), -3) == date(2024, 12, 15)
    assert add_months(date(2025, 3, 31), -1) == date(2025, 2, 28)


def test_add_months_requires_date():
    with pytest.raises(BillingValidationError):
        add_months(None, 1)


@pytest.mark.parametrize(
    "frequency, expected",
    [
        (BillingFrequency.MONTHLY, date(2025, 2, 15)),
        (BillingFrequency.BIANNUAL, date(2025, 7, 15)),
        (BillingFrequency.ANNUAL, date(2026, 1, 15)),
    ],
)
def test_next_billing_date_by_frequency(frequency, expected):
    assert calculate_next_billing_date(date(2025, 1, 15), frequency) == expected


def test_months_for_frequency():
    assert months_for_frequency("monthly") == 1
    assert months_for_frequency(BillingFrequency.ANNUAL) == 12
    with pytest.raises(BillingValidationError):
        months_for_frequency("weekly")


def test_period_end_is_day_before_next_period():
    assert period_end_for(date(2025, 1, 1), 1) == date(2025, 1, 31)
    assert period_end_for(date(2025, 1, 15), 6) == date(2025, 7, 14)
    assert period_end_for(date(2025, 1, 1), 12) == date(2025, 12, 31)


def test_days_between():
    assert days_between(date(2025, 1, 1), date(2025, 1, 4)) == 3
    assert days_between(date(2025, 1, 4), date(2025, 1, 1)) == -3
    # DST 전환일도 하루는 하루
    assert days_between(date(2025, 3, 8), date(2025, 3, 10)) == 2


def test_is_last_day_of_month():
    assert is_last_day_of_month(date(2025, 2, 28))
    assert not is_last_day_of_month(date(2024, 2, 28))
    assert is_last_day_of_month(date(2025, 12, 31))


def test_today_in_unknown_timezone():
    with pytest.raises(ConfigurationError):
        today_in_timezone("Not/AZone")


def test_today_in_timezone_returns_date():
    assert isinstance(today_in_timezone("America/Los_Angeles"), date)


def test_parse_billing_date():
    assert parse_billing_date("2025-02-03") == date(2025, 2, 3)
    with pytest.raises(BillingValidationError):
        parse_billing_date("2025-2-3")
    with pytest.raises(BillingValidationError):
        parse_billing_date("2025-02-30")


def test_first_due_date():
    assert first_due_date(date(2025, 1, 10), 15) == date(2025, 1, 15)
    assert first_due_date(date(2025, 1, 20), 15) == date(2025, 2, 15)
    assert first_due_date(date(2025, 1, 15), 15) == date(2025, 1, 15)
    assert first_due_date(date(2025, 2, 1), 31) == date(2025, 2, 28)
    with pytest.raises(BillingValidationError):
        first_due_date(date(2025, 1, 1), 0)


def test_validate_period():
    assert validate_period("2025-01") == "202501"


@pytest.mark.parametrize(
    "period, message",
    [
        ("2025-13", "month must be between 01 and 12"),
        ("2025-00", "month must be between 01 and 12"),
        ("202501", "period must be in 'YYYY-MM' format"),
    ],
)
def test_validate_period_invalid(period, message):
    with pytest.raises(BillingValidationError) as exc:
        validate_period(period)
    assert str(exc.value) == message
