"""
services/billing_config.py

기관별 청구 설정(BillingConfig) 로더.

Organization.billing_config(JSON)에 저장된 값을 기본값 위에 덮어써서
불변(frozen) BillingConfig를 만든다.
청구 코어 함수는 전역 설정을 읽지 않고 이 값을 인자로 받는다.

기본값:
- eligibility_months     : 60  (혜택 자격까지 필요한 납부 개월 수)
- lapse_days             : 7   (납부일 경과 후 lapsed 권고까지 일수)
- cancel_months          : 24  (lapsed 상태에서 cancelled 권고까지 개월 수)
- reminder_schedule      : (3, 7, 14) (납부일 이후 리마인더 발송 일수)
- max_reminders          : 3
- send_invoice_reminders : True
- auto_lapse             : False (True면 청구 배치가 권고를 바로 적용)

"""

import logging
from dataclasses import asdict, dataclass, fields, replace

from app.core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BillingConfig:
    eligibility_months: int = 60
    lapse_days: int = 7
    cancel_months: int = 24
    reminder_schedule: tuple[int, ...] = (3, 7, 14)
    max_reminders: int = 3
    send_invoice_reminders: bool = True
    auto_lapse: bool = False

    def to_dict(self) -> dict:
        data = asdict(self)
        data["reminder_schedule"] = list(self.reminder_schedule)
        return data


DEFAULT_BILLING_CONFIG = BillingConfig()

_INT_FIELDS = ("eligibility_months", "lapse_days", "cancel_months", "max_reminders")
_BOOL_FIELDS = ("send_invoice_reminders", "auto_lapse")


def _positive_int(key: str, value) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ConfigurationError(f"billing_config.{key} must be a positive integer")
    return value


def _schedule(value) -> tuple[int, ...]:
    if not isinstance(value, (list, tuple)) or not value:
        raise ConfigurationError("billing_config.reminder_schedule must be a non-empty list of days")
    days = tuple(_positive_int("reminder_schedule", v) for v in value)
    if list(days) != sorted(days):
        raise ConfigurationError("billing_config.reminder_schedule must be in ascending order")
    return days


def parse_billing_config(raw: dict | None) -> BillingConfig:
    if raw is None:
        return DEFAULT_BILLING_CONFIG
    if not isinstance(raw, dict):
        raise ConfigurationError("billing_config must be an object")

    known = {f.name for f in fields(BillingConfig)}
    overrides = {}
    for key, value in raw.items():
        if key not in known:
            logger.warning("ignoring unknown billing_config key: %s", key)
            continue
        if key in _INT_FIELDS:
            overrides[key] = _positive_int(key, value)
        elif key in _BOOL_FIELDS:
            if not isinstance(value, bool):
                raise ConfigurationError(f"billing_config.{key} must be a boolean")
            overrides[key] = value
        else:
            overrides[key] = _schedule(value)

    return replace(DEFAULT_BILLING_CONFIG, **overrides)


def load_billing_config(org) -> BillingConfig:
    return parse_billing_config(org.billing_config)
