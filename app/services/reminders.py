"""
services/reminders.py

미납 결제 리마인더 스케줄러.

리마인더 발송 조건 (is_reminder_due):
- 보낸 횟수 < 최대 횟수(기본 3)
- 납부일로부터 경과 일수 >= schedule[보낸 횟수]  (기본 3, 7, 14일)
- 이미 보낸 적이 있으면 마지막 발송 후 최소 1일 경과

발송하면 reminder_count + 1, reminder_sent_at 기록,
최대 횟수에 도달하면 requires_review = True (관리자 확인 필요).

배치(process_organization_reminders)는 결제 건마다 독립적으로 처리하고
실패한 건은 errors에 모아서 반환한다.

"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone
from typing import Sequence
from zoneinfo import ZoneInfo

from app.core.exceptions import ConflictError, NotFoundError
from app.models.payment import OPEN_PAYMENT_STATUSES, Payment
from app.services.billing_config import BillingConfig
from app.services.billing_dates import days_between, today_in_timezone
from app.services.notifications import LoggingNotifier, Notifier
from app.services.store import BillingStore

logger = logging.getLogger(__name__)

MAX_REMINDERS = 3
DEFAULT_REMINDER_SCHEDULE = (3, 7, 14)


@dataclass(frozen=True)
class ReminderState:
    due_date: date
    reminder_count: int = 0
    last_reminder_on: date | None = None


@dataclass(frozen=True)
class ReminderUpdate:
    reminder_count: int
    requires_review: bool


@dataclass
class ReminderRunResult:
    success: bool = True
    reminders_queued: int = 0
    payments_marked_for_review: int = 0
    errors: list[dict] = field(default_factory=list)


def is_reminder_due(
    state: ReminderState,
    schedule: Sequence[int],
    today: date,
    *,
    max_reminders: int = MAX_REMINDERS,
) -> bool:
    count = state.reminder_count or 0
    if count >= max_reminders or count >= len(schedule):
        return False

    if days_between(state.due_date, today) < schedule[count]:
        return False

    if count > 0 and state.last_reminder_on is not None:
        if days_between(state.last_reminder_on, today) < 1:
            return False

    return True


def apply_reminder(state: ReminderState, max_reminders: int = MAX_REMINDERS) -> ReminderUpdate:
    count = (state.reminder_count or 0) + 1
    return ReminderUpdate(reminder_count=count, requires_review=count >= max_reminders)


def _local_date(value: datetime | None, tz_name: str) -> date | None:
    if value is None:
        return None
    # SQLite는 tzinfo 없이 돌려준다 (저장값은 UTC)
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(ZoneInfo(tz_name)).date()


def _sent_at(today: date | None, tz_name: str) -> datetime:
    if today is None:
        return datetime.now(timezone.utc)
    # 지정한 청구일 기준으로 재실행할 때는 그 날짜 정오로 기록
    return datetime.combine(today, time(12, 0), tzinfo=ZoneInfo(tz_name)).astimezone(timezone.utc)


def reminder_state_for(payment: Payment, tz_name: str) -> ReminderState:
    return ReminderState(
        due_date=payment.due_date,
        reminder_count=payment.reminder_count or 0,
        last_reminder_on=_local_date(payment.reminder_sent_at, tz_name),
    )


def process_organization_reminders(
    store: BillingStore,
    organization_id: uuid.UUID,
    config: BillingConfig,
    *,
    today: date | None = None,
    notifier: Notifier | None = None,
) -> ReminderRunResult:
    result = ReminderRunResult()
    notifier = notifier or LoggingNotifier()

    org = store.get_organization(organization_id)
    if org is None:
        raise NotFoundError(f"organization not found: {organization_id}")

    if not config.send_invoice_reminders:
        logger.info("reminders disabled for organization %s", organization_id)
        return result

    sent_at = _sent_at(today, org.timezone)
    today = today or today_in_timezone(org.timezone)
    threshold = today - timedelta(days=config.reminder_schedule[0])

    candidates = store.list_reminder_candidates(organization_id, threshold, config.max_reminders)
    logger.info("reminder candidates org=%s count=%s", organization_id, len(candidates))

    for payment in candidates:
        payment_id = payment.id
        try:
            state = reminder_state_for(payment, org.timezone)
            if not is_reminder_due(state, config.reminder_schedule, today, max_reminders=config.max_reminders):
                continue

            update = apply_reminder(state, config.max_reminders)
            notifier.payment_reminder(
                payment,
                days_overdue=days_between(state.due_date, today),
                reminder_number=update.reminder_count,
            )
            store.record_reminder(
                payment_id,
                reminder_count=update.reminder_count,
                reminder_sent_at=sent_at,
                requires_review=update.requires_review,
            )
            store.commit()
        except Exception as e:
            store.rollback()
            logger.error("reminder failed payment=%s: %s", payment_id, e)
            result.errors.append({"payment_id": str(payment_id), "error": str(e) or type(e).__name__})
            continue

        result.reminders_queued += 1
        if update.requires_review:
            result.payments_marked_for_review += 1
        logger.info("reminder sent payment=%s count=%s review=%s", payment_id, update.reminder_count, update.requires_review)

    result.success = not result.errors
    return result


def send_payment_reminder(
    store: BillingStore,
    payment_id: uuid.UUID,
    *,
    today: date | None = None,
    notifier: Notifier | None = None,
    max_reminders: int = MAX_REMINDERS,
) -> ReminderUpdate:
    """관리자가 직접 보내는 리마인더. 스케줄과 무관하게 1회 발송."""
    notifier = notifier or LoggingNotifier()

    payment = store.get_payment(payment_id)
    if payment is None:
        raise NotFoundError(f"payment not found: {payment_id}")
    if payment.status not in OPEN_PAYMENT_STATUSES:
        raise ConflictError("can only send reminders for pending or failed payments")

    org = store.get_organization(payment.organization_id)
    if org is None:
        raise NotFoundError(f"organization not found: {payment.organization_id}")
    sent_at = _sent_at(today, org.timezone)
    today = today or today_in_timezone(org.timezone)

    state = reminder_state_for(payment, org.timezone)
    update = apply_reminder(state, max_reminders)
    days_overdue = days_between(state.due_date, today) if state.due_date else 0

    notifier.payment_reminder(payment, days_overdue=days_overdue, reminder_number=update.reminder_count)
    store.record_reminder(
        payment_id,
        reminder_count=update.reminder_count,
        reminder_sent_at=sent_at,
        requires_review=update.requires_review or payment.requires_review,
    )
    logger.info("manual reminder sent payment=%s count=%s", payment_id, update.reminder_count)
    return update
