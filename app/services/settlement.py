"""
services/settlement.py

결제 정산(settlement) 처리.

회원권의 paid_months / next_payment_due / last_payment_date / eligible_date,
그리고 납부에 따른 상태 전이는 오직 이 파일에서만 변경한다.

처리 순서:
1. 결제 조회 (없으면 NotFound, 환불됨이면 Conflict, 이미 완료면 ALREADY_SETTLED)
2. 조건부 UPDATE로 결제를 completed로 선점 (status IN pending, failed)
   - 다른 워커가 먼저 선점했으면 ALREADY_SETTLED
3. 결제 선점을 먼저 commit
4. 회원권 반영 (개월 수 적립, 다음 납부일 이동, 상태 전이, 자격일)
   - 여기서 실패하면 rollback 후 PARTIAL 반환 (결제는 완료된 상태, 수동 정리 필요)

같은 결제를 두 번 정산해도 개월 수는 한 번만 적립된다.

"""

import logging
import uuid
from dataclasses import dataclass
from datetime import date, datetime, timezone
from enum import Enum
from zoneinfo import ZoneInfo

from app.core.exceptions import ConflictError, NotFoundError
from app.models.membership import EnrollmentFeeStatus, MembershipStatus
from app.models.payment import PaymentMethod, PaymentStatus, PaymentType
from app.services.billing_config import BillingConfig
from app.services.billing_dates import add_months, today_in_timezone
from app.services.membership_status import status_after_payment
from app.services.store import BillingStore

logger = logging.getLogger(__name__)


class SettlementOutcome(str, Enum):
    SETTLED = "settled"
    ALREADY_SETTLED = "already_settled"
    PARTIAL = "partial"


@dataclass(frozen=True)
class SettlementResult:
    success: bool
    outcome: SettlementOutcome
    new_paid_months: int | None = None
    new_status: MembershipStatus | None = None
    became_eligible: bool = False
    next_payment_due: date | None = None
    membership_updated: bool = False
    error: str | None = None


def _already_settled(payment_id) -> SettlementResult:
    logger.info("payment already settled payment=%s", payment_id)
    return SettlementResult(success=True, outcome=SettlementOutcome.ALREADY_SETTLED)


def _paid_on(paid_at: datetime, tz_name: str) -> date:
    if paid_at.tzinfo is None:
        paid_at = paid_at.replace(tzinfo=timezone.utc)
    return paid_at.astimezone(ZoneInfo(tz_name)).date()


def plan_membership_update(membership, payment, *, config: BillingConfig, today: date, paid_on: date) -> dict:
    """정산 결과로 회원권에 반영할 값 계산 (DB 접근 없음)."""
    months = payment.months_credited or 0
    old_paid = membership.paid_months or 0
    new_paid = old_paid + months

    values = {
        "paid_months": new_paid,
        "last_payment_date": paid_on,
    }

    fee_status = membership.enrollment_fee_status
    if payment.type == PaymentType.ENROLLMENT_FEE:
        fee_status = EnrollmentFeeStatus.PAID
        values["enrollment_fee_status"] = fee_status

    if months > 0:
        start = membership.next_payment_due or today
        values["next_payment_due"] = add_months(start, months, month_end_anchor=membership.bill_on_month_end)

    new_status = status_after_payment(
        membership.status,
        paid_months=new_paid,
        eligibility_months=config.eligibility_months,
        agreement_signed=membership.agreement_signed_at is not None,
        enrollment_fee_status=fee_status,
    )
    values["status"] = new_status

    if membership.status != new_status:
        if membership.join_date is None and new_status in (MembershipStatus.WAITING_PERIOD, MembershipStatus.CURRENT):
            values["join_date"] = today

    if (
        new_status != MembershipStatus.CANCELLED
        and new_paid >= config.eligibility_months
        and membership.eligible_date is None
    ):
        values["eligible_date"] = today

    return values


def settle_payment(
    store: BillingStore,
    payment_id: uuid.UUID,
    method: PaymentMethod,
    *,
    config: BillingConfig,
    paid_at: datetime | None = None,
    notes: str | None = None,
    recorded_by: str | None = None,
    processor_payment_id: str | None = None,
    today: date | None = None,
) -> SettlementResult:
    payment = store.get_payment(payment_id)
    if payment is None:
        raise NotFoundError(f"payment not found: {payment_id}")

    if payment.status == PaymentStatus.COMPLETED:
        return _already_settled(payment_id)
    if payment.status == PaymentStatus.REFUNDED:
        raise ConflictError("cannot settle a refunded payment")

    membership_id = payment.membership_id
    if store.get_membership(membership_id) is None:
        raise NotFoundError(f"membership not found for payment: {payment_id}")

    org = store.get_organization(payment.organization_id)
    if org is None:
        raise NotFoundError(f"organization not found: {payment.organization_id}")
    today = today or today_in_timezone(org.timezone)
    if paid_at is None:
        paid_at = datetime.now(timezone.utc)
        paid_on = today
    else:
        paid_on = _paid_on(paid_at, org.timezone)

    claimed = store.claim_payment(
        payment_id,
        method=PaymentMethod(method),
        paid_at=paid_at,
        notes=notes,
        recorded_by=recorded_by,
        processor_payment_id=processor_payment_id,
    )
    if not claimed:
        return _already_settled(payment_id)
    store.commit()

    logger.info(
        "payment settled payment=%s method=%s amount=%s months=%s",
        payment_id,
        PaymentMethod(method).value,
        payment.amount_cents,
        payment.months_credited,
    )

    try:
        payment = store.get_payment(payment_id)
        membership = store.get_membership(membership_id)
        old_status = membership.status
        values = plan_membership_update(membership, payment, config=config, today=today, paid_on=paid_on)
        store.update_membership(membership_id, values)
        store.commit()
    except Exception as e:
        store.rollback()
        logger.error("membership update failed after settlement payment=%s membership=%s: %s", payment_id, membership_id, e)
        return SettlementResult(
            success=True,
            outcome=SettlementOutcome.PARTIAL,
            membership_updated=False,
            error=f"payment settled but membership update failed: {e}",
        )

    new_status = values["status"]
    became_eligible = "eligible_date" in values
    if new_status != old_status:
        logger.info("membership status %s -> %s membership=%s", old_status.value, new_status.value, membership_id)
    if became_eligible:
        logger.info("membership became eligible membership=%s paid_months=%s", membership_id, values["paid_months"])

    return SettlementResult(
        success=True,
        outcome=SettlementOutcome.SETTLED,
        new_paid_months=values["paid_months"],
        new_status=new_status,
        became_eligible=became_eligible,
        next_payment_due=values.get("next_payment_due", membership.next_payment_due),
        membership_updated=True,
    )
