"""
services/payments.py

관리자 수동 결제 기록 / 실패 처리.

현금, 수표, Zelle 등 결제대행사를 거치지 않은 결제를 관리자가 기록하면
인보이스 메타데이터를 붙여 PENDING 결제를 만든 뒤 즉시 정산한다.

결제 종류별 규칙:
- enrollment_fee : 개월 수 적립 없음, 인보이스 번호만 부여 (기간 정보 없음)
                   가입비가 이미 paid / waived면 Conflict
- dues           : 회원권 청구 주기만큼 (months를 주면 그 개월 수만큼)
- back_dues      : 밀린 회비, months 필수

금액을 주지 않으면 플랜 가격으로 계산한다.
수동 결제는 수수료가 없으므로 charge == net == amount.

"""

import logging
import uuid
from datetime import date, datetime, timezone

from app.core.exceptions import BillingValidationError, ConflictError, NotFoundError
from app.models.membership import EnrollmentFeeStatus
from app.models.payment import Payment, PaymentMethod, PaymentStatus, PaymentType
from app.services.billing_config import BillingConfig
from app.services.billing_dates import months_for_frequency, today_in_timezone
from app.services.fees import manual_breakdown
from app.services.invoice import (
    generate_ad_hoc_invoice_metadata,
    generate_invoice_metadata,
    generate_invoice_number,
)
from app.services.settlement import SettlementResult, settle_payment
from app.services.store import BillingStore

logger = logging.getLogger(__name__)


def get_payment_for_org(store: BillingStore, organization_id: uuid.UUID, payment_id: uuid.UUID) -> Payment:
    payment = store.get_payment(payment_id)
    # 다른 기관의 결제는 존재하지 않는 것으로 취급
    if payment is None or payment.organization_id != organization_id:
        raise NotFoundError("Payment not found")
    return payment


def _default_amount(plan, payment_type: PaymentType, frequency, months: int) -> int:
    if payment_type == PaymentType.ENROLLMENT_FEE:
        return plan.enrollment_fee_cents
    if payment_type == PaymentType.DUES and months == months_for_frequency(frequency):
        return plan.price_for(frequency)
    return plan.monthly_price_cents * months


def record_manual_payment(
    store: BillingStore,
    organization_id: uuid.UUID,
    *,
    membership_id: uuid.UUID,
    payment_type: PaymentType,
    method: PaymentMethod,
    config: BillingConfig,
    amount_cents: int | None = None,
    months: int | None = None,
    billing_date: date | None = None,
    paid_at: datetime | None = None,
    notes: str | None = None,
    recorded_by: str | None = None,
) -> tuple[Payment, SettlementResult]:
    payment_type = PaymentType(payment_type)
    method = PaymentMethod(method)
    if method == PaymentMethod.PROCESSOR:
        raise BillingValidationError("processor payments are recorded by the processor integration")

    membership = store.get_membership(membership_id)
    if membership is None or membership.organization_id != organization_id:
        raise NotFoundError("Membership not found")
    plan = store.get_plan(membership.plan_id)
    if plan is None:
        raise NotFoundError("Plan not found")
    org = store.get_organization(organization_id)
    if org is None:
        raise NotFoundError("Organization not found")

    today = today_in_timezone(org.timezone)
    frequency = membership.billing_frequency

    if payment_type == PaymentType.ENROLLMENT_FEE:
        if membership.enrollment_fee_status != EnrollmentFeeStatus.UNPAID:
            raise ConflictError(f"enrollment fee already {membership.enrollment_fee_status.value}")
        months = 0
    elif payment_type == PaymentType.BACK_DUES and months is None:
        raise BillingValidationError("months is required for back dues")
    elif months is None:
        months = months_for_frequency(frequency)

    if payment_type != PaymentType.ENROLLMENT_FEE and months < 1:
        raise BillingValidationError("months must be at least 1")

    if amount_cents is None:
        amount_cents = _default_amount(plan, payment_type, frequency, months)
    breakdown = manual_breakdown(amount_cents)

    payment = Payment(
        organization_id=organization_id,
        membership_id=membership.id,
        member_id=membership.member_id,
        type=payment_type,
        method=None,
        status=PaymentStatus.PENDING,
        amount_cents=breakdown.base_amount_cents,
        processor_fee_cents=breakdown.processor_fee_cents,
        platform_fee_cents=breakdown.platform_fee_cents,
        total_charged_cents=breakdown.charge_amount_cents,
        net_amount_cents=breakdown.net_amount_cents,
        months_credited=months,
        recorded_by=recorded_by,
    )

    if payment_type == PaymentType.ENROLLMENT_FEE:
        payment.invoice_number = generate_invoice_number(store, organization_id, billing_date or today)
        payment.due_date = billing_date or today
    else:
        start = billing_date or membership.next_payment_due or today
        if payment_type == PaymentType.DUES and months == months_for_frequency(frequency):
            meta = generate_invoice_metadata(store, organization_id, start, frequency)
        else:
            meta = generate_ad_hoc_invoice_metadata(store, organization_id, start, months)
        payment.invoice_number = meta.invoice_number
        payment.due_date = meta.due_date
        payment.period_start = meta.period_start
        payment.period_end = meta.period_end
        payment.period_label = meta.period_label

    store.add_payment(payment)
    store.commit()
    payment_id = payment.id
    logger.info(
        "manual payment recorded payment=%s membership=%s type=%s amount=%s months=%s",
        payment_id,
        membership_id,
        payment_type.value,
        amount_cents,
        months,
    )

    result = settle_payment(
        store,
        payment_id,
        method,
        config=config,
        paid_at=paid_at or datetime.now(timezone.utc),
        notes=notes,
        recorded_by=recorded_by,
        today=today,
    )
    return store.get_payment(payment_id), result


def fail_payment(store: BillingStore, payment_id: uuid.UUID, *, failed_at: datetime | None = None) -> Payment:
    payment = store.get_payment(payment_id)
    if payment is None:
        raise NotFoundError("Payment not found")
    if payment.status != PaymentStatus.PENDING:
        raise ConflictError(f"cannot mark a {payment.status.value} payment as failed")

    if not store.mark_payment_failed(payment_id, failed_at or datetime.now(timezone.utc)):
        raise ConflictError("payment was changed by another request")

    logger.info("payment marked failed payment=%s", payment_id)
    return payment
