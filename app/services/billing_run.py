"""
services/billing_run.py

정기 청구 배치(recurring billing run).

cron(scripts/run_billing.py) 또는 관리자 API가 호출한다.

기관 하나에 대해:
1. 다음 납부일이 청구일 이전(당일 포함)인 회원권 조회
   (waiting_period / current 상태, 약정서 서명 + 가입비 처리 완료)
2. 건너뛰는 경우
   - 결제대행사 구독(active / trialing)이 청구를 담당
   - 같은 납부일에 pending / completed 인보이스가 이미 있음
3. PENDING 결제(인보이스) 생성 - 개월 수 적립/다음 납부일 이동은 하지 않음 (정산에서만)
4. 연체 상태 평가: lapsed / cancelled 권고 생성
   - BillingConfig.auto_lapse=True 일 때만 실제로 상태를 바꾼다

dry_run=True면 DB를 바꾸지 않고 건수만 센다.
회원권 하나가 실패해도 나머지는 계속 처리하고 errors에 모은다.

"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import date, timedelta

from app.core.exceptions import NotFoundError
from app.models.membership import Membership, MembershipStatus
from app.models.payment import Payment, PaymentStatus, PaymentType
from app.services.billing_config import BillingConfig, load_billing_config
from app.services.billing_dates import add_months, today_in_timezone
from app.services.fees import (
    STANDARD_PROCESSOR_FEES,
    ProcessorFeeSchedule,
    calculate_fees,
    manual_breakdown,
    platform_fee_for,
)
from app.services.invoice import generate_invoice_metadata
from app.services.membership_status import ensure_transition
from app.services.store import BillingStore

logger = logging.getLogger(__name__)

BILLABLE_STATUSES = (MembershipStatus.WAITING_PERIOD, MembershipStatus.CURRENT)


@dataclass
class StatusRecommendation:
    membership_id: uuid.UUID
    current_status: MembershipStatus
    recommended_status: MembershipStatus
    reason: str
    applied: bool = False


@dataclass
class BillingRunResult:
    organization_id: uuid.UUID
    billing_date: date | None
    dry_run: bool = False
    success: bool = True
    payments_created: int = 0
    payment_ids: list[uuid.UUID] = field(default_factory=list)
    skipped: int = 0
    status_updates: int = 0
    recommendations: list[StatusRecommendation] = field(default_factory=list)
    errors: list[dict] = field(default_factory=list)


def _error(membership_id, e: Exception) -> dict:
    return {"membership_id": str(membership_id) if membership_id else None, "error": str(e) or type(e).__name__}


def evaluate_standing(membership: Membership, today: date, config: BillingConfig) -> StatusRecommendation | None:
    """연체 기준에 따른 상태 권고. 바꿀 필요가 없으면 None."""
    due = membership.next_payment_due
    if due is None:
        return None

    if membership.status in BILLABLE_STATUSES and due <= today - timedelta(days=config.lapse_days):
        return StatusRecommendation(
            membership_id=membership.id,
            current_status=membership.status,
            recommended_status=MembershipStatus.LAPSED,
            reason=f"payment overdue more than {config.lapse_days} days",
        )

    if membership.status == MembershipStatus.LAPSED and due <= add_months(today, -config.cancel_months):
        return StatusRecommendation(
            membership_id=membership.id,
            current_status=membership.status,
            recommended_status=MembershipStatus.CANCELLED,
            reason=f"unpaid for {config.cancel_months} months",
        )

    return None


def _skip_reason(store: BillingStore, membership: Membership) -> str | None:
    if membership.has_active_processor_subscription:
        return "processor_subscription"
    if membership.agreement_signed_at is None or not membership.enrollment_fee_resolved:
        return "onboarding_incomplete"
    if store.has_open_invoice(membership.id, membership.next_payment_due):
        return "invoice_exists"
    return None


def _create_invoice(store: BillingStore, org, membership: Membership, schedule: ProcessorFeeSchedule) -> Payment:
    plan = store.get_plan(membership.plan_id)
    if plan is None:
        raise NotFoundError(f"plan not found: {membership.plan_id}")

    frequency = membership.billing_frequency
    amount = plan.price_for(frequency)

    # 결제대행사 고객이면 카드 결제 기준 수수료, 아니면 수동 결제(수수료 0)
    if membership.processor_customer_id:
        breakdown = calculate_fees(
            amount,
            platform_fee_for(org.platform_fees, frequency),
            org.pass_fees_to_member,
            schedule=schedule,
        )
    else:
        breakdown = manual_breakdown(amount)

    meta = generate_invoice_metadata(store, org.id, membership.next_payment_due, frequency)

    payment = Payment(
        organization_id=org.id,
        membership_id=membership.id,
        member_id=membership.member_id,
        type=PaymentType.DUES,
        method=None,
        status=PaymentStatus.PENDING,
        amount_cents=breakdown.base_amount_cents,
        processor_fee_cents=breakdown.processor_fee_cents,
        platform_fee_cents=breakdown.platform_fee_cents,
        total_charged_cents=breakdown.charge_amount_cents,
        net_amount_cents=breakdown.net_amount_cents,
        months_credited=meta.months_credited,
        invoice_number=meta.invoice_number,
        due_date=meta.due_date,
        period_start=meta.period_start,
        period_end=meta.period_end,
        period_label=meta.period_label,
        notes=f"{meta.period_label} dues",
    )
    return store.add_payment(payment)


def _apply_recommendation(store: BillingStore, rec: StatusRecommendation, today: date) -> None:
    ensure_transition(rec.current_status, rec.recommended_status)
    values = {"status": rec.recommended_status}
    if rec.recommended_status == MembershipStatus.CANCELLED:
        values["cancelled_date"] = today
    store.update_membership(rec.membership_id, values)


def _process_standing(
    store: BillingStore,
    org,
    config: BillingConfig,
    today: date,
    result: BillingRunResult,
) -> None:
    lapse_candidates = store.list_memberships_by_status(
        org.id, BILLABLE_STATUSES, today - timedelta(days=config.lapse_days)
    )
    cancel_candidates = store.list_memberships_by_status(
        org.id, (MembershipStatus.LAPSED,), add_months(today, -config.cancel_months)
    )

    for membership in list(lapse_candidates) + list(cancel_candidates):
        rec = evaluate_standing(membership, today, config)
        if rec is None:
            continue
        result.recommendations.append(rec)

        if not config.auto_lapse or result.dry_run:
            continue

        try:
            _apply_recommendation(store, rec, today)
            store.commit()
        except Exception as e:
            store.rollback()
            logger.error("status transition failed membership=%s: %s", rec.membership_id, e)
            result.errors.append(_error(rec.membership_id, e))
            continue

        rec.applied = True
        result.status_updates += 1
        logger.info(
            "membership status %s -> %s membership=%s reason=%s",
            rec.current_status.value,
            rec.recommended_status.value,
            rec.membership_id,
            rec.reason,
        )


def process_recurring_billing(
    store: BillingStore,
    organization_id: uuid.UUID,
    config: BillingConfig,
    *,
    billing_date: date | None = None,
    dry_run: bool = False,
    fee_schedule: ProcessorFeeSchedule = STANDARD_PROCESSOR_FEES,
) -> BillingRunResult:
    org = store.get_organization(organization_id)
    if org is None:
        raise NotFoundError(f"organization not found: {organization_id}")

    today = billing_date or today_in_timezone(org.timezone)
    result = BillingRunResult(organization_id=org.id, billing_date=today, dry_run=dry_run)
    logger.info("billing run started org=%s billing_date=%s dry_run=%s", org.id, today, dry_run)

    memberships = store.list_memberships_by_status(org.id, BILLABLE_STATUSES, today)

    for membership in memberships:
        membership_id = membership.id
        try:
            reason = _skip_reason(store, membership)
            if reason:
                logger.info("membership skipped membership=%s reason=%s", membership_id, reason)
                result.skipped += 1
                continue

            if dry_run:
                result.payments_created += 1
                continue

            payment = _create_invoice(store, org, membership, fee_schedule)
            store.commit()
        except Exception as e:
            store.rollback()
            logger.error("invoice creation failed membership=%s: %s", membership_id, e)
            result.errors.append(_error(membership_id, e))
            continue

        result.payments_created += 1
        result.payment_ids.append(payment.id)
        logger.info(
            "invoice created membership=%s payment=%s invoice=%s amount=%s",
            membership_id,
            payment.id,
            payment.invoice_number,
            payment.total_charged_cents,
        )

    _process_standing(store, org, config, today, result)

    result.success = not result.errors
    logger.info(
        "billing run complete org=%s created=%s skipped=%s status_updates=%s errors=%s",
        org.id,
        result.payments_created,
        result.skipped,
        result.status_updates,
        len(result.errors),
    )
    return result


def process_all_organizations_billing(
    store: BillingStore,
    *,
    billing_date: date | None = None,
    dry_run: bool = False,
    fee_schedule: ProcessorFeeSchedule = STANDARD_PROCESSOR_FEES,
) -> dict[str, BillingRunResult]:
    results: dict[str, BillingRunResult] = {}
    organizations = store.list_active_organizations()
    logger.info("billing run for all organizations count=%s", len(organizations))

    for org in organizations:
        org_id = org.id
        try:
            config = load_billing_config(org)
            results[str(org_id)] = process_recurring_billing(
                store,
                org_id,
                config,
                billing_date=billing_date,
                dry_run=dry_run,
                fee_schedule=fee_schedule,
            )
        except Exception as e:
            store.rollback()
            logger.error("organization billing failed org=%s: %s", org_id, e)
            results[str(org_id)] = BillingRunResult(
                organization_id=org_id,
                billing_date=billing_date,
                dry_run=dry_run,
                success=False,
                errors=[_error(None, e)],
            )

    return results
