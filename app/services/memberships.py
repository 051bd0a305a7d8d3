"""
services/memberships.py

회원권 관리 로직 (약정서 이벤트, 관리자 상태 강제 변경, 청구 주기 변경, 자격 현황).

- 약정서 발송: pending -> awaiting_signature
- 약정서 서명: 가입비 처리 + 납부 개월 수가 있으면 바로 waiting_period / current
- 관리자 강제 변경: 전이 표를 무시, 라우터에서 감사 로그를 남긴다

"""

import logging
import uuid
from datetime import date, datetime, timezone

from app.core.exceptions import BillingValidationError, ConflictError, NotFoundError
from app.models.membership import BillingFrequency, Membership, MembershipStatus
from app.services.billing_config import BillingConfig
from app.services.membership_status import (
    ONBOARDING_STATUSES,
    activation_ready,
    ensure_transition,
    standing_for,
)
from app.services.notifications import Notifier, SideEffectReport, run_side_effects
from app.services.store import BillingStore

logger = logging.getLogger(__name__)


def get_membership_for_org(store: BillingStore, organization_id: uuid.UUID, membership_id: uuid.UUID) -> Membership:
    membership = store.get_membership(membership_id)
    if membership is None or membership.organization_id != organization_id:
        raise NotFoundError("Membership not found")
    return membership


def mark_agreement_sent(
    store: BillingStore,
    membership: Membership,
    *,
    notifier: Notifier,
    sent_at: datetime | None = None,
) -> SideEffectReport:
    if membership.agreement_signed_at is not None:
        raise ConflictError("agreement already signed")

    values = {"agreement_sent_at": sent_at or datetime.now(timezone.utc)}
    if membership.status == MembershipStatus.PENDING:
        ensure_transition(membership.status, MembershipStatus.AWAITING_SIGNATURE)
        values["status"] = MembershipStatus.AWAITING_SIGNATURE
    store.update_membership(membership.id, values)

    member = store.get_member(membership.member_id)
    return run_side_effects([("agreement_email", lambda: notifier.agreement_sent(member, membership))])


def mark_agreement_signed(
    store: BillingStore,
    membership: Membership,
    *,
    config: BillingConfig,
    today: date,
    signed_at: datetime | None = None,
) -> Membership:
    if membership.agreement_signed_at is not None:
        raise ConflictError("agreement already signed")
    if membership.status == MembershipStatus.CANCELLED:
        raise ConflictError("membership is cancelled")

    values = {"agreement_signed_at": signed_at or datetime.now(timezone.utc)}

    if membership.status in ONBOARDING_STATUSES and activation_ready(
        True, membership.enrollment_fee_status, membership.paid_months
    ):
        target = standing_for(membership.paid_months, config.eligibility_months)
        ensure_transition(membership.status, target)
        values["status"] = target
        if membership.join_date is None:
            values["join_date"] = today
        logger.info("membership activated on signature membership=%s status=%s", membership.id, target.value)

    store.update_membership(membership.id, values)
    return membership


def override_status(
    store: BillingStore,
    membership: Membership,
    target: MembershipStatus,
    *,
    today: date,
) -> MembershipStatus:
    """관리자 강제 상태 변경. 변경 전 상태를 반환."""
    target = MembershipStatus(target)
    before = membership.status
    if before == target:
        raise BillingValidationError(f"membership already {target.value}")

    values = {"status": target}
    if target == MembershipStatus.CANCELLED:
        values["cancelled_date"] = today
    elif before == MembershipStatus.CANCELLED:
        values["cancelled_date"] = None
    store.update_membership(membership.id, values)

    logger.warning("membership status overridden membership=%s %s -> %s", membership.id, before.value, target.value)
    return before


def change_billing_frequency(
    store: BillingStore,
    membership: Membership,
    frequency: BillingFrequency,
) -> BillingFrequency:
    """청구 주기 변경. 변경 전 주기를 반환.

    이미 생성된 결제는 그대로 두고 다음 정기 청구부터 새 주기의 금액/개월 수가 적용된다.
    """
    frequency = BillingFrequency(frequency)
    before = membership.billing_frequency
    if membership.status == MembershipStatus.CANCELLED:
        raise ConflictError("membership is cancelled")
    if before == frequency:
        raise BillingValidationError(f"membership already billed {frequency.value}")

    store.update_membership(membership.id, {"billing_frequency": frequency})
    logger.info("billing frequency changed membership=%s %s -> %s", membership.id, before.value, frequency.value)
    return before


def eligibility_summary(membership: Membership, config: BillingConfig) -> dict:
    paid = membership.paid_months or 0
    is_eligible = membership.status != MembershipStatus.CANCELLED and paid >= config.eligibility_months
    return {
        "membership_id": membership.id,
        "status": membership.status,
        "paid_months": paid,
        "eligibility_months": config.eligibility_months,
        "months_remaining": max(config.eligibility_months - paid, 0),
        "is_eligible": is_eligible,
        "eligible_date": membership.eligible_date,
    }
