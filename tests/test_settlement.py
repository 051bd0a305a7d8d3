"""
결제 정산 테스트.
- 개월 수 적립 / 다음 납부일 이동 / 상태 전이 / 자격일
- 같은 결제를 두 번 정산해도 한 번만 적립 (idempotent)
- 회원권 반영 실패 시 PARTIAL
"""
import uuid
from datetime import date, datetime, timezone

import pytest

from app.core.exceptions import ConflictError, NotFoundError
from app.models.membership import EnrollmentFeeStatus, Membership, MembershipStatus
from app.models.payment import Payment, PaymentMethod, PaymentStatus, PaymentType
from app.services.billing_config import DEFAULT_BILLING_CONFIG, parse_billing_config
from app.services.settlement import SettlementOutcome, settle_payment
from tests.helpers import create_membership, create_payment, create_plan

TODAY = date(2025, 1, 20)
PAID_AT = datetime(2025, 1, 20, 18, 0, tzinfo=timezone.utc)


def _reload(db, model, id_):
    db.expire_all()
    return db.get(model, id_)


def test_settle_dues_credits_months(db, store, org):
    plan = create_plan(db, org)
    membership = create_membership(db, org, plan, status=MembershipStatus.WAITING_PERIOD, paid_months=5)
    payment = create_payment(db, membership, months_credited=1)

    result = settle_payment(
        store, payment.id, PaymentMethod.CASH, config=DEFAULT_BILLING_CONFIG, paid_at=PAID_AT, today=TODAY
    )

    assert result.success is True
    assert result.outcome == SettlementOutcome.SETTLED
    assert result.new_paid_months == 6
    assert result.new_status == MembershipStatus.WAITING_PERIOD
    assert result.next_payment_due == date(2025, 2, 15)
    assert result.membership_updated is True

    m = _reload(db, Membership, membership.id)
    assert m.paid_months == 6
    assert m.next_payment_due == date(2025, 2, 15)
    assert m.last_payment_date == date(2025, 1, 20)

    p = _reload(db, Payment, payment.id)
    assert p.status == PaymentStatus.COMPLETED
    assert p.method == PaymentMethod.CASH


def test_settle_twice_credits_once(db, store, org):
    plan = create_plan(db, org)
    membership = create_membership(db, org, plan, paid_months=10)
    payment = create_payment(db, membership, months_credited=6)

    first = settle_payment(store, payment.id, PaymentMethod.CHECK, config=DEFAULT_BILLING_CONFIG, today=TODAY)
    second = settle_payment(store, payment.id, PaymentMethod.CHECK, config=DEFAULT_BILLING_CONFIG, today=TODAY)

    assert first.outcome == SettlementOutcome.SETTLED
    assert second.outcome == SettlementOutcome.ALREADY_SETTLED
    assert second.success is True
    assert _reload(db, Membership, membership.id).paid_months == 16


def test_lost_claim_is_already_settled(db, store, org, monkeypatch):
    plan = create_plan(db, org)
    membership = create_membership(db, org, plan, paid_months=1)
    payment = create_payment(db, membership)

    # 다른 워커가 먼저 선점한 상황
    monkeypatch.setattr(store, "claim_payment", lambda *a, **kw: False)
    result = settle_payment(store, payment.id, PaymentMethod.CASH, config=DEFAULT_BILLING_CONFIG, today=TODAY)

    assert result.outcome == SettlementOutcome.ALREADY_SETTLED
    assert _reload(db, Membership, membership.id).paid_months == 1


def test_failed_payment_can_be_settled(db, store, org):
    plan = create_plan(db, org)
    membership = create_membership(db, org, plan, paid_months=2)
    payment = create_payment(db, membership, status=PaymentStatus.FAILED)

    result = settle_payment(store, payment.id, PaymentMethod.ZELLE, config=DEFAULT_BILLING_CONFIG, today=TODAY)

    assert result.outcome == SettlementOutcome.SETTLED
    assert result.new_paid_months == 3


def test_refunded_payment_rejected(db, store, org):
    plan = create_plan(db, org)
    payment = create_payment(db, create_membership(db, org, plan), status=PaymentStatus.REFUNDED)

    with pytest.raises(ConflictError):
        settle_payment(store, payment.id, PaymentMethod.CASH, config=DEFAULT_BILLING_CONFIG, today=TODAY)


def test_unknown_payment(store):
    with pytest.raises(NotFoundError):
        settle_payment(store, uuid.uuid4(), PaymentMethod.CASH, config=DEFAULT_BILLING_CONFIG, today=TODAY)


def test_crossing_eligibility_threshold(db, store, org):
    plan = create_plan(db, org)
    membership = create_membership(db, org, plan, status=MembershipStatus.WAITING_PERIOD, paid_months=59)
    payment = create_payment(db, membership)

    result = settle_payment(store, payment.id, PaymentMethod.CASH, config=DEFAULT_BILLING_CONFIG, today=TODAY)

    assert result.new_status == MembershipStatus.CURRENT
    assert result.became_eligible is True
    m = _reload(db, Membership, membership.id)
    assert m.eligible_date == TODAY


def test_eligible_date_set_once(db, store, org):
    plan = create_plan(db, org)
    membership = create_membership(db, org, plan, paid_months=70)
    membership.eligible_date = date(2024, 6, 1)
    db.commit()
    payment = create_payment(db, membership)

    result = settle_payment(store, payment.id, PaymentMethod.CASH, config=DEFAULT_BILLING_CONFIG, today=TODAY)

    assert result.became_eligible is False
    assert _reload(db, Membership, membership.id).eligible_date == date(2024, 6, 1)


def test_custom_eligibility_months(db, store, org):
    plan = create_plan(db, org)
    membership = create_membership(db, org, plan, status=MembershipStatus.WAITING_PERIOD, paid_months=11)
    payment = create_payment(db, membership)

    config = parse_billing_config({"eligibility_months": 12})
    result = settle_payment(store, payment.id, PaymentMethod.CASH, config=config, today=TODAY)

    assert result.new_status == MembershipStatus.CURRENT
    assert result.became_eligible is True


def test_enrollment_fee_activates_signed_membership(db, store, org):
    plan = create_plan(db, org)
    membership = create_membership(
        db,
        org,
        plan,
        status=MembershipStatus.AWAITING_SIGNATURE,
        paid_months=3,
        enrollment_fee_status=EnrollmentFeeStatus.UNPAID,
    )
    payment = create_payment(db, membership, payment_type=PaymentType.ENROLLMENT_FEE, months_credited=0)

    result = settle_payment(store, payment.id, PaymentMethod.CASH, config=DEFAULT_BILLING_CONFIG, today=TODAY)

    assert result.new_status == MembershipStatus.WAITING_PERIOD
    m = _reload(db, Membership, membership.id)
    assert m.enrollment_fee_status == EnrollmentFeeStatus.PAID
    assert m.join_date == TODAY
    # 개월 수 적립이 없으면 납부일은 그대로
    assert m.next_payment_due == date(2025, 1, 15)
    assert m.paid_months == 3


def test_unsigned_membership_stays_onboarding(db, store, org):
    plan = create_plan(db, org)
    membership = create_membership(db, org, plan, status=MembershipStatus.PENDING, agreement_signed=False)
    payment = create_payment(db, membership)

    result = settle_payment(store, payment.id, PaymentMethod.CASH, config=DEFAULT_BILLING_CONFIG, today=TODAY)

    assert result.new_status == MembershipStatus.PENDING
    assert result.new_paid_months == 1


def test_month_end_anchor_respected(db, store, org):
    plan = create_plan(db, org)
    membership = create_membership(
        db, org, plan, next_payment_due=date(2025, 2, 28), bill_on_month_end=True, paid_months=1
    )
    payment = create_payment(db, membership, due_date=date(2025, 2, 28))

    result = settle_payment(store, payment.id, PaymentMethod.CASH, config=DEFAULT_BILLING_CONFIG, today=TODAY)

    assert result.next_payment_due == date(2025, 3, 31)


def test_anniversary_day_does_not_restore_clamped_day(db, store, org):
    plan = create_plan(db, org)
    membership = create_membership(db, org, plan, next_payment_due=date(2025, 1, 31), paid_months=1)
    assert membership.billing_anniversary_day == 31

    first = create_payment(db, membership, due_date=date(2025, 1, 31))
    result = settle_payment(store, first.id, PaymentMethod.CASH, config=DEFAULT_BILLING_CONFIG, today=TODAY)
    assert result.next_payment_due == date(2025, 2, 28)

    second = create_payment(db, membership, due_date=date(2025, 2, 28))
    result = settle_payment(store, second.id, PaymentMethod.CASH, config=DEFAULT_BILLING_CONFIG, today=TODAY)
    assert result.next_payment_due == date(2025, 3, 28)

    m = _reload(db, Membership, membership.id)
    assert m.billing_anniversary_day == 31
    assert m.bill_on_month_end is False


def test_membership_update_failure_is_partial(db, store, org, monkeypatch):
    plan = create_plan(db, org)
    membership = create_membership(db, org, plan, paid_months=4)
    payment = create_payment(db, membership)

    def boom(*args, **kwargs):
        raise RuntimeError("deadlock detected")

    monkeypatch.setattr(store, "update_membership", boom)
    result = settle_payment(store, payment.id, PaymentMethod.CASH, config=DEFAULT_BILLING_CONFIG, today=TODAY)

    assert result.success is True
    assert result.outcome == SettlementOutcome.PARTIAL
    assert result.membership_updated is False
    assert "deadlock detected" in result.error

    # 결제는 완료, 회원권은 그대로
    assert _reload(db, Payment, payment.id).status == PaymentStatus.COMPLETED
    assert _reload(db, Membership, membership.id).paid_months == 4
