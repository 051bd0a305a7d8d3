"""
정기 청구 배치 테스트.
- 납부일이 된 회원권에 PENDING 인보이스 생성 (개월 수 적립 없음)
- 건너뛰기: 결제대행사 구독, 온보딩 미완료, 같은 납부일 인보이스 존재
- 연체 권고 (auto_lapse일 때만 적용), dry_run
"""
from datetime import date

from sqlalchemy import select

from app.models.membership import EnrollmentFeeStatus, Membership, MembershipStatus
from app.models.payment import Payment, PaymentStatus
from app.services.billing_config import DEFAULT_BILLING_CONFIG, parse_billing_config
from app.services.billing_run import evaluate_standing, process_all_organizations_billing, process_recurring_billing
from tests.helpers import create_membership, create_organization, create_payment, create_plan

BILLING_DATE = date(2025, 1, 15)


def _payments(db, membership_id):
    db.expire_all()
    return db.scalars(select(Payment).where(Payment.membership_id == membership_id)).all()


def test_creates_pending_invoice_for_due_membership(db, store, org):
    plan = create_plan(db, org)
    membership = create_membership(db, org, plan, paid_months=3)

    result = process_recurring_billing(store, org.id, DEFAULT_BILLING_CONFIG, billing_date=BILLING_DATE)

    assert result.success is True
    assert result.payments_created == 1
    payments = _payments(db, membership.id)
    assert len(payments) == 1

    p = payments[0]
    assert p.status == PaymentStatus.PENDING
    assert p.invoice_number == "INV-MM-202501-0001"
    assert p.due_date == date(2025, 1, 15)
    assert p.period_end == date(2025, 2, 14)
    assert p.period_label == "January 2025"
    assert p.months_credited == 1
    # 수동 결제 회원은 수수료 없음
    assert p.total_charged_cents == 5000
    assert p.net_amount_cents == 5000

    # 청구만으로는 적립/납부일 이동 없음
    m = db.get(Membership, membership.id)
    assert m.paid_months == 3
    assert m.next_payment_due == date(2025, 1, 15)


def test_processor_customer_gets_fee_breakdown(db, store):
    org = create_organization(db, platform_fees={"monthly": 0, "biannual": 0, "annual": 0}, pass_fees_to_member=True)
    plan = create_plan(db, org)
    membership = create_membership(db, org, plan, processor_customer_id="cus_123")

    process_recurring_billing(store, org.id, DEFAULT_BILLING_CONFIG, billing_date=BILLING_DATE)

    p = _payments(db, membership.id)[0]
    assert p.amount_cents == 5000
    assert p.total_charged_cents == 5180
    assert p.processor_fee_cents == 180
    assert p.net_amount_cents == 5000


def test_rerun_does_not_duplicate(db, store, org):
    plan = create_plan(db, org)
    membership = create_membership(db, org, plan)

    process_recurring_billing(store, org.id, DEFAULT_BILLING_CONFIG, billing_date=BILLING_DATE)
    second = process_recurring_billing(store, org.id, DEFAULT_BILLING_CONFIG, billing_date=BILLING_DATE)

    assert second.payments_created == 0
    assert second.skipped == 1
    assert len(_payments(db, membership.id)) == 1


def test_skips(db, store, org):
    plan = create_plan(db, org)
    create_membership(
        db, org, plan, processor_subscription_id="sub_1", processor_subscription_status="active"
    )
    create_membership(db, org, plan, agreement_signed=False)
    create_membership(db, org, plan, enrollment_fee_status=EnrollmentFeeStatus.UNPAID)
    # 아직 납부일 아님
    create_membership(db, org, plan, next_payment_due=date(2025, 1, 16))
    # 청구 대상 상태 아님
    create_membership(db, org, plan, status=MembershipStatus.PENDING)

    result = process_recurring_billing(store, org.id, DEFAULT_BILLING_CONFIG, billing_date=BILLING_DATE)

    assert result.payments_created == 0
    assert result.skipped == 3


def test_canceled_subscription_is_billed(db, store, org):
    plan = create_plan(db, org)
    create_membership(db, org, plan, processor_subscription_id="sub_1", processor_subscription_status="canceled")

    result = process_recurring_billing(store, org.id, DEFAULT_BILLING_CONFIG, billing_date=BILLING_DATE)

    assert result.payments_created == 1


def test_dry_run_creates_nothing(db, store, org):
    plan = create_plan(db, org)
    membership = create_membership(db, org, plan)

    result = process_recurring_billing(store, org.id, DEFAULT_BILLING_CONFIG, billing_date=BILLING_DATE, dry_run=True)

    assert result.dry_run is True
    assert result.payments_created == 1
    assert result.payment_ids == []
    assert _payments(db, membership.id) == []


def test_one_failure_does_not_stop_run(db, store, org, monkeypatch):
    plan = create_plan(db, org)
    first = create_membership(db, org, plan, next_payment_due=date(2025, 1, 10))
    second = create_membership(db, org, plan, next_payment_due=date(2025, 1, 12))
    first_id = first.id

    original = store.add_payment

    def flaky(payment):
        if payment.membership_id == first_id:
            raise RuntimeError("insert failed")
        return original(payment)

    monkeypatch.setattr(store, "add_payment", flaky)
    result = process_recurring_billing(store, org.id, DEFAULT_BILLING_CONFIG, billing_date=BILLING_DATE)

    assert result.success is False
    assert result.payments_created == 1
    assert result.errors == [{"membership_id": str(first_id), "error": "insert failed"}]
    assert len(_payments(db, second.id)) == 1


def test_evaluate_standing():
    m = Membership(status=MembershipStatus.CURRENT, next_payment_due=date(2025, 1, 1))

    assert evaluate_standing(m, date(2025, 1, 7), DEFAULT_BILLING_CONFIG) is None
    rec = evaluate_standing(m, date(2025, 1, 8), DEFAULT_BILLING_CONFIG)
    assert rec.recommended_status == MembershipStatus.LAPSED

    lapsed = Membership(status=MembershipStatus.LAPSED, next_payment_due=date(2023, 1, 1))
    rec = evaluate_standing(lapsed, date(2025, 1, 1), DEFAULT_BILLING_CONFIG)
    assert rec.recommended_status == MembershipStatus.CANCELLED


def test_recommendations_not_applied_by_default(db, store, org):
    plan = create_plan(db, org)
    membership = create_membership(db, org, plan, next_payment_due=date(2024, 12, 1))
    create_payment(db, membership, due_date=date(2024, 12, 1))

    result = process_recurring_billing(store, org.id, DEFAULT_BILLING_CONFIG, billing_date=BILLING_DATE)

    assert len(result.recommendations) == 1
    assert result.recommendations[0].recommended_status == MembershipStatus.LAPSED
    assert result.recommendations[0].applied is False
    assert result.status_updates == 0
    db.expire_all()
    assert db.get(Membership, membership.id).status == MembershipStatus.CURRENT


def test_auto_lapse_applies_recommendations(db, store):
    org = create_organization(db, billing_config={"auto_lapse": True})
    plan = create_plan(db, org)
    overdue = create_membership(db, org, plan, next_payment_due=date(2024, 12, 1))
    create_payment(db, overdue, due_date=date(2024, 12, 1))
    stale = create_membership(db, org, plan, status=MembershipStatus.LAPSED, next_payment_due=date(2022, 6, 1))

    config = parse_billing_config(org.billing_config)
    result = process_recurring_billing(store, org.id, config, billing_date=BILLING_DATE)

    assert result.status_updates == 2
    db.expire_all()
    assert db.get(Membership, overdue.id).status == MembershipStatus.LAPSED
    cancelled = db.get(Membership, stale.id)
    assert cancelled.status == MembershipStatus.CANCELLED
    assert cancelled.cancelled_date == BILLING_DATE


def test_all_organizations(db, store):
    active = create_organization(db)
    create_organization(db, name="Amanah Logic", is_active=False)
    plan = create_plan(db, active)
    create_membership(db, active, plan)

    results = process_all_organizations_billing(store, billing_date=BILLING_DATE)

    assert list(results) == [str(active.id)]
    assert results[str(active.id)].payments_created == 1


def test_broken_org_config_is_isolated(db, store):
    broken = create_organization(db, billing_config={"lapse_days": "soon"})
    healthy = create_organization(db, name="Amanah Logic")
    create_membership(db, healthy, create_plan(db, healthy))

    results = process_all_organizations_billing(store, billing_date=BILLING_DATE)

    assert results[str(broken.id)].success is False
    assert results[str(healthy.id)].payments_created == 1
