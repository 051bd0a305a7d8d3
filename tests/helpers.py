# tests/helpers.py
import uuid
from datetime import date, datetime, timezone

from sqlalchemy.orm import Session

from app.core.security import create_access_token
from app.models.application import ReturningApplication
from app.models.member import Member
from app.models.membership import BillingFrequency, EnrollmentFeeStatus, Membership, MembershipStatus
from app.models.organization import Organization
from app.models.payment import Payment, PaymentStatus, PaymentType
from app.models.plan import Plan


def auth_header(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def admin_token(org: Organization, *, user_id: str = "admin-1", role: str = "admin") -> str:
    return create_access_token(user_id, str(org.id), role=role)


def create_organization(
    db: Session,
    *,
    name: str = "Masjid Muhajireen",
    timezone_name: str = "America/Los_Angeles",
    platform_fees: dict | None = None,
    pass_fees_to_member: bool = False,
    billing_config: dict | None = None,
    is_active: bool = True,
) -> Organization:
    org = Organization(
        name=name,
        slug=f"org-{uuid.uuid4().hex[:8]}",
        timezone=timezone_name,
        platform_fees=platform_fees if platform_fees is not None else {"monthly": 0, "biannual": 0, "annual": 0},
        pass_fees_to_member=pass_fees_to_member,
        billing_config=billing_config,
        is_active=is_active,
    )
    db.add(org)
    db.commit()
    db.refresh(org)
    return org


def create_plan(
    db: Session,
    org: Organization,
    *,
    monthly: int = 5000,
    biannual: int = 28000,
    annual: int = 54000,
    enrollment_fee: int = 10000,
) -> Plan:
    plan = Plan(
        organization_id=org.id,
        name="Family",
        monthly_price_cents=monthly,
        biannual_price_cents=biannual,
        annual_price_cents=annual,
        enrollment_fee_cents=enrollment_fee,
    )
    db.add(plan)
    db.commit()
    db.refresh(plan)
    return plan


def create_member(db: Session, org: Organization, *, email: str | None = None) -> Member:
    member = Member(
        organization_id=org.id,
        first_name="Test",
        last_name="Member",
        email=email or f"member_{uuid.uuid4().hex[:6]}@test.com",
        phone="555-0100",
    )
    db.add(member)
    db.commit()
    db.refresh(member)
    return member


def create_membership(
    db: Session,
    org: Organization,
    plan: Plan,
    *,
    status: MembershipStatus = MembershipStatus.CURRENT,
    frequency: BillingFrequency = BillingFrequency.MONTHLY,
    next_payment_due: date | None = date(2025, 1, 15),
    paid_months: int = 0,
    agreement_signed: bool = True,
    enrollment_fee_status: EnrollmentFeeStatus = EnrollmentFeeStatus.PAID,
    bill_on_month_end: bool = False,
    processor_customer_id: str | None = None,
    processor_subscription_id: str | None = None,
    processor_subscription_status: str | None = None,
    join_date: date | None = None,
) -> Membership:
    member = create_member(db, org)
    membership = Membership(
        organization_id=org.id,
        member_id=member.id,
        plan_id=plan.id,
        status=status,
        billing_frequency=frequency,
        billing_anniversary_day=next_payment_due.day if next_payment_due else None,
        bill_on_month_end=bill_on_month_end,
        paid_months=paid_months,
        next_payment_due=next_payment_due,
        join_date=join_date,
        enrollment_fee_status=enrollment_fee_status,
        agreement_signed_at=datetime(2024, 12, 1, tzinfo=timezone.utc) if agreement_signed else None,
        processor_customer_id=processor_customer_id,
        processor_subscription_id=processor_subscription_id,
        processor_subscription_status=processor_subscription_status,
    )
    db.add(membership)
    db.commit()
    db.refresh(membership)
    return membership


def create_payment(
    db: Session,
    membership: Membership,
    *,
    status: PaymentStatus = PaymentStatus.PENDING,
    payment_type: PaymentType = PaymentType.DUES,
    amount_cents: int = 5000,
    months_credited: int = 1,
    due_date: date | None = date(2025, 1, 1),
    invoice_number: str | None = None,
    reminder_count: int = 0,
    reminder_sent_at: datetime | None = None,
) -> Payment:
    payment = Payment(
        organization_id=membership.organization_id,
        membership_id=membership.id,
        member_id=membership.member_id,
        type=payment_type,
        status=status,
        amount_cents=amount_cents,
        processor_fee_cents=0,
        platform_fee_cents=0,
        total_charged_cents=amount_cents,
        net_amount_cents=amount_cents,
        months_credited=months_credited,
        invoice_number=invoice_number or f"INV-MM-202501-{uuid.uuid4().hex[:8]}",
        due_date=due_date,
        period_start=due_date,
        reminder_count=reminder_count,
        reminder_sent_at=reminder_sent_at,
    )
    db.add(payment)
    db.commit()
    db.refresh(payment)
    return payment


def create_application(
    db: Session,
    org: Organization,
    plan: Plan,
    *,
    email: str | None = None,
    paid_months: int = 0,
    enrollment_fee_status: EnrollmentFeeStatus = EnrollmentFeeStatus.UNPAID,
) -> ReturningApplication:
    application = ReturningApplication(
        organization_id=org.id,
        plan_id=plan.id,
        first_name="Returning",
        last_name="Member",
        email=email or f"returning_{uuid.uuid4().hex[:6]}@test.com",
        billing_frequency=BillingFrequency.MONTHLY,
        paid_months=paid_months,
        enrollment_fee_status=enrollment_fee_status,
    )
    db.add(application)
    db.commit()
    db.refresh(application)
    return application
