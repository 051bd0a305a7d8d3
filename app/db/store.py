"""
db/store.py

BillingStore(app.services.store)의 SQLAlchemy 구현.

요청마다 get_db()가 만든 Session 하나를 감싸서 사용한다.
commit / rollback 시점은 호출하는 서비스(정산, 배치)가 결정한다.

원자성 보장:
- reserve_invoice_sequence : INSERT ... ON CONFLICT DO UPDATE ... RETURNING (PostgreSQL / SQLite 3.35+)
- claim_payment            : UPDATE ... WHERE status IN (pending, failed), rowcount로 선점 여부 판단

"""

import uuid
from datetime import date, datetime, timezone
from typing import Sequence

from sqlalchemy import select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from app.models.member import Member
from app.models.membership import Membership, MembershipStatus
from app.models.organization import InvoiceSequence, Organization
from app.models.payment import OPEN_PAYMENT_STATUSES, Payment, PaymentMethod, PaymentStatus
from app.models.plan import Plan


class SqlAlchemyBillingStore:
    def __init__(self, db: Session):
        self.db = db

    # 기관 / 인보이스 번호

    def get_organization(self, organization_id: uuid.UUID) -> Organization | None:
        return self.db.get(Organization, organization_id)

    def list_active_organizations(self) -> Sequence[Organization]:
        return self.db.scalars(
            select(Organization).where(Organization.is_active.is_(True)).order_by(Organization.created_at)
        ).all()

    def update_organization(self, organization_id: uuid.UUID, values: dict) -> None:
        org = self.db.get(Organization, organization_id)
        if org is None:
            raise LookupError(f"organization not found: {organization_id}")
        for key, value in values.items():
            setattr(org, key, value)
        self.db.flush()

    def reserve_invoice_sequence(self, organization_id: uuid.UUID, year_month: str) -> int:
        dialect = self.db.get_bind().dialect.name
        insert = postgresql.insert if dialect == "postgresql" else sqlite.insert

        stmt = insert(InvoiceSequence).values(
            id=uuid.uuid4(),
            organization_id=organization_id,
            year_month=year_month,
            last_sequence=1,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[InvoiceSequence.organization_id, InvoiceSequence.year_month],
            set_={"last_sequence": InvoiceSequence.last_sequence + 1},
        ).returning(InvoiceSequence.last_sequence)

        return self.db.execute(stmt).scalar_one()

    # 플랜 / 회원 / 회원권

    def get_plan(self, plan_id: uuid.UUID) -> Plan | None:
        return self.db.get(Plan, plan_id)

    def update_plan(self, plan_id: uuid.UUID, values: dict) -> None:
        plan = self.db.get(Plan, plan_id)
        if plan is None:
            raise LookupError(f"plan not found: {plan_id}")
        for key, value in values.items():
            setattr(plan, key, value)
        self.db.flush()

    def get_member(self, member_id: uuid.UUID) -> Member | None:
        return self.db.get(Member, member_id)

    def get_membership(self, membership_id: uuid.UUID) -> Membership | None:
        return self.db.get(Membership, membership_id)

    def update_membership(self, membership_id: uuid.UUID, values: dict) -> None:
        membership = self.db.get(Membership, membership_id)
        if membership is None:
            raise LookupError(f"membership not found: {membership_id}")
        for key, value in values.items():
            setattr(membership, key, value)
        self.db.flush()

    def list_memberships_by_status(
        self,
        organization_id: uuid.UUID,
        statuses: Sequence[MembershipStatus],
        due_on_or_before: date,
    ) -> Sequence[Membership]:
        return self.db.scalars(
            select(Membership)
            .where(Membership.organization_id == organization_id)
            .where(Membership.status.in_(list(statuses)))
            .where(Membership.next_payment_due.is_not(None))
            .where(Membership.next_payment_due <= due_on_or_before)
            .order_by(Membership.next_payment_due, Membership.created_at)
        ).all()

    # 결제

    def get_payment(self, payment_id: uuid.UUID) -> Payment | None:
        return self.db.get(Payment, payment_id)

    def add_payment(self, payment: Payment) -> Payment:
        self.db.add(payment)
        self.db.flush()
        return payment

    def has_open_invoice(self, membership_id: uuid.UUID, due_date: date) -> bool:
        found = self.db.scalar(
            select(Payment.id)
            .where(Payment.membership_id == membership_id)
            .where(Payment.due_date == due_date)
            .where(Payment.status.in_([PaymentStatus.PENDING, PaymentStatus.COMPLETED]))
            .limit(1)
        )
        return found is not None

    def claim_payment(
        self,
        payment_id: uuid.UUID,
        *,
        method: PaymentMethod,
        paid_at: datetime,
        notes: str | None,
        recorded_by: str | None,
        processor_payment_id: str | None,
    ) -> bool:
        values = {
            "status": PaymentStatus.COMPLETED,
            "method": method,
            "paid_at": paid_at,
            "recorded_by": recorded_by,
            "updated_at": datetime.now(timezone.utc),
        }
        if notes is not None:
            values["notes"] = notes
        if processor_payment_id is not None:
            values["processor_payment_id"] = processor_payment_id

        res = self.db.execute(
            update(Payment)
            .where(Payment.id == payment_id)
            .where(Payment.status.in_(list(OPEN_PAYMENT_STATUSES)))
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return res.rowcount == 1

    def mark_payment_failed(self, payment_id: uuid.UUID, failed_at: datetime) -> bool:
        res = self.db.execute(
            update(Payment)
            .where(Payment.id == payment_id)
            .where(Payment.status == PaymentStatus.PENDING)
            .values(status=PaymentStatus.FAILED, failed_at=failed_at, updated_at=failed_at)
            .execution_options(synchronize_session=False)
        )
        return res.rowcount == 1

    def list_reminder_candidates(
        self,
        organization_id: uuid.UUID,
        due_on_or_before: date,
        max_reminders: int,
    ) -> Sequence[Payment]:
        return self.db.scalars(
            select(Payment)
            .where(Payment.organization_id == organization_id)
            .where(Payment.status.in_(list(OPEN_PAYMENT_STATUSES)))
            .where(Payment.reminders_paused.is_(False))
            .where(Payment.requires_review.is_(False))
            .where(Payment.due_date.is_not(None))
            .where(Payment.due_date <= due_on_or_before)
            .where(Payment.reminder_count < max_reminders)
            .order_by(Payment.due_date)
        ).all()

    def record_reminder(
        self,
        payment_id: uuid.UUID,
        *,
        reminder_count: int,
        reminder_sent_at: datetime,
        requires_review: bool,
    ) -> None:
        payment = self.db.get(Payment, payment_id)
        if payment is None:
            raise LookupError(f"payment not found: {payment_id}")
        payment.reminder_count = reminder_count
        payment.reminder_sent_at = reminder_sent_at
        payment.requires_review = requires_review
        self.db.flush()

    # 조회 (리포트)

    def list_overdue_payments(self, organization_id: uuid.UUID, today: date) -> Sequence[Payment]:
        return self.db.scalars(
            select(Payment)
            .where(Payment.organization_id == organization_id)
            .where(Payment.status.in_(list(OPEN_PAYMENT_STATUSES)))
            .where(Payment.due_date < today)
            .order_by(Payment.due_date)
        ).all()

    def list_payments_for_month(self, organization_id: uuid.UUID, year_month: str) -> Sequence[Payment]:
        # 인보이스 번호의 YYYYMM 기준
        return self.db.scalars(
            select(Payment)
            .where(Payment.organization_id == organization_id)
            .where(Payment.invoice_number.like(f"INV-%-{year_month}-%"))
            .order_by(Payment.invoice_number)
        ).all()

    def find_member_by_email(self, organization_id: uuid.UUID, email: str) -> Member | None:
        return self.db.scalar(
            select(Member).where(Member.organization_id == organization_id, Member.email == email)
        )

    def membership_for_member(self, member_id: uuid.UUID) -> Membership | None:
        return self.db.scalar(select(Membership).where(Membership.member_id == member_id))

    def commit(self) -> None:
        self.db.commit()

    def rollback(self) -> None:
        self.db.rollback()
