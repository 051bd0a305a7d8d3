"""
services/store.py

청구 코어가 사용하는 영속성(persistence) 인터페이스.

청구 코어(invoice / settlement / reminders / billing_run)는
SQLAlchemy Session을 직접 만지지 않고 이 Protocol에만 의존한다.
실제 구현은 app.db.store.SqlAlchemyBillingStore,
테스트에서는 메모리 기반 가짜 구현을 넣을 수 있다.

원자성이 필요한 두 연산:
- reserve_invoice_sequence : 증가 후 반환을 하나의 문장으로 수행
- claim_payment            : status IN (pending, failed) 조건부 UPDATE,
                             다른 워커가 먼저 처리했으면 False

"""

import uuid
from datetime import date, datetime
from typing import Protocol, Sequence

from app.models.member import Member
from app.models.membership import Membership, MembershipStatus
from app.models.organization import Organization
from app.models.payment import Payment, PaymentMethod
from app.models.plan import Plan


class BillingStore(Protocol):
    def get_organization(self, organization_id: uuid.UUID) -> Organization | None: ...

    def list_active_organizations(self) -> Sequence[Organization]: ...

    def update_organization(self, organization_id: uuid.UUID, values: dict) -> None: ...

    def reserve_invoice_sequence(self, organization_id: uuid.UUID, year_month: str) -> int: ...

    def get_plan(self, plan_id: uuid.UUID) -> Plan | None: ...

    def update_plan(self, plan_id: uuid.UUID, values: dict) -> None: ...

    def get_member(self, member_id: uuid.UUID) -> Member | None: ...

    def get_membership(self, membership_id: uuid.UUID) -> Membership | None: ...

    def update_membership(self, membership_id: uuid.UUID, values: dict) -> None: ...

    def list_memberships_by_status(
        self,
        organization_id: uuid.UUID,
        statuses: Sequence[MembershipStatus],
        due_on_or_before: date,
    ) -> Sequence[Membership]: ...

    def get_payment(self, payment_id: uuid.UUID) -> Payment | None: ...

    def add_payment(self, payment: Payment) -> Payment: ...

    def has_open_invoice(self, membership_id: uuid.UUID, due_date: date) -> bool: ...

    def claim_payment(
        self,
        payment_id: uuid.UUID,
        *,
        method: PaymentMethod,
        paid_at: datetime,
        notes: str | None,
        recorded_by: str | None,
        processor_payment_id: str | None,
    ) -> bool: ...

    def mark_payment_failed(self, payment_id: uuid.UUID, failed_at: datetime) -> bool: ...

    def list_reminder_candidates(
        self,
        organization_id: uuid.UUID,
        due_on_or_before: date,
        max_reminders: int,
    ) -> Sequence[Payment]: ...

    def record_reminder(
        self,
        payment_id: uuid.UUID,
        *,
        reminder_count: int,
        reminder_sent_at: datetime,
        requires_review: bool,
    ) -> None: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...
