"""
services/applications.py

재가입 신청(ReturningApplication) 승인/거절 로직.

승인 흐름:
1. 신청서 조회 (다른 기관 / 없음 -> NotFound, 이미 처리됨 -> Conflict)
2. Member(없으면 생성) + Membership 생성 후 commit
3. 조건부 UPDATE (WHERE status = 'pending')로 신청서를 approved로 선점
   - 다른 관리자가 먼저 처리했으면 2에서 만든 레코드를 삭제하고 Conflict
4. 환영 메일 등 부가 작업은 실패해도 승인은 유지 (SideEffectReport로 보고)

"""

import logging
import uuid
from datetime import date, datetime, timezone

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from app.core.exceptions import ConflictError, NotFoundError
from app.models.application import ApplicationStatus, ReturningApplication
from app.models.member import Member
from app.models.membership import Membership, MembershipStatus
from app.models.plan import Plan
from app.services.billing_dates import first_due_date, is_last_day_of_month
from app.services.notifications import Notifier, SideEffectReport, run_side_effects

logger = logging.getLogger(__name__)


def get_application_for_org(db: Session, organization_id: uuid.UUID, application_id: uuid.UUID) -> ReturningApplication:
    application = db.get(ReturningApplication, application_id)
    if application is None or application.organization_id != organization_id:
        raise NotFoundError("Application not found")
    return application


def _ensure_pending(application: ReturningApplication) -> None:
    if application.status != ApplicationStatus.PENDING:
        raise ConflictError(f"application already {application.status.value}")


def _claim(db: Session, application_id: uuid.UUID, values: dict) -> bool:
    res = db.execute(
        update(ReturningApplication)
        .where(ReturningApplication.id == application_id)
        .where(ReturningApplication.status == ApplicationStatus.PENDING)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    return res.rowcount == 1


def approve_application(
    db: Session,
    organization_id: uuid.UUID,
    application_id: uuid.UUID,
    *,
    reviewer_id: str,
    notifier: Notifier,
    today: date,
) -> tuple[ReturningApplication, Membership, SideEffectReport]:
    application = get_application_for_org(db, organization_id, application_id)
    _ensure_pending(application)

    plan = db.get(Plan, application.plan_id)
    if plan is None or plan.organization_id != organization_id:
        raise NotFoundError("Plan not found")

    member = db.scalar(
        select(Member).where(Member.organization_id == organization_id, Member.email == application.email)
    )
    created_member = member is None
    if member is None:
        member = Member(
            organization_id=organization_id,
            first_name=application.first_name,
            last_name=application.last_name,
            email=application.email,
            phone=application.phone,
        )
        db.add(member)
        db.flush()
    elif db.scalar(select(Membership.id).where(Membership.member_id == member.id)) is not None:
        raise ConflictError("member already has a membership")

    membership = Membership(
        organization_id=organization_id,
        member_id=member.id,
        plan_id=plan.id,
        status=MembershipStatus.PENDING,
        billing_frequency=application.billing_frequency,
        billing_anniversary_day=today.day,
        bill_on_month_end=is_last_day_of_month(today),
        next_payment_due=first_due_date(today, today.day),
        paid_months=application.paid_months,
        enrollment_fee_status=application.enrollment_fee_status,
    )
    db.add(membership)
    db.commit()

    member_id, membership_id = member.id, membership.id

    claimed = _claim(
        db,
        application_id,
        {
            "status": ApplicationStatus.APPROVED,
            "reviewed_by": reviewer_id,
            "reviewed_at": datetime.now(timezone.utc),
            "member_id": member_id,
            "membership_id": membership_id,
        },
    )
    if not claimed:
        # 다른 관리자가 먼저 처리함: 이번 요청에서 만든 레코드 정리
        db.rollback()
        db.delete(db.get(Membership, membership_id))
        db.flush()
        if created_member:
            db.delete(db.get(Member, member_id))
        db.commit()
        logger.warning("application approval lost race application=%s", application_id)
        raise ConflictError("application was already processed")

    db.commit()
    db.refresh(application)
    logger.info("application approved application=%s membership=%s", application_id, membership_id)

    report = run_side_effects([("welcome_email", lambda: notifier.welcome(member, membership))])
    return application, membership, report


def reject_application(
    db: Session,
    organization_id: uuid.UUID,
    application_id: uuid.UUID,
    *,
    reviewer_id: str,
    reason: str | None = None,
) -> ReturningApplication:
    application = get_application_for_org(db, organization_id, application_id)
    _ensure_pending(application)

    claimed = _claim(
        db,
        application_id,
        {
            "status": ApplicationStatus.REJECTED,
            "reviewed_by": reviewer_id,
            "reviewed_at": datetime.now(timezone.utc),
            "rejection_reason": reason,
        },
    )
    if not claimed:
        db.rollback()
        raise ConflictError("application was already processed")

    logger.info("application rejected application=%s", application_id)
    return application
