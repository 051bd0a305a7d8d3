"""
applications.py

관리자 전용 재가입 신청(ReturningApplication) 승인/거절 API.

- 승인: 회원 + 회원권 생성, 환영 메일 (메일 실패는 side_effects로 보고)
- 거절: 사유 기록
- 동시에 두 관리자가 처리하면 한 명만 성공, 나머지는 409

"""

import uuid

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.core.deps import AdminPrincipal, get_current_admin, get_db, get_notifier, get_store
from app.core.exceptions import BillingError
from app.db.store import SqlAlchemyBillingStore
from app.models.admin_log import AdminAction
from app.models.application import ApplicationStatus
from app.schemas.applications import ApplicationResponse, ApprovalResponse, RejectRequest
from app.services.admin_log import write_admin_log
from app.services.applications import approve_application, reject_application
from app.services.billing_dates import today_in_timezone
from app.services.notifications import Notifier

router = APIRouter(prefix="/admin/returning-applications", tags=["admin-applications"])


@router.post("/{application_id}/approve", response_model=ApprovalResponse)
def approve(
    application_id: uuid.UUID,
    db: Session = Depends(get_db),
    store: SqlAlchemyBillingStore = Depends(get_store),
    notifier: Notifier = Depends(get_notifier),
    admin: AdminPrincipal = Depends(get_current_admin),
):
    org = store.get_organization(admin.organization_id)
    if org is None:
        raise HTTPException(status_code=404, detail="Organization not found")

    try:
        application, membership, report = approve_application(
            db,
            org.id,
            application_id,
            reviewer_id=admin.user_id,
            notifier=notifier,
            today=today_in_timezone(org.timezone),
        )
        write_admin_log(
            db,
            organization_id=org.id,
            actor_id=admin.user_id,
            action=AdminAction.APPROVE_APPLICATION,
            target_type="returning_application",
            target_id=application_id,
            before_status=ApplicationStatus.PENDING.value,
            after_status=ApplicationStatus.APPROVED.value,
            detail={"membership_id": str(membership.id), "failed_side_effects": sorted(report.failed)},
        )
        db.commit()
        db.refresh(application)
        db.refresh(membership)
        return {
            "application": application,
            "membership": membership,
            "side_effects": {"succeeded": report.succeeded, "failed": report.failed},
        }
    except BillingError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=str(e))
    except Exception:
        db.rollback()
        raise


@router.post("/{application_id}/reject", response_model=ApplicationResponse)
def reject(
    application_id: uuid.UUID,
    body: RejectRequest,
    db: Session = Depends(get_db),
    admin: AdminPrincipal = Depends(get_current_admin),
):
    try:
        application = reject_application(
            db,
            admin.organization_id,
            application_id,
            reviewer_id=admin.user_id,
            reason=body.reason,
        )
        write_admin_log(
            db,
            organization_id=admin.organization_id,
            actor_id=admin.user_id,
            action=AdminAction.REJECT_APPLICATION,
            target_type="returning_application",
            target_id=application_id,
            before_status=ApplicationStatus.PENDING.value,
            after_status=ApplicationStatus.REJECTED.value,
            detail={"reason": body.reason},
        )
        db.commit()
        db.refresh(application)
        return application
    except BillingError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=str(e))
    except Exception:
        db.rollback()
        raise
