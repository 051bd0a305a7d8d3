"""
memberships.py

관리자 전용 회원권(Membership) API 모음.

주요 기능:
- 회원권 조회 / 자격(eligibility) 현황 조회
- 약정서 발송 / 서명 처리 (서명 시 활성화 조건 충족하면 활성화)
- 관리자 강제 상태 변경 (감사 로그 필수)
- 청구 주기 변경 (감사 로그 필수)

설계 원칙:
- 강제 상태 변경은 상태 그래프를 무시하지만 변경 전/후 상태와 사유를 기록

"""

import uuid

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.core.deps import AdminPrincipal, get_current_admin, get_db, get_notifier, get_store
from app.core.exceptions import BillingError
from app.db.store import SqlAlchemyBillingStore
from app.models.admin_log import AdminAction
from app.schemas.memberships import (
    AgreementSentResponse,
    ChangeFrequencyRequest,
    ChangeFrequencyResponse,
    EligibilityResponse,
    MembershipResponse,
    StatusOverrideRequest,
)
from app.services.admin_log import write_admin_log
from app.services.billing_config import load_billing_config
from app.services.billing_dates import today_in_timezone
from app.services.memberships import (
    change_billing_frequency,
    eligibility_summary,
    get_membership_for_org,
    mark_agreement_sent,
    mark_agreement_signed,
    override_status,
)
from app.services.notifications import Notifier

router = APIRouter(prefix="/admin/memberships", tags=["admin-memberships"])


def _organization(store: SqlAlchemyBillingStore, admin: AdminPrincipal):
    org = store.get_organization(admin.organization_id)
    if org is None:
        raise HTTPException(status_code=404, detail="Organization not found")
    return org


@router.get("/{membership_id}", response_model=MembershipResponse)
def get_membership(
    membership_id: uuid.UUID,
    store: SqlAlchemyBillingStore = Depends(get_store),
    admin: AdminPrincipal = Depends(get_current_admin),
):
    try:
        return get_membership_for_org(store, admin.organization_id, membership_id)
    except BillingError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.get("/{membership_id}/eligibility", response_model=EligibilityResponse)
def get_eligibility(
    membership_id: uuid.UUID,
    store: SqlAlchemyBillingStore = Depends(get_store),
    admin: AdminPrincipal = Depends(get_current_admin),
):
    org = _organization(store, admin)
    try:
        membership = get_membership_for_org(store, org.id, membership_id)
        return eligibility_summary(membership, load_billing_config(org))
    except BillingError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


"""
약정서 발송 처리 API

- pending 회원권은 awaiting_signature로 전환
- 발송 메일 실패는 side_effects.failed로 보고 (발송 기록은 유지)

"""
@router.post("/{membership_id}/agreement/sent", response_model=AgreementSentResponse)
def agreement_sent(
    membership_id: uuid.UUID,
    db: Session = Depends(get_db),
    store: SqlAlchemyBillingStore = Depends(get_store),
    notifier: Notifier = Depends(get_notifier),
    admin: AdminPrincipal = Depends(get_current_admin),
):
    try:
        membership = get_membership_for_org(store, admin.organization_id, membership_id)
        before = membership.status.value

        report = mark_agreement_sent(store, membership, notifier=notifier)
        write_admin_log(
            db,
            organization_id=admin.organization_id,
            actor_id=admin.user_id,
            action=AdminAction.AGREEMENT_SENT,
            target_type="membership",
            target_id=membership_id,
            before_status=before,
            after_status=membership.status.value,
        )
        db.commit()
        db.refresh(membership)
        return {"membership": membership, "side_effects": {"succeeded": report.succeeded, "failed": report.failed}}
    except BillingError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=str(e))
    except Exception:
        db.rollback()
        raise


"""
약정서 서명 처리 API

- 가입비 해결 + 1개월 이상 납부 상태면 waiting_period / current로 활성화
- 조건이 안 되면 서명 시각만 기록

"""
@router.post("/{membership_id}/agreement/signed", response_model=MembershipResponse)
def agreement_signed(
    membership_id: uuid.UUID,
    db: Session = Depends(get_db),
    store: SqlAlchemyBillingStore = Depends(get_store),
    admin: AdminPrincipal = Depends(get_current_admin),
):
    org = _organization(store, admin)
    try:
        membership = get_membership_for_org(store, org.id, membership_id)
        before = membership.status.value

        mark_agreement_signed(
            store,
            membership,
            config=load_billing_config(org),
            today=today_in_timezone(org.timezone),
        )
        write_admin_log(
            db,
            organization_id=org.id,
            actor_id=admin.user_id,
            action=AdminAction.AGREEMENT_SIGNED,
            target_type="membership",
            target_id=membership_id,
            before_status=before,
            after_status=membership.status.value,
        )
        db.commit()
        db.refresh(membership)
        return membership
    except BillingError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=str(e))
    except Exception:
        db.rollback()
        raise


"""
관리자 강제 상태 변경 API

- 상태 그래프와 무관하게 변경 (예: lapsed -> current)
- 사유(reason)는 필수, 감사 로그에 기록

"""
@router.post("/{membership_id}/status", response_model=MembershipResponse)
def change_status(
    membership_id: uuid.UUID,
    body: StatusOverrideRequest,
    db: Session = Depends(get_db),
    store: SqlAlchemyBillingStore = Depends(get_store),
    admin: AdminPrincipal = Depends(get_current_admin),
):
    org = _organization(store, admin)
    try:
        membership = get_membership_for_org(store, org.id, membership_id)
        before = override_status(store, membership, body.status, today=today_in_timezone(org.timezone))
        write_admin_log(
            db,
            organization_id=org.id,
            actor_id=admin.user_id,
            action=AdminAction.OVERRIDE_STATUS,
            target_type="membership",
            target_id=membership_id,
            before_status=before.value,
            after_status=body.status.value,
            detail={"reason": body.reason},
        )
        db.commit()
        db.refresh(membership)
        return membership
    except BillingError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=str(e))
    except Exception:
        db.rollback()
        raise


"""
청구 주기 변경 API

- monthly / biannual / annual 중 하나로 변경
- 이미 생성된 결제는 유지, 다음 정기 청구부터 새 주기 적용
- 같은 주기면 400, 해지된 회원권이면 409

"""
@router.post("/{membership_id}/frequency", response_model=ChangeFrequencyResponse)
def change_frequency(
    membership_id: uuid.UUID,
    body: ChangeFrequencyRequest,
    db: Session = Depends(get_db),
    store: SqlAlchemyBillingStore = Depends(get_store),
    admin: AdminPrincipal = Depends(get_current_admin),
):
    try:
        membership = get_membership_for_org(store, admin.organization_id, membership_id)
        before = change_billing_frequency(store, membership, body.billing_frequency)
        write_admin_log(
            db,
            organization_id=admin.organization_id,
            actor_id=admin.user_id,
            action=AdminAction.CHANGE_FREQUENCY,
            target_type="membership",
            target_id=membership_id,
            detail={"before": before.value, "after": body.billing_frequency.value},
        )
        db.commit()
        db.refresh(membership)
        return {
            "membership": membership,
            "previous_frequency": before,
            "new_frequency": membership.billing_frequency,
        }
    except BillingError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=str(e))
    except Exception:
        db.rollback()
        raise
