"""
billing.py

관리자 전용 청구 배치 / 설정 API 모음.

주요 기능:
- 기관 정기 청구 배치 실행 (dry_run 지원)
- 미납 리마인더 배치 실행
- 기관 청구 설정(BillingConfig) 조회
- 수수료 계산 미리보기
- 기관 수수료 설정 변경 (감사 로그)

설계 원칙:
- 모든 엔드포인트는 관리자 권한(get_current_admin)을 요구
- 기관은 토큰의 org_id로만 결정 (다른 기관 데이터 접근 불가)
- 비즈니스 로직은 service 계층에 위임하고
  BillingError는 status_code 그대로 HTTPException으로 변환

관련 파일:
- app.services.billing_run    : 정기 청구 배치
- app.services.reminders      : 리마인더 배치
- app.services.fees           : 수수료 계산
- app.services.organizations  : 수수료 설정 변경

"""

from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.core.deps import (
    AdminPrincipal,
    get_current_admin,
    get_db,
    get_fee_schedule,
    get_notifier,
    get_store,
)
from app.core.exceptions import BillingError
from app.db.store import SqlAlchemyBillingStore
from app.models.admin_log import AdminAction
from app.schemas.billing import (
    BillingConfigResponse,
    BillingRunRequest,
    BillingRunResponse,
    FeeBreakdownResponse,
    FeePreviewRequest,
    FeeSettingsRequest,
    FeeSettingsResponse,
    ReminderRunRequest,
    ReminderRunResponse,
)
from app.services.admin_log import write_admin_log
from app.services.billing_config import load_billing_config
from app.services.billing_run import process_recurring_billing
from app.services.fees import ProcessorFeeSchedule, calculate_fees, platform_fee_for
from app.services.notifications import Notifier
from app.services.organizations import fee_settings_snapshot, update_fee_settings
from app.services.reminders import process_organization_reminders

router = APIRouter(prefix="/admin/billing", tags=["admin-billing"])


def _organization(store: SqlAlchemyBillingStore, admin: AdminPrincipal):
    org = store.get_organization(admin.organization_id)
    if org is None:
        raise HTTPException(status_code=404, detail="Organization not found")
    return org


"""
정기 청구 배치 실행 API

- 다음 납부일이 billing_date(기본: 기관 timezone 기준 오늘) 이전인 회원권에 인보이스 생성
- dry_run=True면 생성 없이 건수만 반환
- 회원권별 실패는 errors에 담겨 200으로 반환

"""
@router.post("/run", response_model=BillingRunResponse)
def run_billing(
    body: BillingRunRequest,
    db: Session = Depends(get_db),
    store: SqlAlchemyBillingStore = Depends(get_store),
    schedule: ProcessorFeeSchedule = Depends(get_fee_schedule),
    admin: AdminPrincipal = Depends(get_current_admin),
):
    org = _organization(store, admin)
    try:
        result = process_recurring_billing(
            store,
            org.id,
            load_billing_config(org),
            billing_date=body.billing_date,
            dry_run=body.dry_run,
            fee_schedule=schedule,
        )
        return asdict(result)
    except BillingError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=str(e))
    except Exception:
        db.rollback()
        raise


"""
리마인더 배치 실행 API

- today를 주면 그 날짜 기준으로 리마인더 조건을 판단 (재실행/테스트용)

"""
@router.post("/reminders/run", response_model=ReminderRunResponse)
def run_reminders(
    body: ReminderRunRequest,
    db: Session = Depends(get_db),
    store: SqlAlchemyBillingStore = Depends(get_store),
    notifier: Notifier = Depends(get_notifier),
    admin: AdminPrincipal = Depends(get_current_admin),
):
    org = _organization(store, admin)
    try:
        result = process_organization_reminders(
            store,
            org.id,
            load_billing_config(org),
            today=body.today,
            notifier=notifier,
        )
        return asdict(result)
    except BillingError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.get("/config", response_model=BillingConfigResponse)
def get_billing_config(
    store: SqlAlchemyBillingStore = Depends(get_store),
    admin: AdminPrincipal = Depends(get_current_admin),
):
    org = _organization(store, admin)
    try:
        return load_billing_config(org).to_dict()
    except BillingError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


"""
수수료 계산 미리보기 API

- platform_fee_dollars / pass_fees_to_member를 주지 않으면 기관 설정 사용
- DB 변경 없음

"""
@router.post("/fees/preview", response_model=FeeBreakdownResponse)
def preview_fees(
    body: FeePreviewRequest,
    store: SqlAlchemyBillingStore = Depends(get_store),
    schedule: ProcessorFeeSchedule = Depends(get_fee_schedule),
    admin: AdminPrincipal = Depends(get_current_admin),
):
    org = _organization(store, admin)
    try:
        platform_fee = body.platform_fee_dollars
        if platform_fee is None:
            platform_fee = platform_fee_for(org.platform_fees, body.frequency)

        pass_through = body.pass_fees_to_member
        if pass_through is None:
            pass_through = org.pass_fees_to_member

        return asdict(calculate_fees(body.base_amount_cents, platform_fee, pass_through, schedule=schedule))
    except BillingError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


"""
수수료 설정 변경 API

- pass_fees_to_member / platform_fees 중 준 값만 변경
- platform_fees는 주기별 부분 변경 가능 (나머지 주기는 기존 값 유지)
- 변경 전/후 설정을 감사 로그 detail에 기록

"""
@router.patch("/fee-settings", response_model=FeeSettingsResponse)
def update_fee_settings_route(
    body: FeeSettingsRequest,
    db: Session = Depends(get_db),
    store: SqlAlchemyBillingStore = Depends(get_store),
    admin: AdminPrincipal = Depends(get_current_admin),
):
    org = _organization(store, admin)
    try:
        before = update_fee_settings(
            store,
            org,
            pass_fees_to_member=body.pass_fees_to_member,
            platform_fees=body.platform_fees,
        )
        after = fee_settings_snapshot(org)
        write_admin_log(
            db,
            organization_id=org.id,
            actor_id=admin.user_id,
            action=AdminAction.UPDATE_FEE_SETTINGS,
            target_type="organization",
            target_id=org.id,
            detail={"before": before, "after": after},
        )
        db.commit()
        db.refresh(org)
        return fee_settings_snapshot(org)
    except BillingError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=str(e))
    except Exception:
        db.rollback()
        raise
