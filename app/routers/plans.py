"""
plans.py

관리자 전용 요금제(Plan) API.

- 플랜 조회
- 활성/비활성 토글 (감사 로그 필수)

가격 변경 API는 없다 (참조된 플랜은 토글만 허용).

"""

import uuid

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.core.deps import AdminPrincipal, get_current_admin, get_db, get_store
from app.core.exceptions import BillingError
from app.db.store import SqlAlchemyBillingStore
from app.models.admin_log import AdminAction
from app.schemas.plans import PlanResponse
from app.services.admin_log import write_admin_log
from app.services.plans import get_plan_for_org, toggle_plan

router = APIRouter(prefix="/admin/plans", tags=["admin-plans"])


def _state(active: bool) -> str:
    return "active" if active else "inactive"


@router.get("/{plan_id}", response_model=PlanResponse)
def get_plan(
    plan_id: uuid.UUID,
    store: SqlAlchemyBillingStore = Depends(get_store),
    admin: AdminPrincipal = Depends(get_current_admin),
):
    try:
        return get_plan_for_org(store, admin.organization_id, plan_id)
    except BillingError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


"""
플랜 활성/비활성 토글 API

- 다른 기관의 플랜이면 404
- 비활성이어도 기존 회원권은 계속 이 플랜 금액으로 청구

"""
@router.post("/{plan_id}/toggle", response_model=PlanResponse)
def toggle(
    plan_id: uuid.UUID,
    db: Session = Depends(get_db),
    store: SqlAlchemyBillingStore = Depends(get_store),
    admin: AdminPrincipal = Depends(get_current_admin),
):
    try:
        plan = get_plan_for_org(store, admin.organization_id, plan_id)
        before = plan.is_active
        after = toggle_plan(store, plan)
        write_admin_log(
            db,
            organization_id=admin.organization_id,
            actor_id=admin.user_id,
            action=AdminAction.TOGGLE_PLAN,
            target_type="plan",
            target_id=plan_id,
            before_status=_state(before),
            after_status=_state(after),
        )
        db.commit()
        db.refresh(plan)
        return plan
    except BillingError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=str(e))
    except Exception:
        db.rollback()
        raise
