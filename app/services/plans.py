"""
services/plans.py

요금제(Plan) 활성/비활성 토글.

회원권에서 참조되는 플랜은 가격을 바꾸지 않으므로 관리자가 할 수 있는 변경은 토글뿐이다.
비활성 플랜도 기존 회원권의 정기 청구에는 그대로 쓰인다.

"""

import logging
import uuid

from app.core.exceptions import NotFoundError
from app.models.plan import Plan
from app.services.store import BillingStore

logger = logging.getLogger(__name__)


def get_plan_for_org(store: BillingStore, organization_id: uuid.UUID, plan_id: uuid.UUID) -> Plan:
    plan = store.get_plan(plan_id)
    if plan is None or plan.organization_id != organization_id:
        raise NotFoundError("Plan not found")
    return plan


def toggle_plan(store: BillingStore, plan: Plan) -> bool:
    """is_active를 뒤집고 변경 후 값을 반환."""
    active = not plan.is_active
    store.update_plan(plan.id, {"is_active": active})
    logger.info("plan toggled plan=%s active=%s", plan.id, active)
    return active
