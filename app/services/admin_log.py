"""
services/admin_log.py

관리자 행위 로그 기록 서비스.

이 파일은 관리자(Admin)가 수행한 청구 관련 행위를
AdminActionLog 테이블에 기록하는 역할을 담당한다.

라우터에서 호출되며,
로그 기록 자체는 DB에만 영향을 주고
비즈니스 흐름에는 개입하지 않는다.

"""

import uuid

from sqlalchemy.orm import Session

from app.models.admin_log import AdminAction, AdminActionLog


"""
관리자 행위 로그 기록 함수

- organization_id : 행위가 일어난 기관
- actor_id        : 행위를 수행한 관리자 ID
- action          : 수행된 관리자 행위 유형
- target_type     : 대상 레코드 종류 (payment / membership / application / plan / organization)
- target_id       : 대상 레코드 ID (선택)
- before_status   : 변경 전 상태 (선택)
- after_status    : 변경 후 상태 (선택)
- detail          : 부가 정보 dict (선택)

NOTE:
- db.commit()은 호출 측(라우터)에서 수행

"""
def write_admin_log(
    db: Session,
    *,
    organization_id: uuid.UUID,
    actor_id: str,
    action: AdminAction,
    target_type: str,
    target_id: uuid.UUID | None = None,
    before_status: str | None = None,
    after_status: str | None = None,
    detail: dict | None = None,
) -> AdminActionLog:
    log = AdminActionLog(
        organization_id=organization_id,
        actor_id=actor_id,
        action=action,
        target_type=target_type,
        target_id=target_id,
        before_status=before_status,
        after_status=after_status,
        detail=detail,
    )
    db.add(log)
    return log
