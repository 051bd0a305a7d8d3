"""

admin_log.py

관리자(Admin) 행위 기록(Audit Log) 모델 정의 파일.

이 파일은 관리자에 의해 수행된 청구 관련 행위
(결제 수동 기록, 정산, 실패 처리, 리마인더 발송,
재가입 신청 승인/거절, 회원권 상태 강제 변경,
수수료 설정 변경, 청구 주기 변경, 플랜 활성 토글 등)를
DB에 영구적으로 기록하기 위한 로그 테이블을 정의한다.

설계 원칙:
- 실제 데이터 변경과 로그 기록을 분리
- 로그 데이터는 수정/삭제하지 않는 것을 전제로 설계
- actor(행위자)와 target(대상 레코드)을 명확히 구분

"""

import uuid
from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import JSON, DateTime, Enum as SAEnum, ForeignKey, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base



#  관리자 행위 유형 Enum

class AdminAction(str, Enum):
    RECORD_PAYMENT = "RECORD_PAYMENT"
    SETTLE_PAYMENT = "SETTLE_PAYMENT"
    FAIL_PAYMENT = "FAIL_PAYMENT"
    SEND_REMINDER = "SEND_REMINDER"
    APPROVE_APPLICATION = "APPROVE_APPLICATION"
    REJECT_APPLICATION = "REJECT_APPLICATION"
    OVERRIDE_STATUS = "OVERRIDE_STATUS"
    AGREEMENT_SENT = "AGREEMENT_SENT"
    AGREEMENT_SIGNED = "AGREEMENT_SIGNED"
    UPDATE_FEE_SETTINGS = "UPDATE_FEE_SETTINGS"
    CHANGE_FREQUENCY = "CHANGE_FREQUENCY"
    TOGGLE_PLAN = "TOGGLE_PLAN"


"""
관리자 행위 로그 모델

- actor_id       : 행위를 수행한 관리자 ID (외부 인증 서비스의 sub)
- target_type    : 대상 레코드 종류 (payment / membership / application / plan / organization)
- target_id      : 대상 레코드 ID
- action         : 수행된 관리자 행위 유형
- before_status  : 변경 전 상태
- after_status   : 변경 후 상태
- detail         : 부가 정보 (금액, 사유 등)
- created_at     : 행위 발생 시각 (UTC)

"""

class AdminActionLog(Base):
    __tablename__ = "admin_action_logs"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    organization_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    actor_id: Mapped[str] = mapped_column(String(100), nullable=False)

    action: Mapped[AdminAction] = mapped_column(SAEnum(AdminAction, name="admin_action"), nullable=False)

    target_type: Mapped[str] = mapped_column(String(30), nullable=False)
    target_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)

    before_status: Mapped[str | None] = mapped_column(String(30), nullable=True)
    after_status: Mapped[str | None] = mapped_column(String(30), nullable=True)

    detail: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False
    )
