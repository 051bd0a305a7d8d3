import uuid
from dataclasses import dataclass
from typing import Generator

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.security import decode_access_token
from app.db.session import SessionLocal
from app.db.store import SqlAlchemyBillingStore
from app.services.fees import ProcessorFeeSchedule
from app.services.notifications import LoggingNotifier, Notifier

# Swagger Authorize에서 "Bearer 토큰" 입력받는 스키마
bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class AdminPrincipal:
    user_id: str
    organization_id: uuid.UUID
    role: str


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_store(db: Session = Depends(get_db)) -> SqlAlchemyBillingStore:
    return SqlAlchemyBillingStore(db)


def get_fee_schedule() -> ProcessorFeeSchedule:
    return ProcessorFeeSchedule(
        percent=settings.PROCESSOR_FEE_PERCENT,
        fixed_cents=settings.PROCESSOR_FEE_FIXED_CENTS,
    )


def get_notifier() -> Notifier:
    return LoggingNotifier()


def get_current_admin(
    cred: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> AdminPrincipal:
    if cred is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        payload = decode_access_token(cred.credentials)
        # 기관 ID가 UUID라서 변환
        organization_id = uuid.UUID(payload["org_id"])
    except (JWTError, ValueError):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    role = payload.get("role")
    if role != "admin":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Requires admin role",
        )

    return AdminPrincipal(user_id=payload["sub"], organization_id=organization_id, role=role)
