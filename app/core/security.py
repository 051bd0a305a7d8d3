"""
security.py

관리자 JWT 토큰 생성/검증 유틸리티.

로그인/비밀번호/Refresh Token은 외부 인증 서비스가 담당하고,
이 서비스는 그 서비스가 발급한 Access Token을 검증만 한다.
토큰 생성 함수는 스크립트와 테스트에서 토큰을 만들 때 사용한다.

토큰 payload:
- sub    : 관리자 사용자 ID
- org_id : 관리자가 속한 기관(organization) ID  -> 테넌트 경계
- role   : "admin" 이어야 관리자 API 접근 가능
- type   : "access"
- exp    : 만료 시각 (UTC timestamp)

관련 파일:
- app.core.config        : JWT 시크릿 키 및 만료 설정
- app.core.deps          : 토큰을 실제로 검증하는 인증 의존성

"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import jwt, JWTError

from app.core.config import settings


"""
Access Token 생성 함수

- subject(sub): 관리자 사용자 ID
- organization_id(org_id): 관리자 소속 기관
- exp: 만료 시각 (UTC timestamp)

"""

def create_access_token(
    subject: str,
    organization_id: str,
    role: str = "admin",
    expires_delta: Optional[timedelta] = None,
) -> str:
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    payload = {
        "sub": subject,
        "org_id": organization_id,
        "role": role,
        "type": "access",
        "exp": int(expire.timestamp()),
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


"""
Access Token 디코딩 및 검증 함수

- 서명 / 만료 검증
- access 타입이 아니거나 sub, org_id가 없으면 JWTError 발생

"""

def decode_access_token(token: str) -> dict:
    payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    if payload.get("type") and payload.get("type") != "access":
        raise JWTError("Not an access token")
    if not payload.get("sub") or not payload.get("org_id"):
        raise JWTError("Missing subject or organization")
    return payload
