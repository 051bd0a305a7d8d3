"""
config.py

애플리케이션 전역 설정(Configuration) 관리 파일.

이 파일은 .env 환경 변수들을 Pydantic BaseSettings를 통해 로드하여
애플리케이션 전반에서 공통으로 사용하는 설정 값을 제공한다.

주요 설정 항목:
- 데이터베이스 연결 정보
- 관리자 JWT 검증용 시크릿
- 결제대행사(processor) 수수료 정책 (퍼센트 + 고정 금액)
- 기관 timezone 기본값, 로그 레벨
- CORS 허용 도메인 목록

설계 원칙:
- 모든 환경 변수는 이 파일을 통해서만 접근
- 청구(billing) 코어 함수는 settings를 직접 읽지 않고
  라우터/스크립트가 값을 꺼내서 인자로 넘겨준다

관련 파일:
- app.main               : CORS / 로깅 초기화 시 설정 사용
- app.core.security      : JWT 시크릿 / 만료 설정 사용
- app.core.deps          : 수수료 정책(ProcessorFeeSchedule) 생성
- app.db.session         : DATABASE_URL 사용

"""

from decimal import Decimal
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


# .env 파일에 정의된 환경 변수를 로드하는 설정 클래스
# extra="ignore" 옵션으로 정의되지 않은 환경 변수는 무시
class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    DATABASE_URL: str
    TEST_DATABASE_URL: str | None = None

    # 토큰은 외부 인증 서비스가 발급, 여기서는 검증만 한다
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30

    # 결제대행사 수수료: 2.9% + 30 cents
    PROCESSOR_FEE_PERCENT: Decimal = Decimal("0.029")
    PROCESSOR_FEE_FIXED_CENTS: int = 30

    DEFAULT_TIMEZONE: str = "America/Los_Angeles"
    LOG_LEVEL: str = "INFO"

    # CORS 허용 도메인 (관리자 대시보드 주소)
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]


# 애플리케이션 전역에서 import하여 사용하는 Settings 인스턴스
# 실행 시 한 번만 생성됨
settings = Settings()
