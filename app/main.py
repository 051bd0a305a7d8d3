"""
main.py

멤버십 청구 서비스의 FastAPI 앱 조립 파일.

uvicorn이 `app.main:app`을 로드하면:
1. 설정(settings)의 LOG_LEVEL로 로깅을 초기화하고
2. 관리자 대시보드에서 호출할 수 있도록 CORS를 열고
3. 청구 / 결제 / 회원권 / 재가입 신청 / 요금제 라우터를 붙인다

라우터 밖으로 새어 나온 BillingError도 status_code 그대로 응답한다.
정기 청구와 리마인더는 HTTP가 아니라 scripts/ 의 cron 작업이 주로 실행한다.

관련 파일:
- app.core.config        : 환경 변수 및 설정 로드
- app.core.logging       : 로깅 포맷 / 레벨 설정
- app.core.exceptions    : 청구 예외 계층 (status_code 포함)
- app.routers.*          : 관리자 API 라우터

"""

import logging

from fastapi import FastAPI, Depends, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from sqlalchemy import text

from app.core.config import settings
from app.core.deps import get_db
from app.core.exceptions import BillingError
from app.core.logging import configure_logging
from app.routers import applications, billing, memberships, payments, plans

configure_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

app = FastAPI(title="Membership Billing")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(billing.router)
app.include_router(payments.router)
app.include_router(memberships.router)
app.include_router(applications.router)
app.include_router(plans.router)


@app.exception_handler(BillingError)
def billing_error_handler(request: Request, exc: BillingError):
    logger.warning("unhandled billing error path=%s status=%s: %s", request.url.path, exc.status_code, exc)
    return JSONResponse(status_code=exc.status_code, content={"detail": str(exc)})


"""
프로세스 생존 확인 (로드밸런서용, 인증 없음)

"""
@app.get("/health")
def health():
    return {"status": "ok", "service": "membership-billing"}


"""
DB 연결 확인

- SELECT 1 로 커넥션을 실제로 사용해 본다
- 어떤 DB에 붙어 있는지(dialect)도 같이 반환

"""
@app.get("/db-ping")
def db_ping(db: Session = Depends(get_db)):
    value = db.execute(text("SELECT 1")).scalar_one()
    return {"db": "ok", "value": value, "dialect": db.get_bind().dialect.name}
