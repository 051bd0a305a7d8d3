"""
session.py

DATABASE_URL로 Engine을 만들고 SessionLocal 팩토리를 제공한다.

- API 요청: app.core.deps.get_db 가 요청마다 세션을 열고 닫는다
- cron 스크립트(scripts/run_billing.py, run_reminders.py): SessionLocal()을 직접 연다

운영은 PostgreSQL, 로컬/테스트는 sqlite도 허용한다.

"""

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.core.config import settings


def _connect_args(url: str) -> dict:
    # sqlite는 요청 스레드와 생성 스레드가 달라도 쓰도록 허용
    if url.startswith("sqlite"):
        return {"check_same_thread": False}
    return {}


# 유휴 커넥션이 끊긴 경우를 대비해 pre_ping
engine = create_engine(
    settings.DATABASE_URL,
    pool_pre_ping=True,
    connect_args=_connect_args(settings.DATABASE_URL),
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
