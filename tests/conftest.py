import os
import tempfile

# Settings()가 import 시점에 필수 값을 읽으므로 app import 전에 기본값 지정
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.main import app as fastapi_app
from app.core.config import settings
from app.core.deps import get_db
from app.db.base import Base
from app.db.store import SqlAlchemyBillingStore

# ✅ 모델 import (Base.metadata에 테이블 등록)
import app.models.organization  # noqa: F401
import app.models.plan  # noqa: F401
import app.models.member  # noqa: F401
import app.models.membership  # noqa: F401
import app.models.payment  # noqa: F401
import app.models.application  # noqa: F401
import app.models.admin_log  # noqa: F401

from tests.helpers import admin_token, create_organization


# TEST_DATABASE_URL이 없으면 임시 sqlite 파일 사용
TEST_DB_URL = (
    getattr(settings, "TEST_DATABASE_URL", None)
    or os.getenv("TEST_DATABASE_URL")
    or f"sqlite:///{os.path.join(tempfile.gettempdir(), f'membership_billing_test_{os.getpid()}.db')}"
)

_connect_args = {"check_same_thread": False} if TEST_DB_URL.startswith("sqlite") else {}
engine = create_engine(TEST_DB_URL, pool_pre_ping=True, connect_args=_connect_args)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(scope="session", autouse=True)
def setup_test_db():
    """테스트 전체 시작/종료 때만 스키마 생성/삭제"""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(autouse=True)
def clean_tables():
    """각 테스트마다 데이터 초기화 (테이블은 유지, row만 삭제)"""
    yield
    # FK 의존성 역순으로 삭제
    with engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            conn.execute(table.delete())


@pytest.fixture()
def db():
    """테스트에서 직접 DB 조작할 때 쓰는 세션"""
    session = TestingSessionLocal()
    try:
        yield session
        session.commit()
    finally:
        session.close()


@pytest.fixture()
def store(db):
    return SqlAlchemyBillingStore(db)


@pytest.fixture()
def client():
    fastapi_app.dependency_overrides[get_db] = override_get_db
    with TestClient(fastapi_app) as c:
        yield c
    fastapi_app.dependency_overrides.clear()


@pytest.fixture()
def org(db):
    return create_organization(db)


@pytest.fixture()
def token(org):
    return admin_token(org)
