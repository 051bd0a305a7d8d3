"""
base.py

청구 서비스 ORM 모델의 공통 declarative Base.

Organization / InvoiceSequence / Plan / Member / Membership / Payment /
ReturningApplication / AdminActionLog 가 모두 이 Base를 상속하므로
Base.metadata 하나에 전체 스키마가 모인다.
테스트(conftest)는 이 metadata로 테이블을 만들고 지운다.

"""

from sqlalchemy.orm import declarative_base

Base = declarative_base()
