"""
payments.py

관리자 전용 결제 관리 API 모음.

주요 기능:
- 결제 목록 / 단건 조회
- 현금 / 수표 / Zelle 등 수동 결제 기록 (기록 즉시 정산)
- 미정산 결제 정산, 실패 처리
- 수동 리마인더 발송
- 연체 결제 목록, 월별 인보이스 Excel(xlsx) 내보내기

설계 원칙:
- 모든 엔드포인트는 관리자 권한(get_current_admin)을 요구
- 다른 기관의 결제는 404로 응답
- 상태를 바꾸는 요청은 감사 로그(AdminActionLog)를 남긴다

관련 파일:
- app.services.payments    : 수동 결제 기록 / 실패 처리
- app.services.settlement  : 정산
- app.services.reminders   : 리마인더

"""

import io
import uuid
from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException, Query
from openpyxl import Workbook
from sqlalchemy import desc, select
from sqlalchemy.orm import Session
from starlette.responses import Response

from app.core.deps import AdminPrincipal, get_current_admin, get_db, get_notifier, get_store
from app.core.exceptions import BillingError
from app.db.store import SqlAlchemyBillingStore
from app.models.admin_log import AdminAction
from app.models.payment import Payment, PaymentStatus
from app.schemas.payments import (
    ManualPaymentRequest,
    OverduePaymentRow,
    PaymentResponse,
    PaymentWithSettlement,
    ReminderResponse,
    SettleRequest,
    SettlementResponse,
)
from app.services.admin_log import write_admin_log
from app.services.billing_config import load_billing_config
from app.services.billing_dates import days_between, today_in_timezone, validate_period
from app.services.notifications import Notifier
from app.services.payments import fail_payment, get_payment_for_org, record_manual_payment
from app.services.reminders import send_payment_reminder
from app.services.settlement import SettlementOutcome, settle_payment

router = APIRouter(prefix="/admin/payments", tags=["admin-payments"])


def _organization(store: SqlAlchemyBillingStore, admin: AdminPrincipal):
    org = store.get_organization(admin.organization_id)
    if org is None:
        raise HTTPException(status_code=404, detail="Organization not found")
    return org


@router.get("", response_model=list[PaymentResponse])
def list_payments(
    status: PaymentStatus | None = Query(None),
    membership_id: uuid.UUID | None = Query(None),
    db: Session = Depends(get_db),
    admin: AdminPrincipal = Depends(get_current_admin),
):
    stmt = select(Payment).where(Payment.organization_id == admin.organization_id)
    if status is not None:
        stmt = stmt.where(Payment.status == status)
    if membership_id is not None:
        stmt = stmt.where(Payment.membership_id == membership_id)
    return db.scalars(stmt.order_by(desc(Payment.created_at))).all()


"""
수동 결제 기록 API

- 인보이스 번호/기간을 부여한 뒤 즉시 정산
- 정산이 PARTIAL이면 결제는 완료, 회원권 반영만 실패 (settlement.error 확인)

"""
@router.post("", response_model=PaymentWithSettlement)
def create_manual_payment(
    body: ManualPaymentRequest,
    db: Session = Depends(get_db),
    store: SqlAlchemyBillingStore = Depends(get_store),
    admin: AdminPrincipal = Depends(get_current_admin),
):
    org = _organization(store, admin)
    try:
        payment, result = record_manual_payment(
            store,
            org.id,
            membership_id=body.membership_id,
            payment_type=body.type,
            method=body.method,
            config=load_billing_config(org),
            amount_cents=body.amount_cents,
            months=body.months,
            billing_date=body.billing_date,
            paid_at=body.paid_at,
            notes=body.notes,
            recorded_by=admin.user_id,
        )
        write_admin_log(
            db,
            organization_id=org.id,
            actor_id=admin.user_id,
            action=AdminAction.RECORD_PAYMENT,
            target_type="payment",
            target_id=payment.id,
            after_status=payment.status.value,
            detail={"amount_cents": payment.amount_cents, "outcome": result.outcome.value},
        )
        db.commit()
        db.refresh(payment)
        return {"payment": payment, "settlement": asdict(result)}
    except BillingError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=str(e))
    except Exception:
        db.rollback()
        raise


"""
연체 결제 목록 API

- pending / failed 이면서 납부일이 오늘(기관 timezone)보다 이전인 결제
- 납부일 오름차순

"""
@router.get("/overdue", response_model=list[OverduePaymentRow])
def list_overdue(
    store: SqlAlchemyBillingStore = Depends(get_store),
    admin: AdminPrincipal = Depends(get_current_admin),
):
    org = _organization(store, admin)
    try:
        today = today_in_timezone(org.timezone)
    except BillingError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))

    return [
        OverduePaymentRow(
            payment_id=p.id,
            membership_id=p.membership_id,
            invoice_number=p.invoice_number,
            period_label=p.period_label,
            due_date=p.due_date,
            days_overdue=days_between(p.due_date, today),
            amount_cents=p.total_charged_cents,
            status=p.status,
            reminder_count=p.reminder_count,
            requires_review=p.requires_review,
        )
        for p in store.list_overdue_payments(org.id, today)
    ]


"""
월별 인보이스 Excel(xlsx) 다운로드 API

- 인보이스 번호의 YYYYMM이 period와 같은 결제 목록
- openpyxl을 사용하여 XLSX 파일 생성

"""
@router.get("/export.xlsx")
def export_invoices_xlsx(
    period: str = Query(..., description="예: 2025-01"),
    store: SqlAlchemyBillingStore = Depends(get_store),
    admin: AdminPrincipal = Depends(get_current_admin),
):
    try:
        year_month = validate_period(period)
    except BillingError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))

    payments = store.list_payments_for_month(admin.organization_id, year_month)

    wb = Workbook()
    ws = wb.active
    ws.title = "invoices"

    # Excel 시트 헤더
    ws.append([
        "invoice_number",
        "period_label",
        "type",
        "status",
        "method",
        "due_date",
        "amount_cents",
        "processor_fee_cents",
        "platform_fee_cents",
        "total_charged_cents",
        "net_amount_cents",
        "months_credited",
        "paid_at",
    ])

    for p in payments:
        ws.append([
            p.invoice_number,
            p.period_label or "",
            p.type.value,
            p.status.value,
            p.method.value if p.method else "",
            p.due_date.isoformat() if p.due_date else "",
            p.amount_cents,
            p.processor_fee_cents,
            p.platform_fee_cents,
            p.total_charged_cents,
            p.net_amount_cents,
            p.months_credited,
            p.paid_at.isoformat() if p.paid_at else "",
        ])

    buf = io.BytesIO()
    wb.save(buf)
    data = buf.getvalue()

    filename = f"invoices_{period}.xlsx"
    headers = {
        "Content-Disposition": f'attachment; filename="{filename}"'
    }

    return Response(
        content=data,
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers=headers,
    )


@router.get("/{payment_id}", response_model=PaymentResponse)
def get_payment(
    payment_id: uuid.UUID,
    store: SqlAlchemyBillingStore = Depends(get_store),
    admin: AdminPrincipal = Depends(get_current_admin),
):
    try:
        return get_payment_for_org(store, admin.organization_id, payment_id)
    except BillingError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


"""
결제 정산 API

- pending / failed 결제를 completed로 바꾸고 회원권에 개월 수 적립
- 이미 완료된 결제는 outcome=already_settled (변경 없음)
- 환불된 결제는 409

"""
@router.post("/{payment_id}/settle", response_model=SettlementResponse)
def settle(
    payment_id: uuid.UUID,
    body: SettleRequest,
    db: Session = Depends(get_db),
    store: SqlAlchemyBillingStore = Depends(get_store),
    admin: AdminPrincipal = Depends(get_current_admin),
):
    org = _organization(store, admin)
    try:
        payment = get_payment_for_org(store, org.id, payment_id)
        before = payment.status.value

        result = settle_payment(
            store,
            payment_id,
            body.method,
            config=load_billing_config(org),
            paid_at=body.paid_at,
            notes=body.notes,
            recorded_by=admin.user_id,
            processor_payment_id=body.processor_payment_id,
        )
        if result.outcome != SettlementOutcome.ALREADY_SETTLED:
            write_admin_log(
                db,
                organization_id=org.id,
                actor_id=admin.user_id,
                action=AdminAction.SETTLE_PAYMENT,
                target_type="payment",
                target_id=payment_id,
                before_status=before,
                after_status=PaymentStatus.COMPLETED.value,
                detail={"outcome": result.outcome.value, "method": body.method.value},
            )
            db.commit()
        return asdict(result)
    except BillingError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=str(e))
    except Exception:
        db.rollback()
        raise


@router.post("/{payment_id}/fail", response_model=PaymentResponse)
def mark_failed(
    payment_id: uuid.UUID,
    db: Session = Depends(get_db),
    store: SqlAlchemyBillingStore = Depends(get_store),
    admin: AdminPrincipal = Depends(get_current_admin),
):
    try:
        get_payment_for_org(store, admin.organization_id, payment_id)
        payment = fail_payment(store, payment_id)
        write_admin_log(
            db,
            organization_id=admin.organization_id,
            actor_id=admin.user_id,
            action=AdminAction.FAIL_PAYMENT,
            target_type="payment",
            target_id=payment_id,
            before_status=PaymentStatus.PENDING.value,
            after_status=PaymentStatus.FAILED.value,
        )
        db.commit()
        db.refresh(payment)
        return payment
    except BillingError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=str(e))
    except Exception:
        db.rollback()
        raise


@router.post("/{payment_id}/remind", response_model=ReminderResponse)
def remind(
    payment_id: uuid.UUID,
    db: Session = Depends(get_db),
    store: SqlAlchemyBillingStore = Depends(get_store),
    notifier: Notifier = Depends(get_notifier),
    admin: AdminPrincipal = Depends(get_current_admin),
):
    org = _organization(store, admin)
    try:
        get_payment_for_org(store, org.id, payment_id)
        config = load_billing_config(org)
        update = send_payment_reminder(store, payment_id, notifier=notifier, max_reminders=config.max_reminders)
        write_admin_log(
            db,
            organization_id=org.id,
            actor_id=admin.user_id,
            action=AdminAction.SEND_REMINDER,
            target_type="payment",
            target_id=payment_id,
            detail={"reminder_count": update.reminder_count},
        )
        db.commit()
        return ReminderResponse(
            payment_id=payment_id,
            reminder_count=update.reminder_count,
            requires_review=update.requires_review,
        )
    except BillingError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=str(e))
    except Exception:
        db.rollback()
        raise
