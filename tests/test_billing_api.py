"""
관리자 청구 API 테스트.
- 인증 / 권한 (401, 403), 기관 경계
- 청구 배치 / 리마인더 배치 / 설정 조회 / 수수료 미리보기
- 수수료 설정 변경 + 감사 로그
"""
import uuid
from datetime import timedelta
from decimal import Decimal

from sqlalchemy import select

from app.core.security import create_access_token
from app.models.admin_log import AdminAction, AdminActionLog
from app.models.organization import Organization
from app.models.payment import Payment
from tests.helpers import (
    admin_token,
    auth_header,
    create_membership,
    create_organization,
    create_payment,
    create_plan,
)


def test_requires_token(client):
    res = client.post("/admin/billing/run", json={})
    assert res.status_code == 401


def test_rejects_invalid_token(client):
    res = client.get("/admin/billing/config", headers=auth_header("not-a-jwt"))
    assert res.status_code == 401


def test_rejects_expired_token(client, org):
    token = create_access_token("admin-1", str(org.id), expires_delta=timedelta(minutes=-5))
    res = client.get("/admin/billing/config", headers=auth_header(token))
    assert res.status_code == 401


def test_requires_admin_role(client, org):
    res = client.get("/admin/billing/config", headers=auth_header(admin_token(org, role="member")))
    assert res.status_code == 403


def test_unknown_organization(client):
    token = create_access_token("admin-1", str(uuid.uuid4()))
    res = client.get("/admin/billing/config", headers=auth_header(token))
    assert res.status_code == 404


def test_run_billing(client, db, org, token):
    plan = create_plan(db, org)
    create_membership(db, org, plan)

    res = client.post("/admin/billing/run", headers=auth_header(token), json={"billing_date": "2025-01-15"})
    assert res.status_code == 200, res.text
    body = res.json()
    assert body["success"] is True
    assert body["payments_created"] == 1
    assert body["billing_date"] == "2025-01-15"
    assert len(body["payment_ids"]) == 1

    payment = db.get(Payment, uuid.UUID(body["payment_ids"][0]))
    assert payment.invoice_number == "INV-MM-202501-0001"


def test_run_billing_only_touches_own_organization(client, db, org, token):
    other = create_organization(db, name="Amanah Logic")
    create_membership(db, other, create_plan(db, other))

    res = client.post("/admin/billing/run", headers=auth_header(token), json={"billing_date": "2025-01-15"})
    assert res.status_code == 200
    assert res.json()["payments_created"] == 0


def test_run_billing_dry_run(client, db, org, token):
    create_membership(db, org, create_plan(db, org))

    res = client.post(
        "/admin/billing/run",
        headers=auth_header(token),
        json={"billing_date": "2025-01-15", "dry_run": True},
    )
    assert res.status_code == 200
    body = res.json()
    assert body["dry_run"] is True
    assert body["payments_created"] == 1
    assert body["payment_ids"] == []


def test_run_billing_invalid_date(client, token):
    res = client.post("/admin/billing/run", headers=auth_header(token), json={"billing_date": "2025-02-30"})
    assert res.status_code == 422


def test_run_reminders(client, db, org, token):
    membership = create_membership(db, org, create_plan(db, org))
    create_payment(db, membership)

    res = client.post("/admin/billing/reminders/run", headers=auth_header(token), json={"today": "2025-01-04"})
    assert res.status_code == 200, res.text
    assert res.json()["reminders_queued"] == 1

    again = client.post("/admin/billing/reminders/run", headers=auth_header(token), json={"today": "2025-01-04"})
    assert again.json()["reminders_queued"] == 0


def test_get_config(client, db):
    org = create_organization(db, billing_config={"eligibility_months": 36})
    res = client.get("/admin/billing/config", headers=auth_header(admin_token(org)))

    assert res.status_code == 200
    body = res.json()
    assert body["eligibility_months"] == 36
    assert body["reminder_schedule"] == [3, 7, 14]


def test_broken_config_is_500(client, db):
    org = create_organization(db, billing_config={"reminder_schedule": [14, 3]})
    res = client.get("/admin/billing/config", headers=auth_header(admin_token(org)))

    assert res.status_code == 500
    assert "ascending" in res.json()["detail"]


def test_fee_preview_uses_org_settings(client, db):
    org = create_organization(db, platform_fees={"monthly": 2, "biannual": 5, "annual": 10}, pass_fees_to_member=True)
    res = client.post("/admin/billing/fees/preview", headers=auth_header(admin_token(org)), json={"base_amount_cents": 5000})

    assert res.status_code == 200, res.text
    body = res.json()
    assert body["platform_fee_cents"] == 200
    assert body["charge_amount_cents"] == 5386
    assert body["net_amount_cents"] == 5000


def test_fee_preview_overrides(client, token):
    res = client.post(
        "/admin/billing/fees/preview",
        headers=auth_header(token),
        json={"base_amount_cents": 5000, "platform_fee_dollars": 0, "pass_fees_to_member": False},
    )

    assert res.status_code == 200
    body = res.json()
    assert body["processor_fee_cents"] == 175
    assert body["net_amount_cents"] == 4825


def test_fee_preview_missing_platform_fee(client, db):
    org = create_organization(db, platform_fees={"monthly": 1})
    res = client.post(
        "/admin/billing/fees/preview",
        headers=auth_header(admin_token(org)),
        json={"base_amount_cents": 28000, "frequency": "biannual"},
    )

    assert res.status_code == 500
    assert res.json()["detail"] == "platform fee for 'biannual' is not configured"


def test_update_fee_settings(client, db, org, token):
    res = client.patch(
        "/admin/billing/fee-settings",
        headers=auth_header(token),
        json={"pass_fees_to_member": True, "platform_fees": {"monthly": 2}},
    )

    assert res.status_code == 200, res.text
    body = res.json()
    assert body["pass_fees_to_member"] is True
    assert {k: Decimal(v) for k, v in body["platform_fees"].items()} == {
        "monthly": Decimal("2"),
        "biannual": Decimal("0"),
        "annual": Decimal("0"),
    }

    # 이후 미리보기는 바뀐 설정으로 계산
    preview = client.post("/admin/billing/fees/preview", headers=auth_header(token), json={"base_amount_cents": 5000})
    assert preview.json()["platform_fee_cents"] == 200
    assert preview.json()["charge_amount_cents"] == 5386


def test_update_fee_settings_is_logged(client, db, org, token):
    res = client.patch("/admin/billing/fee-settings", headers=auth_header(token), json={"pass_fees_to_member": True})
    assert res.status_code == 200, res.text

    db.expire_all()
    log = db.scalar(select(AdminActionLog).where(AdminActionLog.action == AdminAction.UPDATE_FEE_SETTINGS))
    assert log.target_type == "organization"
    assert log.target_id == org.id
    assert log.detail["before"]["pass_fees_to_member"] is False
    assert log.detail["after"]["pass_fees_to_member"] is True
    assert log.detail["after"]["platform_fees"] == {"monthly": 0, "biannual": 0, "annual": 0}


def test_fee_settings_apply_to_next_billing_run(client, db, org, token):
    create_membership(db, org, create_plan(db, org), processor_customer_id="cus_123")
    client.patch(
        "/admin/billing/fee-settings",
        headers=auth_header(token),
        json={"platform_fees": {"monthly": "1.50"}},
    )

    res = client.post("/admin/billing/run", headers=auth_header(token), json={"billing_date": "2025-01-15"})
    assert res.status_code == 200, res.text

    db.expire_all()
    payment = db.get(Payment, uuid.UUID(res.json()["payment_ids"][0]))
    assert payment.platform_fee_cents == 150
    assert payment.total_charged_cents == 5000
    assert payment.net_amount_cents == 4675


def test_update_fee_settings_requires_a_field(client, token):
    res = client.patch("/admin/billing/fee-settings", headers=auth_header(token), json={})
    assert res.status_code == 400


def test_update_fee_settings_rejects_unknown_frequency(client, db, org, token):
    res = client.patch(
        "/admin/billing/fee-settings",
        headers=auth_header(token),
        json={"platform_fees": {"weekly": 1}},
    )
    assert res.status_code == 400
    assert "weekly" in res.json()["detail"]

    db.expire_all()
    assert db.get(Organization, org.id).platform_fees == {"monthly": 0, "biannual": 0, "annual": 0}


def test_update_fee_settings_rejects_negative_fee(client, token):
    res = client.patch(
        "/admin/billing/fee-settings",
        headers=auth_header(token),
        json={"platform_fees": {"annual": -1}},
    )
    assert res.status_code == 400
    assert res.json()["detail"] == "platform fee for 'annual' must be a non-negative number"


def test_update_fee_settings_repairs_incomplete_schedule(client, db):
    org = create_organization(db, platform_fees={"monthly": 1})
    res = client.patch(
        "/admin/billing/fee-settings",
        headers=auth_header(admin_token(org)),
        json={"platform_fees": {"biannual": 3}},
    )

    assert res.status_code == 200, res.text
    db.expire_all()
    assert db.get(Organization, org.id).platform_fees == {"monthly": 1, "biannual": 3, "annual": 0}


def test_update_fee_settings_requires_admin_role(client, org):
    res = client.patch(
        "/admin/billing/fee-settings",
        headers=auth_header(admin_token(org, role="member")),
        json={"pass_fees_to_member": True},
    )
    assert res.status_code == 403
