from __future__ import annotations

from decimal import Decimal


def _client_for(user):
    from fastapi.testclient import TestClient

    from tripspend.core.security import create_access_token
    from tripspend.main import app

    token = create_access_token(subject=str(user.id), tenant_id=str(user.tenant_id))
    client = TestClient(app)
    client.headers.update({"Authorization": f"Bearer {token}"})
    return client


def _expense_payload(org, **overrides):
    payload = {
        "category": "FOOD",
        "expense_date": "2026-06-10",
        "amount": "35.00",
        "cost_center_id": str(org.sales.id),
    }
    payload.update(overrides)
    return payload


def test_healthz():
    from fastapi.testclient import TestClient

    from tripspend.main import app

    resp = TestClient(app).get("/healthz")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


def test_requests_without_token_are_rejected():
    from fastapi.testclient import TestClient

    from tripspend.main import app

    client = TestClient(app)
    assert client.get("/api/expenses").status_code == 401
    resp = client.get("/api/auth/me", headers={"Authorization": "Bearer garbage"})
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Token inválido"


def test_password_login_issues_token(org):
    from fastapi.testclient import TestClient

    from tripspend.main import app

    client = TestClient(app)
    bad = client.post("/api/auth/token", data={"username": "ana@acme.example.com", "password": "x"})
    assert bad.status_code == 401

    ok = client.post("/api/auth/token", data={"username": "ana@acme.example.com", "password": "pw"})
    assert ok.status_code == 200
    token = ok.json()["access_token"]
    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.json()["email"] == "ana@acme.example.com"


def test_expense_flow_over_http(org):
    ana = _client_for(org.collaborator)
    manager = _client_for(org.manager)

    created = ana.post("/api/expenses", json=_expense_payload(org))
    assert created.status_code == 200
    body = created.json()
    assert body["status"] == "DRAFT"
    assert Decimal(body["amount_base"]) == Decimal("35.00")
    assert body["policy_check"]["valid"] is True
    assert body["notes"][0]["action"] == "CREATED"

    expense_id = body["id"]
    assert ana.post(f"/api/expenses/{expense_id}/submit").json()["status"] == "SUBMITTED"

    approved = manager.post(f"/api/expenses/{expense_id}/approve", json={"note": "ok"})
    assert approved.status_code == 200
    assert approved.json()["status"] == "APPROVED"


def test_error_mapping(org, other_org):
    ana = _client_for(org.collaborator)
    outsider = _client_for(other_org.admin)

    expense_id = ana.post("/api/expenses", json=_expense_payload(org)).json()["id"]

    assert outsider.get(f"/api/expenses/{expense_id}").status_code == 404

    forbidden = ana.post(f"/api/expenses/{expense_id}/approve", json={})
    assert forbidden.status_code == 403
    assert ana.get("/api/users").status_code == 403

    invalid = ana.post("/api/expenses", json=_expense_payload(org, amount="0"))
    assert invalid.status_code == 422
    sub_cent = ana.post("/api/expenses", json=_expense_payload(org, amount="0.004"))
    assert sub_cent.status_code == 422

    blocked = ana.post(
        "/api/expenses", json=_expense_payload(org, amount="89.90", expense_date="2026-06-11")
    )
    resp = ana.post(f"/api/expenses/{blocked.json()['id']}/submit")
    assert resp.status_code == 400
    assert resp.json()["detail"].startswith("Despesa não está em conformidade com a política")


def test_expense_list_pagination(org):
    ana = _client_for(org.collaborator)
    for day in range(1, 6):
        ana.post("/api/expenses", json=_expense_payload(org, expense_date=f"2026-05-0{day}"))

    page = ana.get("/api/expenses", params={"page": 2, "limit": 2}).json()
    assert page["meta"] == {"page": 2, "limit": 2, "total": 5, "pages": 3}
    assert [item["expense_date"] for item in page["items"]] == ["2026-05-03", "2026-05-02"]


def test_budget_export_endpoint(org):
    admin = _client_for(org.admin)
    created = admin.post(
        "/api/budgets",
        json={
            "year": 2026,
            "period": "YEARLY",
            "cost_center_id": str(org.sales.id),
            "amount": "1000.00",
        },
    )
    assert created.status_code == 200

    summary = admin.get("/api/budgets/summary/2026").json()
    assert Decimal(summary["total_budget"]) == Decimal("1000.00")

    export = admin.get("/api/budgets/summary/2026/export")
    assert export.status_code == 200
    assert export.headers["content-type"].startswith(
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
    )
    assert _client_for(org.collaborator).get("/api/budgets/summary/2026").status_code == 403
