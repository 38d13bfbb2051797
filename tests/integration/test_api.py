"""Integration tests for API endpoints"""

import pytest
from fastapi.testclient import TestClient

pytestmark = pytest.mark.integration


def _invoice_request(card, raw_transactions, **overrides):
    body = {
        "card": card,
        "transactions": raw_transactions,
        "card_id": "card_1",
        "as_of_date": "2026-01-15",
    }
    body.update(overrides)
    return body


def test_health_endpoint(client: TestClient):
    """Test health check endpoint"""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "service": "invoice-gateway"}


def test_metrics_endpoint(client: TestClient):
    """Test Prometheus metrics endpoint"""
    response = client.get("/metrics")
    assert response.status_code == 200
    assert "invoice_builds_total" in response.text
    assert "late_charge_computations_total" in response.text


def test_outstanding_documented_as_not_additive(client: TestClient):
    """Test the API schema warns that outstanding and current totals overlap"""
    schema = client.get("/openapi.json").json()
    field = schema["components"]["schemas"]["InvoiceSchema"]["properties"]["outstanding_cents"]

    assert "do not add this to the current total" in field["description"]


def test_open_cycle_payment_lowers_current_and_outstanding(client: TestClient, card):
    """Test a payment after closing is netted on both the closed and the current invoice"""
    response = client.post(
        "/v1/invoices",
        json=_invoice_request(
            card,
            [
                {"id": "tx", "description": "LOJA", "amount": 100, "date": "2026-01-05", "cardId": "card_1"},
                {"id": "tx_2", "description": "MERCADO", "amount": 80, "date": "2026-01-12", "cardId": "card_1"},
                {
                    "id": "pay",
                    "description": "PAGAMENTO DE FATURA",
                    "amount": 60,
                    "date": "2026-01-14",
                    "type": "income",
                    "cardId": "card_1",
                },
            ],
        ),
    )

    assert response.status_code == 200
    data = response.json()
    assert data["closed_invoice"]["total_cents"] == 10000
    assert data["closed_invoice"]["outstanding_cents"] == 4000
    assert data["current_invoice"]["total_cents"] == 2000


def test_build_invoices(client: TestClient, card, raw_transactions):
    """Test POST /v1/invoices builds closed, current and forecast invoices"""
    response = client.post("/v1/invoices", json=_invoice_request(card, raw_transactions))

    assert response.status_code == 200
    data = response.json()

    closed = data["closed_invoice"]
    assert closed["status"] == "CLOSED"
    assert closed["month_key"] == "2026-01"
    assert closed["closing_date"] == "2026-01-09"
    assert closed["due_date"] == "2026-01-20"
    assert closed["total_cents"] == 3035
    assert [item["item_id"] for item in closed["items"]] == ["tx_3", "tx_2", "tx_1"]

    assert data["current_invoice"]["total_cents"] == 4590
    assert len(data["future_invoices"]) == 3
    assert data["periods"]["current_month_key"] == "2026-02"
    assert data["excluded"] == []


def test_build_invoices_reports_excluded(client: TestClient, card):
    """Test malformed records are excluded instead of failing the request"""
    transactions = [
        {"id": "ok", "description": "LOJA", "amount": 10, "date": "2026-01-05", "type": "expense"},
        {"id": "bad", "description": "LOJA", "amount": 10, "date": "ontem", "type": "expense"},
        {"id": "nan", "description": "LOJA", "amount": "NaN", "date": "2026-01-05", "type": "expense"},
    ]
    response = client.post("/v1/invoices", json=_invoice_request(card, transactions, card_id="all"))

    assert response.status_code == 200
    data = response.json()
    assert data["excluded"] == [{"transaction_id": "bad", "reason": "invalid_date"}]
    assert data["closed_invoice"]["total_cents"] == 1000


def test_build_invoices_with_recurring(client: TestClient, card):
    """Test recurring charges are projected into forecast invoices"""
    body = _invoice_request(
        card,
        [],
        forecast_months=2,
        recurring=[{"description": "NETFLIX", "amount": "39.90", "day_of_month": 15}],
    )
    response = client.post("/v1/invoices", json=body)

    assert response.status_code == 200
    future = response.json()["future_invoices"]
    assert [invoice["total_cents"] for invoice in future] == [3990, 3990]
    assert future[0]["items"][0]["source"] == "recurring"


def test_request_id_propagated(client: TestClient):
    """Test caller request id is echoed back"""
    response = client.get("/health", headers={"X-Request-ID": "req-123"})
    assert response.headers["X-Request-ID"] == "req-123"


def test_missing_closing_day_is_unprocessable(client: TestClient, raw_transactions):
    """Test card without closing day is rejected, never defaulted"""
    response = client.post(
        "/v1/invoices",
        json=_invoice_request({"id": "card_1", "dueDay": 20}, raw_transactions),
    )

    assert response.status_code == 422
    assert "closing day" in response.json()["detail"]


def test_negative_forecast_months_is_unprocessable(client: TestClient, card):
    """Test request validation of the forecast horizon"""
    response = client.post("/v1/invoices", json=_invoice_request(card, [], forecast_months=-1))
    assert response.status_code == 422


def test_audit_trail_persisted(client: TestClient, card, raw_transactions):
    """Test GET /v1/audit returns the persisted trail of a build"""
    client.post("/v1/invoices", json=_invoice_request(card, raw_transactions))

    response = client.get("/v1/audit", params={"card_id": "card_1"})

    assert response.status_code == 200
    data = response.json()
    assert data["card_id"] == "card_1"
    assert data["entries"][0]["operation"] == "build_invoices"
    assert data["entries"][0]["result"]["closed"]["total_cents"] == 3035


def test_audit_trail_unknown_card(client: TestClient):
    """Test empty trail for a card never built"""
    response = client.get("/v1/audit", params={"card_id": "nobody"})

    assert response.status_code == 200
    assert response.json()["entries"] == []


def test_audit_limit_validation(client: TestClient):
    """Test limit must be positive"""
    response = client.get("/v1/audit", params={"card_id": "card_1", "limit": 0})
    assert response.status_code == 422


def test_late_charges_not_overdue(client: TestClient):
    """Test same-day payment owes nothing"""
    response = client.post(
        "/v1/late-charges",
        json={"amount": "1000.00", "due_date": "2026-01-01", "as_of_date": "2026-01-01"},
    )

    assert response.status_code == 200
    assert response.json() == {
        "amount_cents": 100000,
        "late_fee_cents": 0,
        "interest_cents": 0,
        "total_charges_cents": 0,
        "days_overdue": 0,
    }


def test_late_charges_overdue(client: TestClient):
    """Test ten days overdue with default rates"""
    response = client.post(
        "/v1/late-charges",
        json={"amount": "1000.00", "due_date": "2026-01-01", "as_of_date": "2026-01-11"},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["days_overdue"] == 10
    assert data["late_fee_cents"] == 2000
    assert data["total_charges_cents"] == 7333
