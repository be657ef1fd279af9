"""Integration tests for API endpoints"""

import pytest
from decimal import Decimal
from fastapi.testclient import TestClient

pytestmark = pytest.mark.integration

LOAN_FIELDS = {
    "deduction_type": "LOAN_REPAYMENT",
    "amount": 50000,
    "start_date": "2025-03-01",
    "number_of_installments": 6,
    "reason": "Equipment loan",
}


def open_draft(client: TestClient, **options) -> str:
    response = client.post("/v1/drafts", json={"institution_id": "inst-sacco-01", **options})
    assert response.status_code == 201
    return response.json()["draft_id"]


def select_sample_employee(client: TestClient, draft_id: str) -> dict:
    client.post(f"/v1/drafts/{draft_id}/employee-search", json={"query": "MWI123456"})
    response = client.post(f"/v1/drafts/{draft_id}/employee", json={"employee_id": "emp-001"})
    assert response.status_code == 200
    return response.json()


def test_health_endpoint(client: TestClient):
    """Test health check endpoint"""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_metrics_endpoint(client: TestClient):
    """Test Prometheus metrics endpoint"""
    response = client.get("/metrics")
    assert response.status_code == 200
    assert "payflow_active_draft_sessions" in response.text
    assert "payflow_deduction_submissions_total" in response.text


def test_deduction_types(client: TestClient):
    """Test the type picker offers every real type and no placeholder"""
    response = client.get("/v1/deduction-types")

    assert response.status_code == 200
    values = [t["value"] for t in response.json()]
    assert values == ["SHARE", "LOAN_REPAYMENT", "FINE", "INSURANCE", "OTHER"]
    assert response.json()[1]["label"] == "Loan Repayment"


def test_create_draft_requires_institution(client: TestClient):
    response = client.post("/v1/drafts", json={"institution_id": ""})
    assert response.status_code == 422


def test_new_draft_view(client: TestClient):
    draft_id = open_draft(client)

    response = client.get(f"/v1/drafts/{draft_id}")

    data = response.json()
    assert data["state"] == "empty"
    assert data["ready"] is False
    assert data["deduction_type"] is None
    assert data["submit_label"] == "Create Request"
    assert data["currency"] == "MWK"
    assert data["affordability"]["verdict"] == "unknown"
    assert "Please select an employee." in data["validation_errors"]


def test_unknown_draft_returns_404(client: TestClient):
    response = client.get("/v1/drafts/does-not-exist")
    assert response.status_code == 404
    assert response.json()["detail"] == "Draft not found"


def test_blank_search_returns_validation_message(client: TestClient):
    draft_id = open_draft(client)

    response = client.post(f"/v1/drafts/{draft_id}/employee-search", json={"query": "  "})

    data = response.json()
    assert response.status_code == 200
    assert data["validation_message"] == "Please enter a National ID or Employee Number to search."
    assert data["searched"] is False
    assert data["employees"] == []


def test_search_without_matches(client: TestClient):
    draft_id = open_draft(client)

    response = client.post(f"/v1/drafts/{draft_id}/employee-search", json={"query": "MWI000000"})

    assert response.json()["no_matches"] is True


def test_select_employee_outside_results(client: TestClient):
    """Test only employees from the latest search can be selected"""
    draft_id = open_draft(client)

    response = client.post(f"/v1/drafts/{draft_id}/employee", json={"employee_id": "emp-001"})

    assert response.status_code == 404


def test_full_wizard_flow(client: TestClient):
    """Test search, select, fill and submit for employee MWI123456"""
    draft_id = open_draft(client)

    search = client.post(f"/v1/drafts/{draft_id}/employee-search", json={"query": "MWI123456"})
    assert [e["id"] for e in search.json()["employees"]] == ["emp-001"]

    selected = client.post(f"/v1/drafts/{draft_id}/employee", json={"employee_id": "emp-001"}).json()
    assert selected["state"] == "employee_selected"
    assert selected["employee"]["employer_institution_id"] == "inst-employer-01"

    response = client.patch(f"/v1/drafts/{draft_id}", json=LOAN_FIELDS)
    assert response.status_code == 200
    draft = response.json()
    assert draft["state"] == "ready"
    assert draft["ready"] is True
    assert draft["end_date"] == "2025-09-01"
    assert Decimal(draft["maturity_total"]) == Decimal("300000")
    assert len(draft["installments"]) == 6
    assert draft["affordability"]["status"] == "available"
    assert draft["affordability"]["verdict"] == "affordable"
    assert draft["affordability"]["assessment"]["risk_level"] == "LOW"

    submitted = client.post(f"/v1/drafts/{draft_id}/submit")
    assert submitted.status_code == 201
    body = submitted.json()
    assert body["request"]["id"]
    assert body["request"]["request_status"] == "PENDING"
    assert body["request"]["end_date"] == "2025-09-01"
    assert body["draft"]["state"] == "submitted"
    assert body["draft"]["employee"] is None
    assert body["draft"]["last_request"]["id"] == body["request"]["id"]


def test_end_date_cannot_be_patched(client: TestClient):
    """Test the derived end date is rejected as an input"""
    draft_id = open_draft(client)

    response = client.patch(f"/v1/drafts/{draft_id}", json={"end_date": "2030-01-01"})

    assert response.status_code == 422


def test_invalid_months_reported_in_view(client: TestClient):
    draft_id = open_draft(client)
    select_sample_employee(client, draft_id)
    client.patch(f"/v1/drafts/{draft_id}", json=LOAN_FIELDS)

    draft = client.patch(f"/v1/drafts/{draft_id}", json={"number_of_installments": "0"}).json()

    assert draft["state"] == "employee_selected"
    assert draft["end_date"] == "2025-09-01"
    assert "number_of_installments" in draft["field_errors"]
    assert draft["maturity_total"] is None


def test_submit_incomplete_draft(client: TestClient):
    draft_id = open_draft(client)
    select_sample_employee(client, draft_id)

    response = client.post(f"/v1/drafts/{draft_id}/submit")

    assert response.status_code == 422
    detail = response.json()["detail"]
    assert detail["message"] == "Please fill in all required fields including number of months."
    assert "Please select a deduction type." in detail["validation_errors"]


def test_unaffordable_amount_is_blocked(client: TestClient):
    draft_id = open_draft(client)
    select_sample_employee(client, draft_id)

    draft = client.patch(f"/v1/drafts/{draft_id}", json={**LOAN_FIELDS, "amount": 150000}).json()

    assert draft["ready"] is False
    assert draft["affordability"]["verdict"] == "not_affordable"
    assert client.post(f"/v1/drafts/{draft_id}/submit").status_code == 422


def test_confirmation_required_flow(client: TestClient):
    """Test a draft opened with confirmation required is ready once the check passes"""
    draft_id = open_draft(client, require_affordability_confirmation=True)
    select_sample_employee(client, draft_id)

    draft = client.patch(f"/v1/drafts/{draft_id}", json=LOAN_FIELDS).json()

    assert draft["require_affordability_confirmation"] is True
    assert draft["ready"] is True


def test_duplicate_reference_keeps_draft(client: TestClient):
    """Test a rejected submission returns the retained draft in FAILED"""
    fields = {**LOAN_FIELDS, "external_reference": "LOAN-77"}

    first = open_draft(client)
    select_sample_employee(client, first)
    client.patch(f"/v1/drafts/{first}", json=fields)
    assert client.post(f"/v1/drafts/{first}/submit").status_code == 201

    second = open_draft(client)
    select_sample_employee(client, second)
    client.patch(f"/v1/drafts/{second}", json=fields)
    response = client.post(f"/v1/drafts/{second}/submit")

    assert response.status_code == 422
    detail = response.json()["detail"]
    assert detail["error"] == "Duplicate external reference"
    assert detail["draft"]["state"] == "failed"
    assert detail["draft"]["external_reference"] == "LOAN-77"

    retry = client.patch(f"/v1/drafts/{second}", json={"external_reference": "LOAN-78"}).json()
    assert retry["state"] == "ready"
    assert client.post(f"/v1/drafts/{second}/submit").status_code == 201


def test_reservation_label_and_status(client: TestClient):
    draft_id = open_draft(client)
    select_sample_employee(client, draft_id)

    draft = client.patch(f"/v1/drafts/{draft_id}", json={**LOAN_FIELDS, "is_reservation": True}).json()
    assert draft["submit_label"] == "Create Reservation"

    response = client.post(f"/v1/drafts/{draft_id}/submit")
    assert response.json()["request"]["request_status"] == "RESERVED"


def test_reset_draft(client: TestClient):
    draft_id = open_draft(client)
    select_sample_employee(client, draft_id)
    client.patch(f"/v1/drafts/{draft_id}", json=LOAN_FIELDS)

    draft = client.post(f"/v1/drafts/{draft_id}/reset").json()

    assert draft["state"] == "empty"
    assert draft["amount"] is None
    assert draft["end_date"] is None
    assert draft["affordability"]["assessment"] is None


def test_discard_draft(client: TestClient):
    draft_id = open_draft(client)

    assert client.delete(f"/v1/drafts/{draft_id}").status_code == 204
    assert client.get(f"/v1/drafts/{draft_id}").status_code == 404


def test_request_id_is_echoed(client: TestClient):
    response = client.get("/health", headers={"X-Request-ID": "trace-123"})
    assert response.headers["X-Request-ID"] == "trace-123"


def test_huge_month_count_keeps_session_usable(client: TestClient):
    """Test an oversized month count is reported and the draft can still be viewed"""
    draft_id = open_draft(client)
    select_sample_employee(client, draft_id)
    client.patch(f"/v1/drafts/{draft_id}", json=LOAN_FIELDS)

    response = client.patch(f"/v1/drafts/{draft_id}", json={"number_of_installments": 200000})

    assert response.status_code == 200
    draft = response.json()
    assert draft["ready"] is False
    assert draft["number_of_installments"] is None
    assert draft["end_date"] == "2025-09-01"
    assert draft["installments"] == []
    assert "number_of_installments" in draft["field_errors"]
    assert client.get(f"/v1/drafts/{draft_id}").status_code == 200


def test_start_date_at_calendar_limit(client: TestClient):
    draft_id = open_draft(client)
    select_sample_employee(client, draft_id)
    client.patch(f"/v1/drafts/{draft_id}", json=LOAN_FIELDS)

    response = client.patch(f"/v1/drafts/{draft_id}", json={"start_date": "9999-12-15"})

    assert response.status_code == 200
    assert "start_date" in response.json()["field_errors"]
    assert client.get(f"/v1/drafts/{draft_id}").status_code == 200


def test_amount_beyond_precision_is_a_field_error(client: TestClient):
    draft_id = open_draft(client)
    select_sample_employee(client, draft_id)

    response = client.patch(f"/v1/drafts/{draft_id}", json={"amount": "1e30"})

    assert response.status_code == 200
    assert response.json()["amount"] is None
    assert response.json()["field_errors"]["amount"] == "Amount is too large."


def test_draft_id_is_echoed(client: TestClient):
    draft_id = open_draft(client)

    response = client.get(f"/v1/drafts/{draft_id}", headers={"X-Request-ID": "trace-456"})

    assert response.headers["X-Draft-ID"] == draft_id
    assert response.headers["X-Request-ID"] == "trace-456"
