"""Mock payroll API: employee directory, affordability scoring and request persistence"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel

app = FastAPI(title="Mock Payroll API", version="1.0.0")

SAFE_DEDUCTION_RATIO = 0.4

EMPLOYEES = [
    {
        "id": "emp-001",
        "institution_id": "inst-employer-01",
        "employee_number": "EMP-1001",
        "national_id": "MWI123456",
        "first_name": "Chikondi",
        "last_name": "Banda",
        "full_name": "Chikondi Banda",
        "email": "chikondi.banda@example.mw",
        "employment_status": "ACTIVE",
        "employment_date": "2019-04-01",
        "basic_salary": "450000.00",
        "employer": {"id": "inst-employer-01"},
    },
    {
        "id": "emp-002",
        "institution_id": "inst-employer-01",
        "employee_number": "EMP-1002",
        "national_id": "MWI654321",
        "first_name": "Thoko",
        "last_name": "Phiri",
        "full_name": "Thoko Phiri",
        "email": "thoko.phiri@example.mw",
        "employment_status": "ACTIVE",
        "employment_date": "2021-09-15",
        "basic_salary": "120000.00",
        "employer": {"id": "inst-employer-01"},
    },
]

# Existing monthly deductions per employee
EXISTING_DEDUCTIONS = {"emp-001": 60000.0, "emp-002": 40000.0}

REQUESTS: dict = {}


class AffordabilityBody(BaseModel):
    employee_id: str
    requested_amount: float


class CreateRequestBody(BaseModel):
    employee_id: str
    employer_institution_id: str
    deduction_type: str
    amount: float
    start_date: str
    end_date: Optional[str] = None
    number_of_installments: int
    reason: str
    external_reference: Optional[str] = None
    is_reservation: bool = False


def _envelope(data, message="OK"):
    return {
        "success": True,
        "message": message,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "data": data,
    }


@app.get("/health")
def health():
    return {"status": "ok"}


@app.get("/api/deduction-requests/search/employees")
def search_employees(q: str, limit: int = 50, page: int = 1):
    term = q.strip().lower()
    matches = [
        e for e in EMPLOYEES
        if term in (e["national_id"].lower(), e["employee_number"].lower())
    ]
    return _envelope({
        "employees": matches[:limit],
        "pagination": {"page": page, "limit": limit, "total": len(matches)},
    })


@app.post("/api/deduction-requests/affordability")
def check_affordability(body: AffordabilityBody):
    employee = next((e for e in EMPLOYEES if e["id"] == body.employee_id), None)
    if employee is None:
        raise HTTPException(status_code=404, detail="employee not found")

    salary = float(employee["basic_salary"])
    existing = EXISTING_DEDUCTIONS.get(employee["id"], 0.0)
    total = existing + body.requested_amount
    safe_limit = salary * SAFE_DEDUCTION_RATIO
    ratio = total / salary
    can_afford = total <= safe_limit
    risk_level = "LOW" if ratio <= 0.25 else "MEDIUM" if ratio <= SAFE_DEDUCTION_RATIO else "HIGH"

    return _envelope({
        "employee": {
            "id": employee["id"],
            "employee_number": employee["employee_number"],
            "full_name": employee["full_name"],
            "employer_name": "Mock Employer",
        },
        "affordability_assessment": {
            "basic_salary": salary,
            "existing_deductions": existing,
            "requested_amount": body.requested_amount,
            "total_deductions": total,
            "net_salary_current": salary - existing,
            "net_salary_after_deduction": salary - total,
            "existing_deduction_percentage": round(existing / salary * 100, 2),
            "requested_deduction_percentage": round(body.requested_amount / salary * 100, 2),
            "total_deduction_percentage": round(ratio * 100, 2),
            "safe_deduction_limit": safe_limit,
            "available_amount": max(safe_limit - existing, 0.0),
            "can_afford": can_afford,
            "risk_score": round(ratio * 100, 2),
            "risk_level": risk_level,
            "assessment_result": "AFFORDABLE" if can_afford else "NOT AFFORDABLE",
        },
        "assessment_date": datetime.now(timezone.utc).isoformat(),
        "recommendation": (
            "Deduction is within the safe limit."
            if can_afford
            else "Requested amount exceeds the safe deduction limit."
        ),
    })


@app.post("/api/deduction-requests", status_code=201)
def create_request(body: CreateRequestBody):
    if body.external_reference and any(
        r["external_reference"] == body.external_reference for r in REQUESTS.values()
    ):
        raise HTTPException(status_code=409, detail="Duplicate external reference")

    request_id = str(uuid.uuid4())
    record = {
        "id": request_id,
        "institution_id": body.employer_institution_id,
        "request_number": f"DR-{len(REQUESTS) + 1:06d}",
        "employee_id": body.employee_id,
        "employer_institution_id": body.employer_institution_id,
        "deduction_type": body.deduction_type,
        "amount": f"{body.amount:.2f}",
        "start_date": body.start_date,
        "end_date": body.end_date,
        "number_of_installments": body.number_of_installments,
        "remaining_installments": body.number_of_installments,
        "request_status": "RESERVED" if body.is_reservation else "PENDING",
        "reason": body.reason,
        "external_reference": body.external_reference,
        "requested_at": datetime.now(timezone.utc).isoformat(),
    }
    REQUESTS[request_id] = record
    return _envelope(record, message="Deduction request created")
