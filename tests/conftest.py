"""Pytest fixtures for testing"""

import pytest
from decimal import Decimal
from unittest.mock import AsyncMock

import httpx
from fastapi.testclient import TestClient

from mock_services.payroll_api.main import REQUESTS, app as payroll_app
from payflow_deductions.api.dependencies import (
    get_affordability_client,
    get_deduction_request_client,
    get_directory_client,
)
from payflow_deductions.api.main import create_app
from payflow_deductions.domain.draft import DeductionDraftMachine, WizardContext
from payflow_deductions.domain.models import (
    AffordabilityAssessment,
    DeductionRequest,
    Employee,
    RiskLevel,
)
from payflow_deductions.infrastructure.clients.affordability import AffordabilityClient
from payflow_deductions.infrastructure.clients.deduction_requests import DeductionRequestClient
from payflow_deductions.infrastructure.clients.directory import DirectoryClient

INSTITUTION_ID = "inst-sacco-01"
PAYROLL_BASE_URL = "http://payroll.test"


def make_assessment(
    amount="50000",
    can_afford: bool = True,
    employee_id: str = "emp-001",
    recommendation: str = "",
) -> AffordabilityAssessment:
    """Scoring result for a 450,000 salary with 60,000 already deducted"""
    requested = Decimal(str(amount))
    return AffordabilityAssessment(
        employee_id=employee_id,
        basic_salary=Decimal("450000"),
        existing_deductions=Decimal("60000"),
        existing_deduction_percentage=13.33,
        requested_amount=requested,
        requested_deduction_percentage=float(requested / Decimal("4500")),
        net_salary_after_deduction=Decimal("390000") - requested,
        risk_level=RiskLevel.LOW if can_afford else RiskLevel.HIGH,
        risk_score=24.44 if can_afford else 46.67,
        can_afford=can_afford,
        recommendation=recommendation,
    )


def make_request(snapshot, request_id: str = "req-001") -> DeductionRequest:
    """Deduction request as the persistence service would echo it back"""
    return DeductionRequest(
        id=request_id,
        request_number="DR-000001",
        request_status="RESERVED" if snapshot.is_reservation else "PENDING",
        employee_id=snapshot.employee_id,
        employer_institution_id=snapshot.employer_institution_id,
        deduction_type=snapshot.deduction_type.value,
        amount=snapshot.amount,
        start_date=snapshot.start_date,
        end_date=snapshot.end_date,
        number_of_installments=snapshot.number_of_installments,
        remaining_installments=snapshot.number_of_installments,
        reason=snapshot.reason,
        external_reference=snapshot.external_reference,
    )


@pytest.fixture
def sample_employee() -> Employee:
    """Active employee resolvable by national ID MWI123456"""
    return Employee(
        id="emp-001",
        full_name="Chikondi Banda",
        employee_number="EMP-1001",
        national_id="MWI123456",
        employer_institution_id="inst-employer-01",
        employment_status="ACTIVE",
        basic_salary=Decimal("450000.00"),
    )


@pytest.fixture
def directory(sample_employee: Employee) -> AsyncMock:
    """Employee directory that always finds the sample employee"""
    fake = AsyncMock()
    fake.search_employees.return_value = [sample_employee]
    return fake


@pytest.fixture
def affordability() -> AsyncMock:
    """Scoring service that echoes an affordable verdict for any amount"""
    fake = AsyncMock()

    async def assess(employee_id, requested_amount):
        return make_assessment(requested_amount, employee_id=employee_id)

    fake.assess.side_effect = assess
    return fake


@pytest.fixture
def submissions() -> AsyncMock:
    """Persistence service that accepts every snapshot"""
    fake = AsyncMock()

    async def submit(snapshot):
        return make_request(snapshot)

    fake.submit.side_effect = submit
    return fake


@pytest.fixture
def machine(directory, affordability, submissions) -> DeductionDraftMachine:
    """Fresh draft machine with in-memory collaborators and no debounce"""
    return DeductionDraftMachine(
        context=WizardContext(institution_id=INSTITUTION_ID),
        directory=directory,
        affordability=affordability,
        submissions=submissions,
        debounce_seconds=0,
    )


@pytest.fixture
def payroll_transport() -> httpx.ASGITransport:
    """In-process transport to the mock payroll API, with its request store emptied"""
    REQUESTS.clear()
    return httpx.ASGITransport(app=payroll_app)


@pytest.fixture
def payroll_clients(payroll_transport):
    """Real HTTP clients wired to the mock payroll API"""
    options = dict(base_url=PAYROLL_BASE_URL, token="test-token", transport=payroll_transport)
    return (
        DirectoryClient(**options),
        AffordabilityClient(**options),
        DeductionRequestClient(**options),
    )


@pytest.fixture
def client(payroll_clients) -> TestClient:
    """Create FastAPI test client backed by the mock payroll API"""
    directory_client, affordability_client, request_client = payroll_clients
    app = create_app()
    app.dependency_overrides[get_directory_client] = lambda: directory_client
    app.dependency_overrides[get_affordability_client] = lambda: affordability_client
    app.dependency_overrides[get_deduction_request_client] = lambda: request_client
    return TestClient(app)
