"""
End-to-end wizard flows against the mock payroll API.

Each scenario drives a draft machine with the real HTTP clients, so search,
scoring and persistence go through the same wire formats as production.
"""

import pytest
from datetime import date
from decimal import Decimal

from mock_services.payroll_api.main import REQUESTS
from payflow_deductions.domain.affordability import AffordabilityVerdict
from payflow_deductions.domain.draft import DeductionDraftMachine, WizardContext
from payflow_deductions.domain.models import DraftState, RiskLevel

pytestmark = pytest.mark.integration


def wizard(payroll_clients, **context) -> DeductionDraftMachine:
    directory, affordability, submissions = payroll_clients
    return DeductionDraftMachine(
        WizardContext(institution_id="inst-sacco-01", **context),
        directory,
        affordability,
        submissions,
        debounce_seconds=0,
    )


async def test_loan_repayment_for_active_employee(payroll_clients):
    """
    Persona: SACCO officer deducting a loan for employee MWI123456

    Salary: 450,000
    Existing deductions: 60,000
    Request: 50,000 monthly for 6 months from 2025-03-01
    Expected: affordable, ends 2025-09-01, 300,000 total, request created
    """
    machine = wizard(payroll_clients)

    outcome = await machine.search_employees("MWI123456")
    assert len(outcome.results) == 1
    await machine.select_employee(outcome.results[0])

    await machine.edit_field("deduction_type", "LOAN_REPAYMENT")
    await machine.edit_field("amount", "50000")
    await machine.edit_field("start_date", "2025-03-01")
    await machine.edit_field("number_of_installments", "6")
    await machine.edit_field("reason", "Equipment loan")

    assert machine.draft.end_date == date(2025, 9, 1)
    assert machine.maturity_total == Decimal("300000.00")
    assert machine.verdict is AffordabilityVerdict.AFFORDABLE
    assert machine.draft.affordability.risk_level is RiskLevel.LOW

    created = await machine.submit()

    assert created is not None
    assert created.id in REQUESTS
    assert REQUESTS[created.id]["end_date"] == "2025-09-01"
    assert machine.state is DraftState.SUBMITTED


async def test_affordability_check_flow_blocks_until_amount_fits(payroll_clients):
    """
    Persona: HR officer running the affordability check before a request

    Salary: 120,000
    Existing deductions: 40,000
    Safe limit: 48,000 in total, so at most 8,000 more
    Expected: 20,000 is refused, 5,000 is accepted
    """
    machine = wizard(payroll_clients, require_affordability_confirmation=True)

    outcome = await machine.search_employees("EMP-1002")
    await machine.select_employee(outcome.results[0])
    await machine.edit_field("deduction_type", "INSURANCE")
    await machine.edit_field("start_date", "2025-01-31")
    await machine.edit_field("number_of_installments", 1)
    await machine.edit_field("reason", "Medical cover")

    await machine.edit_field("amount", "20000")
    assert machine.verdict is AffordabilityVerdict.NOT_AFFORDABLE
    assert machine.draft.affordability.risk_level is RiskLevel.HIGH
    assert await machine.submit() is None
    assert machine.last_validation_errors == ["Requested amount exceeds the safe deduction limit."]

    await machine.edit_field("amount", "5000")
    assert machine.state is DraftState.READY
    assert machine.draft.end_date == date(2025, 2, 28)

    created = await machine.submit()
    assert created.amount == Decimal("5000.00")
    assert len(REQUESTS) == 1


async def test_directory_miss_then_hit(payroll_clients):
    machine = wizard(payroll_clients)

    miss = await machine.search_employees("MWI999999")
    assert miss.no_matches is True

    hit = await machine.search_employees("emp-1001")
    assert [e.national_id for e in hit.results] == ["MWI123456"]
