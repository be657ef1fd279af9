"""Contracts for the external collaborators used by the deduction workflow"""

from decimal import Decimal
from typing import List, Protocol, runtime_checkable

from payflow_deductions.domain.models import (
    AffordabilityAssessment,
    DeductionRequest,
    DraftSnapshot,
    Employee,
)


@runtime_checkable
class EmployeeDirectory(Protocol):
    """Free-text employee search (national ID or employee number)"""

    async def search_employees(self, query: str) -> List[Employee]:
        ...


@runtime_checkable
class AffordabilityGateway(Protocol):
    """Read-only risk query; safe to repeat"""

    async def assess(self, employee_id: str, requested_amount: Decimal) -> AffordabilityAssessment:
        ...


@runtime_checkable
class SubmissionGateway(Protocol):
    """All-or-nothing creation of a deduction request"""

    async def submit(self, snapshot: DraftSnapshot) -> DeductionRequest:
        ...
