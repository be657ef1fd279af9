"""Pydantic schemas for API request/response validation"""

from datetime import date, datetime
from decimal import Decimal
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from payflow_deductions.config import settings
from payflow_deductions.domain.draft import DeductionDraftMachine
from payflow_deductions.domain.employee_search import SearchOutcome
from payflow_deductions.domain.models import (
    AffordabilityAssessment,
    DeductionRequest,
    DeductionType,
    Employee,
)


class CreateDraftRequest(BaseModel):
    """Request body for POST /v1/drafts"""

    institution_id: str = Field(..., min_length=1, description="Requesting institution identifier")
    require_affordability_confirmation: Optional[bool] = Field(
        None, description="Block submission until an affordability check confirms the amount"
    )


class EmployeeSearchRequest(BaseModel):
    """Request body for POST /v1/drafts/{draft_id}/employee-search"""

    query: str = Field("", description="National ID or employee number")


class SelectEmployeeRequest(BaseModel):
    """Request body for POST /v1/drafts/{draft_id}/employee"""

    employee_id: str = Field(..., min_length=1)


class DraftUpdateRequest(BaseModel):
    """Request body for PATCH /v1/drafts/{draft_id}; only fields sent are applied"""

    model_config = ConfigDict(extra="forbid")

    deduction_type: Optional[str] = None
    amount: Optional[Union[Decimal, str]] = None
    start_date: Optional[Union[date, str]] = None
    number_of_installments: Optional[Union[int, str]] = None
    is_reservation: Optional[bool] = None
    reason: Optional[str] = None
    external_reference: Optional[str] = None


class EmployeeSchema(BaseModel):
    id: str
    full_name: str
    employee_number: str
    national_id: str
    employer_institution_id: str
    employment_status: str
    basic_salary: Optional[Decimal] = None
    is_active: bool

    @classmethod
    def from_domain(cls, employee: Employee) -> "EmployeeSchema":
        return cls(
            id=employee.id,
            full_name=employee.full_name,
            employee_number=employee.employee_number,
            national_id=employee.national_id,
            employer_institution_id=employee.employer_institution_id,
            employment_status=employee.employment_status,
            basic_salary=employee.basic_salary,
            is_active=employee.is_active,
        )


class SearchResponse(BaseModel):
    """Response for POST /v1/drafts/{draft_id}/employee-search"""

    query: str
    employees: List[EmployeeSchema]
    searched: bool
    no_matches: bool
    stale: bool
    validation_message: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def from_outcome(cls, outcome: SearchOutcome) -> "SearchResponse":
        return cls(
            query=outcome.query,
            employees=[EmployeeSchema.from_domain(e) for e in outcome.results],
            searched=outcome.searched,
            no_matches=outcome.no_matches,
            stale=outcome.stale,
            validation_message=outcome.validation_message,
            error=outcome.error,
        )


class AssessmentSchema(BaseModel):
    basic_salary: Decimal
    existing_deductions: Decimal
    existing_deduction_percentage: float
    requested_amount: Decimal
    requested_deduction_percentage: float
    net_salary_after_deduction: Decimal
    risk_level: str
    risk_score: float
    can_afford: bool
    recommendation: str
    assessment_result: str
    assessed_at: Optional[datetime] = None

    @classmethod
    def from_domain(cls, a: AffordabilityAssessment) -> "AssessmentSchema":
        return cls(
            basic_salary=a.basic_salary,
            existing_deductions=a.existing_deductions,
            existing_deduction_percentage=a.existing_deduction_percentage,
            requested_amount=a.requested_amount,
            requested_deduction_percentage=a.requested_deduction_percentage,
            net_salary_after_deduction=a.net_salary_after_deduction,
            risk_level=a.risk_level.value,
            risk_score=a.risk_score,
            can_afford=a.can_afford,
            recommendation=a.recommendation,
            assessment_result=a.assessment_result,
            assessed_at=a.assessed_at,
        )


class AffordabilityView(BaseModel):
    status: str
    verdict: str
    error: Optional[str] = None
    assessment: Optional[AssessmentSchema] = None


class InstallmentSchema(BaseModel):
    """Single installment in a deduction schedule"""

    sequence: int
    due_date: date
    amount: Decimal


class DeductionRequestSchema(BaseModel):
    id: str
    request_number: str
    request_status: str
    employee_id: str
    employer_institution_id: str
    deduction_type: str
    amount: Decimal
    start_date: date
    end_date: Optional[date] = None
    number_of_installments: int
    remaining_installments: int
    reason: str
    external_reference: Optional[str] = None
    requested_at: Optional[datetime] = None

    @classmethod
    def from_domain(cls, r: DeductionRequest) -> "DeductionRequestSchema":
        return cls(
            id=r.id,
            request_number=r.request_number,
            request_status=r.request_status,
            employee_id=r.employee_id,
            employer_institution_id=r.employer_institution_id,
            deduction_type=r.deduction_type,
            amount=r.amount,
            start_date=r.start_date,
            end_date=r.end_date,
            number_of_installments=r.number_of_installments,
            remaining_installments=r.remaining_installments,
            reason=r.reason,
            external_reference=r.external_reference,
            requested_at=r.requested_at,
        )


class DraftView(BaseModel):
    """Full wizard state returned by every draft endpoint"""

    draft_id: str
    institution_id: str
    state: str
    ready: bool
    submit_label: str
    require_affordability_confirmation: bool
    employee: Optional[EmployeeSchema] = None
    currency: str
    deduction_type: Optional[str] = None
    amount: Optional[Decimal] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    number_of_installments: Optional[int] = None
    is_reservation: bool
    reason: str
    external_reference: str
    maturity_total: Optional[Decimal] = None
    installments: List[InstallmentSchema]
    affordability: AffordabilityView
    field_errors: Dict[str, str]
    validation_errors: List[str]
    last_error: Optional[str] = None
    last_request: Optional[DeductionRequestSchema] = None

    @classmethod
    def from_machine(cls, machine: DeductionDraftMachine) -> "DraftView":
        d = machine.draft
        return cls(
            draft_id=machine.draft_id,
            institution_id=machine.context.institution_id,
            state=machine.state.value,
            ready=machine.is_ready,
            submit_label=machine.submit_label,
            require_affordability_confirmation=machine.context.require_affordability_confirmation,
            currency=settings.currency_code,
            employee=EmployeeSchema.from_domain(machine.selected_employee) if machine.selected_employee else None,
            deduction_type=None if d.deduction_type is DeductionType.UNSELECTED else d.deduction_type.value,
            amount=d.amount,
            start_date=d.start_date,
            end_date=d.end_date,
            number_of_installments=d.number_of_installments,
            is_reservation=d.is_reservation,
            reason=d.reason,
            external_reference=d.external_reference,
            maturity_total=machine.maturity_total,
            installments=[
                InstallmentSchema(sequence=i.sequence, due_date=i.due_date, amount=i.amount)
                for i in machine.installments()
            ],
            affordability=AffordabilityView(
                status=machine.affordability_status.value,
                verdict=machine.verdict.value,
                error=machine.affordability_error,
                assessment=AssessmentSchema.from_domain(d.affordability) if d.affordability else None,
            ),
            field_errors=dict(d.field_errors),
            validation_errors=machine.validation_errors(),
            last_error=str(machine.last_error) if machine.last_error else None,
            last_request=DeductionRequestSchema.from_domain(machine.last_request) if machine.last_request else None,
        )


class SubmitResponse(BaseModel):
    """Response for POST /v1/drafts/{draft_id}/submit"""

    request: DeductionRequestSchema
    draft: DraftView


class DeductionTypeOption(BaseModel):
    value: str
    label: str
