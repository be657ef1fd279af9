"""Domain models - pure Python dataclasses representing business entities"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional


class DeductionType(str, Enum):
    """Kinds of salary deduction an institution may request"""

    UNSELECTED = "UNSELECTED"
    SHARE = "SHARE"
    LOAN_REPAYMENT = "LOAN_REPAYMENT"
    FINE = "FINE"
    INSURANCE = "INSURANCE"
    OTHER = "OTHER"

    @property
    def label(self) -> str:
        return self.value.replace("_", " ").title()

    @classmethod
    def selectable(cls) -> List["DeductionType"]:
        """All real deduction types, excluding the unselected placeholder"""
        return [t for t in cls if t is not cls.UNSELECTED]


class RiskLevel(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class DraftState(str, Enum):
    """Lifecycle states of a deduction draft"""

    EMPTY = "empty"
    EMPLOYEE_SELECTED = "employee_selected"
    READY = "ready"
    SUBMITTING = "submitting"
    SUBMITTED = "submitted"
    FAILED = "failed"


class AffordabilityStatus(str, Enum):
    IDLE = "idle"
    PENDING = "pending"
    AVAILABLE = "available"
    FAILED = "failed"


@dataclass(frozen=True)
class Employee:
    """Employee record returned by the directory search"""

    id: str
    full_name: str
    employee_number: str
    national_id: str
    employer_institution_id: str
    employment_status: str
    basic_salary: Optional[Decimal] = None
    institution_id: Optional[str] = None
    first_name: str = ""
    last_name: str = ""
    email: str = ""

    @property
    def is_active(self) -> bool:
        return self.employment_status == "ACTIVE"


@dataclass(frozen=True)
class AffordabilityAssessment:
    """Risk verdict for a requested deduction, computed by the scoring service"""

    employee_id: str
    basic_salary: Decimal
    existing_deductions: Decimal
    existing_deduction_percentage: float
    requested_amount: Decimal
    requested_deduction_percentage: float
    net_salary_after_deduction: Decimal
    risk_level: RiskLevel
    risk_score: float
    can_afford: bool
    recommendation: str = ""
    total_deductions: Optional[Decimal] = None
    total_deduction_percentage: Optional[float] = None
    safe_deduction_limit: Optional[Decimal] = None
    available_amount: Optional[Decimal] = None
    assessment_result: str = ""
    assessed_at: Optional[datetime] = None


@dataclass(frozen=True)
class Installment:
    """Single monthly deduction in a repayment schedule"""

    sequence: int
    due_date: date
    amount: Decimal


@dataclass(frozen=True)
class DraftSnapshot:
    """Validated, immutable copy of a draft handed to the submission gateway"""

    requesting_institution_id: str
    employee_id: str
    employer_institution_id: str
    deduction_type: DeductionType
    amount: Decimal
    start_date: date
    end_date: Optional[date]
    number_of_installments: int
    reason: str
    external_reference: Optional[str] = None
    is_reservation: bool = False


@dataclass(frozen=True)
class DeductionRequest:
    """Deduction request created by the persistence service"""

    id: str
    request_number: str
    request_status: str
    employee_id: str
    employer_institution_id: str
    deduction_type: str
    amount: Decimal
    start_date: date
    end_date: Optional[date]
    number_of_installments: int
    remaining_installments: int
    reason: str
    external_reference: Optional[str] = None
    institution_id: Optional[str] = None
    requested_at: Optional[datetime] = None


@dataclass
class DeductionDraft:
    """In-progress deduction request owned by a single draft state machine.

    ``end_date`` is derived from ``start_date`` and ``number_of_installments``
    and is only ever written by the state machine.
    """

    employee_id: Optional[str] = None
    employer_institution_id: Optional[str] = None
    deduction_type: DeductionType = DeductionType.UNSELECTED
    amount: Optional[Decimal] = None
    start_date: Optional[date] = None
    number_of_installments: Optional[int] = None
    end_date: Optional[date] = None
    is_reservation: bool = False
    reason: str = ""
    external_reference: str = ""
    affordability: Optional[AffordabilityAssessment] = None
    field_errors: dict = field(default_factory=dict)
