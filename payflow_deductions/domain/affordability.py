"""Interpretation of affordability assessments returned by the scoring service"""

from decimal import Decimal
from enum import Enum
from typing import Optional

from payflow_deductions.domain.exceptions import ValidationError
from payflow_deductions.domain.models import AffordabilityAssessment


class AffordabilityVerdict(str, Enum):
    """Banner shown next to the amount field"""

    AFFORDABLE = "affordable"
    NOT_AFFORDABLE = "not_affordable"
    UNKNOWN = "unknown"


def ensure_assessable(employee_id: Optional[str], requested_amount: Optional[Decimal]) -> None:
    """
    Check the preconditions for asking the scoring service.

    Raises:
        ValidationError: When there is no employee or the amount is not positive
    """
    if not employee_id:
        raise ValidationError("No employee selected.")
    if requested_amount is None or requested_amount <= 0:
        raise ValidationError("Please enter a valid amount.")


def affordability_verdict(assessment: Optional[AffordabilityAssessment]) -> AffordabilityVerdict:
    if assessment is None:
        return AffordabilityVerdict.UNKNOWN
    if assessment.can_afford:
        return AffordabilityVerdict.AFFORDABLE
    return AffordabilityVerdict.NOT_AFFORDABLE


def affordability_gate(
    assessment: Optional[AffordabilityAssessment],
    confirmation_required: bool,
) -> Optional[str]:
    """
    Decide whether the assessment state blocks submission.

    Rules:
    - An assessment that says the employee cannot afford the deduction always blocks
    - A missing assessment blocks only when the calling flow requires confirmation

    Returns the blocking reason, or None when submission may proceed.
    """
    if assessment is not None:
        if assessment.can_afford:
            return None
        return assessment.recommendation or "Employee cannot afford the requested deduction."
    if confirmation_required:
        return "Please complete affordability check first."
    return None
