"""GET /v1/deduction-types - Selectable deduction types for the wizard"""

from typing import List
from fastapi import APIRouter

from payflow_deductions.api.v1.schemas import DeductionTypeOption
from payflow_deductions.domain.models import DeductionType

router = APIRouter()


@router.get("/deduction-types", response_model=List[DeductionTypeOption])
def list_deduction_types():
    """Real deduction types only; the unselected placeholder is never offered"""
    return [DeductionTypeOption(value=t.value, label=t.label) for t in DeductionType.selectable()]
