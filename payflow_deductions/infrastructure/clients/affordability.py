"""Affordability scoring HTTP client"""

from decimal import Decimal
from typing import Any, Dict

import httpx

from payflow_deductions.domain.exceptions import GatewayServerError
from payflow_deductions.domain.models import AffordabilityAssessment, RiskLevel
from payflow_deductions.infrastructure.clients.http import PayrollApiClient, error_detail
from payflow_deductions.utils.date_utils import parse_iso_datetime


def _money(value) -> Decimal:
    return Decimal(str(value))


def _optional_money(value):
    return None if value is None else Decimal(str(value))


def parse_assessment(employee_id: str, data: Dict[str, Any]) -> AffordabilityAssessment:
    """Map the scoring service's ``data`` envelope onto the domain model"""
    a = data["affordability_assessment"]
    return AffordabilityAssessment(
        employee_id=employee_id,
        basic_salary=_money(a["basic_salary"]),
        existing_deductions=_money(a["existing_deductions"]),
        existing_deduction_percentage=float(a["existing_deduction_percentage"]),
        requested_amount=_money(a["requested_amount"]),
        requested_deduction_percentage=float(a["requested_deduction_percentage"]),
        net_salary_after_deduction=_money(a["net_salary_after_deduction"]),
        risk_level=RiskLevel(str(a["risk_level"]).upper()),
        risk_score=float(a["risk_score"]),
        can_afford=bool(a["can_afford"]),
        recommendation=data.get("recommendation") or "",
        total_deductions=_optional_money(a.get("total_deductions")),
        total_deduction_percentage=a.get("total_deduction_percentage"),
        safe_deduction_limit=_optional_money(a.get("safe_deduction_limit")),
        available_amount=_optional_money(a.get("available_amount")),
        assessment_result=a.get("assessment_result") or "",
        assessed_at=parse_iso_datetime(data.get("assessment_date")),
    )


class AffordabilityClient(PayrollApiClient):
    """Client for the read-only affordability scoring API"""

    service = "affordability"

    async def assess(self, employee_id: str, requested_amount: Decimal) -> AffordabilityAssessment:
        """
        Ask the scoring service whether the employee can afford the deduction.

        Raises:
            GatewayNetworkError: On timeout or connection failure
            GatewayServerError: On HTTP errors, an unsuccessful envelope or invalid response
        """
        payload = {"employee_id": employee_id, "requested_amount": float(requested_amount)}
        try:
            response = await self._request_with_retry(
                "POST", "/api/deduction-requests/affordability", json=payload
            )
            body = response.json()
            if not body.get("success", False):
                raise GatewayServerError(
                    f"Affordability check unsuccessful: {body.get('message', 'no message')}", self.service
                )
            return parse_assessment(employee_id, body["data"])

        except httpx.HTTPStatusError as e:
            raise GatewayServerError(
                f"Affordability error: {e.response.status_code} {error_detail(e.response)}", self.service
            ) from e
        except (KeyError, ValueError, TypeError, AttributeError) as e:
            raise GatewayServerError(f"Invalid affordability data: {e}", self.service) from e
