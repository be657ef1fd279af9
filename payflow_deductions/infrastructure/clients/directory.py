"""Employee directory HTTP client for resolving employees by national ID or number"""

from decimal import Decimal
from typing import Any, Dict, List

import httpx

from payflow_deductions.config import settings
from payflow_deductions.domain.exceptions import GatewayServerError
from payflow_deductions.domain.models import Employee
from payflow_deductions.infrastructure.clients.http import PayrollApiClient, error_detail


def parse_employee(raw: Dict[str, Any]) -> Employee:
    """Map a directory record onto the domain model"""
    employer = raw.get("employer") or {}
    salary = raw.get("basic_salary")
    return Employee(
        id=raw["id"],
        full_name=raw.get("full_name") or " ".join(
            p for p in (raw.get("first_name"), raw.get("last_name")) if p
        ),
        employee_number=raw["employee_number"],
        national_id=raw.get("national_id", ""),
        employer_institution_id=employer.get("id") or raw.get("employer_institution_id", ""),
        employment_status=raw.get("employment_status", ""),
        basic_salary=Decimal(str(salary)) if salary not in (None, "") else None,
        institution_id=raw.get("institution_id"),
        first_name=raw.get("first_name", ""),
        last_name=raw.get("last_name", ""),
        email=raw.get("email", ""),
    )


class DirectoryClient(PayrollApiClient):
    """Client for the employee directory search API"""

    service = "directory"

    async def search_employees(self, query: str, limit: int | None = None, page: int = 1) -> List[Employee]:
        """
        Search employees across employers by free text.

        Raises:
            GatewayNetworkError: On timeout or connection failure
            GatewayServerError: On HTTP errors or invalid response
        """
        params = {"q": query, "limit": limit or settings.search_page_limit, "page": page}
        try:
            response = await self._request_with_retry(
                "GET", "/api/deduction-requests/search/employees", params=params
            )
            data = response.json()
            return [parse_employee(raw) for raw in data["data"]["employees"]]

        except httpx.HTTPStatusError as e:
            raise GatewayServerError(
                f"Directory error: {e.response.status_code} {error_detail(e.response)}", self.service
            ) from e
        except (KeyError, ValueError, TypeError) as e:
            raise GatewayServerError(f"Invalid employee data from directory: {e}", self.service) from e
