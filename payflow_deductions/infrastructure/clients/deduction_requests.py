"""Deduction request persistence HTTP client"""

from decimal import Decimal
from typing import Any, Dict

import httpx

from payflow_deductions.domain.exceptions import GatewayNetworkError, GatewayServerError, SubmissionRejected
from payflow_deductions.domain.models import DeductionRequest, DraftSnapshot
from payflow_deductions.infrastructure.clients.http import PayrollApiClient, error_detail
from payflow_deductions.infrastructure.observability.metrics import gateway_failure_counter, gateway_latency_histogram
from payflow_deductions.utils.date_utils import parse_iso_date, parse_iso_datetime


def build_payload(snapshot: DraftSnapshot) -> Dict[str, Any]:
    """Request body for POST /api/deduction-requests"""
    payload: Dict[str, Any] = {
        "employee_id": snapshot.employee_id,
        "employer_institution_id": snapshot.employer_institution_id,
        "deduction_type": snapshot.deduction_type.value,
        "amount": float(snapshot.amount),
        "start_date": snapshot.start_date.isoformat(),
        "number_of_installments": snapshot.number_of_installments,
        "reason": snapshot.reason,
        "is_reservation": snapshot.is_reservation,
    }
    if snapshot.end_date is not None:
        payload["end_date"] = snapshot.end_date.isoformat()
    if snapshot.external_reference:
        payload["external_reference"] = snapshot.external_reference
    return payload


def parse_request(raw: Dict[str, Any]) -> DeductionRequest:
    return DeductionRequest(
        id=raw["id"],
        request_number=raw.get("request_number", ""),
        request_status=raw.get("request_status", ""),
        employee_id=raw["employee_id"],
        employer_institution_id=raw["employer_institution_id"],
        deduction_type=raw["deduction_type"],
        amount=Decimal(str(raw["amount"])),
        start_date=parse_iso_date(raw["start_date"]),
        end_date=parse_iso_date(raw.get("end_date")),
        number_of_installments=int(raw["number_of_installments"]),
        remaining_installments=int(raw.get("remaining_installments", raw["number_of_installments"])),
        reason=raw.get("reason", ""),
        external_reference=raw.get("external_reference"),
        institution_id=raw.get("institution_id"),
        requested_at=parse_iso_datetime(raw.get("requested_at")),
    )


class DeductionRequestClient(PayrollApiClient):
    """Client for creating deduction requests"""

    service = "deduction_requests"

    async def submit(self, snapshot: DraftSnapshot) -> DeductionRequest:
        """
        Create a deduction request from a validated draft snapshot.

        Creation is not idempotent, so there is exactly one attempt.

        Raises:
            SubmissionRejected: 4xx, the service refused the request
            GatewayServerError: 5xx or invalid response
            GatewayNetworkError: Timeout or connection failure
        """
        headers = self._headers({"X-Institution-Id": snapshot.requesting_institution_id})
        async with self._client() as client:
            try:
                with gateway_latency_histogram.labels(service=self.service).time():
                    response = await client.post(
                        "/api/deduction-requests",
                        json=build_payload(snapshot),
                        headers=headers,
                    )
                response.raise_for_status()
                return parse_request(response.json()["data"])

            except httpx.TimeoutException as e:
                gateway_failure_counter.labels(service=self.service).inc()
                raise GatewayNetworkError(f"Deduction request timeout after {self.timeout}s", self.service) from e
            except httpx.RequestError as e:
                gateway_failure_counter.labels(service=self.service).inc()
                raise GatewayNetworkError(f"Deduction request service unreachable: {e}", self.service) from e
            except httpx.HTTPStatusError as e:
                gateway_failure_counter.labels(service=self.service).inc()
                if e.response.status_code < 500:
                    raise SubmissionRejected(
                        error_detail(e.response), self.service, status_code=e.response.status_code
                    ) from e
                raise GatewayServerError(f"Deduction request error: {e.response.status_code}", self.service) from e
            except (KeyError, ValueError, TypeError) as e:
                raise GatewayServerError(f"Invalid deduction request data: {e}", self.service) from e
