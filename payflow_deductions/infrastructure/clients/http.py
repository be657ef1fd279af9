"""Shared httpx plumbing for the payroll API clients"""

import asyncio
from typing import Dict, Optional

import httpx

from payflow_deductions.config import settings
from payflow_deductions.domain.exceptions import GatewayNetworkError, GatewayServerError
from payflow_deductions.infrastructure.observability.metrics import gateway_failure_counter, gateway_latency_histogram


class PayrollApiClient:
    """Base for clients of the payroll API (directory, scoring, persistence)"""

    service = "payroll_api"

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        token: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = (base_url or settings.api_base_url).rstrip("/")
        self.timeout = timeout or settings.http_timeout_seconds
        self.token = settings.api_token if token is None else token
        self.max_retries = settings.gateway_max_retries
        self.backoff_base = settings.gateway_backoff_base
        self.transport = transport

    def _headers(self, extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        if extra:
            headers.update(extra)
        return headers

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout, transport=self.transport)

    async def _request_with_retry(self, method: str, path: str, **kwargs) -> httpx.Response:
        """
        Send an idempotent request, retrying server and network faults.

        Retry strategy:
        - Exponential backoff: base, 2*base, 4*base ... (base^attempt)
        - Retries on 5xx errors and network failures, never on 4xx
        - Tracks latency histogram and failure counter

        Raises:
            GatewayNetworkError: Timeout or connection failure after all retries
            GatewayServerError: 5xx after all retries
            httpx.HTTPStatusError: 4xx responses, for the caller to classify
        """
        attempt = 0
        async with self._client() as client:
            while True:
                try:
                    with gateway_latency_histogram.labels(service=self.service).time():
                        response = await client.request(method, path, headers=self._headers(), **kwargs)
                    if response.status_code < 500:
                        response.raise_for_status()
                        return response
                    failure: Exception = GatewayServerError(
                        f"{self.service} error: {response.status_code}", self.service
                    )
                except httpx.TimeoutException:
                    failure = GatewayNetworkError(f"{self.service} timeout after {self.timeout}s", self.service)
                except httpx.RequestError as e:
                    failure = GatewayNetworkError(f"{self.service} unreachable: {e}", self.service)

                attempt += 1
                gateway_failure_counter.labels(service=self.service).inc()
                if attempt >= self.max_retries:
                    raise failure

                # Exponential backoff: 0.25s, 0.5s, 1s ...
                backoff = self.backoff_base * (2 ** (attempt - 1))
                await asyncio.sleep(backoff)


def error_detail(response: httpx.Response) -> str:
    """Best-effort human readable message from an error response"""
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(body, dict):
        for key in ("message", "detail", "error"):
            if body.get(key):
                return str(body[key])
    return str(body)
