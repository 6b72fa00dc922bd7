"""
Mock payment gateway for local development and tests.

Simulates the gateway's contract in-process:
  - Configurable latency (default none)
  - Scripted create-collect-request and status-query bodies, fed through the
    same alias resolution as the HTTP adapter
  - Scripted failures (any GatewayError) per call
  - Records every call for assertions
"""

import asyncio
import uuid
from typing import Any, Optional

from app.engine.errors import GatewayError
from app.providers.base import (
    CollectRequest,
    CollectRequestResult,
    CollectRequestStatus,
    PaymentGateway,
    parse_collect_result,
    parse_status_result,
)


class MockGateway(PaymentGateway):
    """
    In-process gateway double.

    By default a collect request succeeds with a fresh id and a hosted URL,
    and status queries report "PENDING".
    """

    def __init__(
        self,
        collect_response: Optional[dict[str, Any]] = None,
        status_response: Optional[dict[str, Any]] = None,
        create_error: Optional[GatewayError] = None,
        status_error: Optional[GatewayError] = None,
        latency_ms: int = 0,
    ):
        self.collect_response = collect_response
        self.status_response = status_response if status_response is not None else {"status": "PENDING"}
        self.create_error = create_error
        self.status_error = status_error
        self._latency_ms = latency_ms
        self.collect_requests: list[CollectRequest] = []
        self.status_queries: list[dict[str, str]] = []

    @property
    def name(self) -> str:
        return "mock_gateway"

    async def _simulate_latency(self) -> None:
        if self._latency_ms > 0:
            await asyncio.sleep(self._latency_ms / 1000)

    async def create_collect_request(self, request: CollectRequest) -> CollectRequestResult:
        await self._simulate_latency()
        self.collect_requests.append(request)
        if self.create_error is not None:
            raise self.create_error

        body = self.collect_response
        if body is None:
            collect_id = uuid.uuid4().hex[:24]
            body = {
                "collect_request_id": collect_id,
                "collect_request_url": f"https://pay.example.test/{collect_id}",
            }
        return parse_collect_result(body)

    async def get_collect_request_status(
        self,
        collect_request_id: str,
        school_id: str,
        sign: str,
    ) -> CollectRequestStatus:
        await self._simulate_latency()
        self.status_queries.append({
            "collect_request_id": collect_request_id,
            "school_id": school_id,
            "sign": sign,
        })
        if self.status_error is not None:
            raise self.status_error
        return parse_status_result(self.status_response)
