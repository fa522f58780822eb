"""
Service Bus Client
------------------
Async httpx client for the local Command Argus REST API.
Intended for presentation layers written in Python.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum, auto
from typing import Any, Dict, List, Optional
import logging

import httpx


class APIStatus(Enum):
    """Status of an API response."""
    SUCCESS = auto()
    NOT_FOUND = auto()
    VALIDATION_ERROR = auto()
    SPAWN_FAILED = auto()
    SERVER_ERROR = auto()
    TIMEOUT = auto()
    NETWORK_ERROR = auto()


@dataclass
class APIConfig:
    """Configuration for the client."""
    base_url: str = "http://127.0.0.1:8765"
    timeout_seconds: Optional[float] = None  # executions may run for a long time


@dataclass
class APIResponse:
    """Response from an API call."""
    status: APIStatus
    data: Optional[Any] = None
    error: Optional[str] = None
    status_code: int = 0
    response_time_ms: float = 0.0

    @property
    def success(self) -> bool:
        return self.status == APIStatus.SUCCESS


class ArgusClient:
    """
    Client for the service bus.

    Errors come back as APIResponse statuses rather than exceptions.
    A spawn failure carries the sentinel result in `data`.
    """

    def __init__(
        self,
        config: Optional[APIConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config or APIConfig()
        self._transport = transport
        self._logger = logging.getLogger("argus.api.client")

    async def health(self) -> APIResponse:
        return await self._request("GET", "/health")

    async def list_commands(self, query: Optional[str] = None) -> APIResponse:
        params = {"q": query} if query else None
        return await self._request("GET", "/commands", params=params)

    async def search_by_tags(self, tags: List[str]) -> APIResponse:
        return await self._request("GET", "/commands/search/tags", params={"tag": tags})

    async def get_command(self, command_id: str) -> APIResponse:
        return await self._request("GET", f"/commands/{command_id}")

    async def required_parameters(self, command_id: str) -> APIResponse:
        return await self._request("GET", f"/commands/{command_id}/parameters")

    async def create_command(self, payload: Dict[str, Any]) -> APIResponse:
        return await self._request("POST", "/commands", json=payload)

    async def update_command(self, command_id: str, payload: Dict[str, Any]) -> APIResponse:
        return await self._request("PATCH", f"/commands/{command_id}", json=payload)

    async def delete_command(self, command_id: str) -> APIResponse:
        return await self._request("DELETE", f"/commands/{command_id}")

    async def execute_command(
        self,
        command_id: str,
        use_shell: Optional[bool] = None,
        parameters: Optional[Dict[str, str]] = None,
    ) -> APIResponse:
        payload: Dict[str, Any] = {"parameters": parameters or {}}
        if use_shell is not None:
            payload["use_shell"] = use_shell
        return await self._request("POST", f"/commands/{command_id}/execute", json=payload)

    async def _request(
        self,
        method: str,
        endpoint: str,
        params: Optional[Dict] = None,
        json: Optional[Dict] = None,
    ) -> APIResponse:
        """Make an HTTP request with error handling."""
        url = f"{self.config.base_url.rstrip('/')}/{endpoint.lstrip('/')}"
        start_time = datetime.now()

        try:
            async with httpx.AsyncClient(
                timeout=self.config.timeout_seconds,
                transport=self._transport,
            ) as client:
                response = await client.request(method=method, url=url, params=params, json=json)
        except httpx.TimeoutException:
            return APIResponse(status=APIStatus.TIMEOUT, error="Request timed out")
        except httpx.NetworkError as e:
            return APIResponse(status=APIStatus.NETWORK_ERROR, error=f"Network error: {e}")

        response_time = (datetime.now() - start_time).total_seconds() * 1000
        body = self._decode(response)

        if response.status_code < 300:
            return APIResponse(
                status=APIStatus.SUCCESS,
                data=body,
                status_code=response.status_code,
                response_time_ms=response_time,
            )

        error = None
        if isinstance(body, dict):
            detail = body.get("detail")
            error = body.get("message") or (str(detail) if detail else None)
        elif isinstance(body, str) and body:
            error = body
        if response.status_code == 404:
            status = APIStatus.NOT_FOUND
        elif response.status_code == 422:
            status = APIStatus.VALIDATION_ERROR
        elif response.status_code == 400 and isinstance(body, dict) and "result" in body:
            status = APIStatus.SPAWN_FAILED
            body = body["result"]
        else:
            status = APIStatus.SERVER_ERROR

        self._logger.warning(f"{method} {endpoint} -> {response.status_code}: {error}")
        return APIResponse(
            status=status,
            data=body if status == APIStatus.SPAWN_FAILED else None,
            error=error or f"Unexpected status: {response.status_code}",
            status_code=response.status_code,
            response_time_ms=response_time,
        )

    @staticmethod
    def _decode(response: httpx.Response) -> Optional[Any]:
        """JSON body, the raw text for non-JSON bodies, None when empty."""
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return response.text
