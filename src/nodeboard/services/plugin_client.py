"""HTTP client for the Keepix plugin backend."""

import json
import logging
from typing import Any, Callable, Dict, List, Optional

import httpx

from nodeboard.config import DashboardConfig
from nodeboard.models.node import NodeInfo, NodeStatus, StakingPool, SyncProgress, Wallet

Projection = Callable[[Dict[str, Any]], Any]


class PluginClientError(Exception):
    """Base error for backend calls."""

    def __init__(self, operation: str, message: str):
        super().__init__(message)
        self.operation = operation


class NetworkError(PluginClientError):
    """Transport failure, timeout or non-2xx response."""


class ParseError(PluginClientError):
    """Response body is not a JSON envelope."""


def result_projection(data: Dict[str, Any]) -> Any:
    return data.get("result")


def action_projection(data: Dict[str, Any]) -> Dict[str, Any]:
    """Keep stdOut next to result so failures can be diagnosed."""
    return {"result": data.get("result"), "stdOut": data.get("stdOut")}


class PluginClient:
    """Typed wrapper over the plugin's HTTP surface.

    No retries here; the orchestrator owns retry policy.
    """

    def __init__(self, base_url: str, timeout: float = 30.0):
        """Initialize plugin client.

        Args:
            base_url: Plugin base URL, e.g. http://host:2000/plugins/<plugin>
            timeout: Per-request timeout in seconds
        """
        self.logger = logging.getLogger("nodeboard.client")
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    @classmethod
    def from_config(cls, config: DashboardConfig) -> "PluginClient":
        return cls(config.plugin_base_url, timeout=config.request_timeout)

    async def call(
        self,
        endpoint: str,
        method: str = "GET",
        body: Optional[Dict[str, Any]] = None,
        name: Optional[str] = None,
        projection: Optional[Projection] = None,
    ) -> Any:
        """Call a plugin endpoint and project the JSON envelope.

        Args:
            endpoint: Path suffix, e.g. "/status"
            method: HTTP method (GET or POST)
            body: JSON body, only sent for POST
            name: Logical operation name used in error messages
            projection: Envelope projection (default: the ``result`` field)

        Returns:
            Projected envelope

        Raises:
            NetworkError: On transport failure, timeout or non-2xx status
            ParseError: If the body is not a JSON object
        """
        operation = name or endpoint.strip("/")
        url = f"{self.base_url}{endpoint}"
        method = method.upper()
        payload = body if method == "POST" else None

        self.logger.debug(f"{operation}: {method} {url}")

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.request(
                    method,
                    url,
                    headers={"Content-Type": "application/json"},
                    json=payload,
                )
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise NetworkError(
                operation,
                f"{operation} call failed: HTTP {e.response.status_code}",
            ) from e
        except httpx.TimeoutException as e:
            raise NetworkError(operation, f"{operation} call failed: timed out") from e
        except httpx.HTTPError as e:
            raise NetworkError(operation, f"{operation} call failed: {e}") from e

        try:
            data = json.loads(response.text)
        except ValueError as e:
            raise ParseError(operation, f"{operation} returned invalid JSON: {e}") from e
        if not isinstance(data, dict):
            raise ParseError(operation, f"{operation} returned {type(data).__name__}, expected object")

        return (projection or result_projection)(data)

    async def get_status(self) -> NodeStatus:
        result = await self.call("/status", name="getPluginStatus")
        return self._validate("getPluginStatus", NodeStatus.model_validate, result)

    async def get_wallet(self) -> Wallet:
        result = await self.call("/wallet-fetch", name="getPluginWallet")
        return self._validate("getPluginWallet", Wallet.model_validate, result or {})

    async def get_sync_progress(
        self, execution_client: str = "execution", consensus_client: str = "consensus"
    ) -> SyncProgress:
        result = await self.call("/sync-state", name="getPluginSyncProgress")
        return self._validate(
            "getPluginSyncProgress",
            lambda r: SyncProgress.from_result(r, execution_client, consensus_client),
            result,
        )

    async def get_minipool_report(self) -> Any:
        """Raw /pools-fetch result, ``{"pools": "<text report>"}``."""
        return await self.call("/pools-fetch", name="getMinipools")

    async def get_staking_pools(self) -> List[StakingPool]:
        result = await self.call("/pools-fetch", name="getStakingPools")
        if not isinstance(result, list):
            raise ParseError("getStakingPools", "getStakingPools returned no pool list")
        return [self._validate("getStakingPools", StakingPool.model_validate, p) for p in result]

    async def get_node_info(self) -> NodeInfo:
        result = await self.call("/node-fetch", name="getPluginNodeInformation")
        node = result.get("node") if isinstance(result, dict) else None
        return self._validate("getPluginNodeInformation", NodeInfo.model_validate, node)

    async def post_action(
        self, endpoint: str, method: str = "GET", body: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """Mutating call; returns ``{"result": ..., "stdOut": ...}``."""
        return await self.call(
            endpoint,
            method=method,
            body=body,
            name=f"action{endpoint}",
            projection=action_projection,
        )

    @staticmethod
    def _validate(operation: str, build: Callable[[Any], Any], value: Any) -> Any:
        if not isinstance(value, dict):
            raise ParseError(operation, f"{operation} result is not an object")
        try:
            return build(value)
        except ValueError as e:
            raise ParseError(operation, f"{operation} result rejected: {e}") from e
