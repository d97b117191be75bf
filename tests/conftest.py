"""Global pytest fixtures and configuration."""

import asyncio
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from nodeboard.config import DashboardConfig  # noqa: E402
from nodeboard.models.node import NodeStatus, SyncProgress, Wallet  # noqa: E402

WALLET_ADDRESS = "0x5e3Ef299fDDf15eAa0432E6e66473ace8c13D908"
POOL_ADDRESS = "0x0fbdc0ba9ba0a4b8c2b4a8a2e0a1d6c3f5e7a9b1"


@pytest.fixture
def config():
    """Config with long intervals so tests drive polls explicitly."""
    return DashboardConfig(
        api_url="http://keepix.test:2000",
        status_interval=60,
        wallet_interval=60,
        sync_interval=60,
        node_info_interval=60,
        minipools_interval=60,
        staking_pools_interval=60,
    )


@pytest.fixture
def sample_report():
    """Minipool report: one staking section, one prelaunch section, two trailers."""
    blocks = [
        "2 Staking minipool(s):",
        "Address:              0x1111\nStatus:               Staking\nNode deposit:         16.000000 ETH\nRP deposit:           16.000000 ETH",
        "Address:              0x2222\nStatus:               Staking\nNode deposit:         8.000000 ETH\nRP deposit:           24.000000 ETH",
        "1 Prelaunch minipool(s):",
        "Address:              0x3333\nStatus:               Prelaunch\nNode deposit:         8.000000 ETH\nRP deposit:           0.000000 ETH",
        "",
        "0 finalized minipool(s)",
        "Use 'rocketpool minipool status' to see more.",
    ]
    return "\n\n".join(blocks)


def make_response(json_body: Any = None, status_code: int = 200, text: Optional[str] = None):
    """Mock httpx.Response as returned inside ``async with AsyncClient()``."""
    response = MagicMock()
    response.status_code = status_code
    response.text = text if text is not None else json.dumps(json_body)
    if status_code >= 400:
        response.raise_for_status = MagicMock(
            side_effect=httpx.HTTPStatusError(
                f"HTTP {status_code}", request=MagicMock(), response=response
            )
        )
    else:
        response.raise_for_status = MagicMock()
    return response


def make_async_client(response=None, side_effect=None):
    """Mock httpx.AsyncClient usable as an async context manager."""
    client = AsyncMock()
    client.request = AsyncMock(return_value=response, side_effect=side_effect)
    client.__aenter__ = AsyncMock(return_value=client)
    client.__aexit__ = AsyncMock(return_value=False)
    return client


class FakePluginClient:
    """In-memory stand-in for PluginClient with mutable backend state."""

    def __init__(self):
        self.status: Optional[NodeStatus] = NodeStatus(NodeState="Running", Alive=True, IsRegistered=False)
        self.wallet = Wallet(Wallet=WALLET_ADDRESS)
        self.sync = SyncProgress(is_synced=False, execution_progress=40, consensus_progress=90)
        self.report: Dict[str, Any] = {"pools": ""}
        self.calls: Dict[str, int] = {}
        self.order: List[str] = []
        self.errors: Dict[str, Exception] = {}
        self.action_responses: List[Dict[str, Any]] = []

    def _record(self, name: str):
        self.calls[name] = self.calls.get(name, 0) + 1
        self.order.append(name)
        if name in self.errors:
            raise self.errors[name]

    async def get_status(self):
        self._record("status")
        await asyncio.sleep(0)
        return self.status

    async def get_wallet(self):
        self._record("wallet")
        await asyncio.sleep(0)
        return self.wallet

    async def get_sync_progress(self, execution_client="execution", consensus_client="consensus"):
        self._record("sync_progress")
        await asyncio.sleep(0)
        return self.sync

    async def get_minipool_report(self):
        self._record("minipools")
        await asyncio.sleep(0)
        return self.report

    async def get_staking_pools(self):
        self._record("staking_pools")
        return []

    async def get_node_info(self):
        self._record("node_info")
        return None

    async def post_action(self, endpoint, method="GET", body=None):
        self._record(f"action:{endpoint}")
        if self.action_responses:
            return self.action_responses.pop(0)
        return {"result": True, "stdOut": None}


@pytest.fixture
def fake_client():
    return FakePluginClient()


async def wait_until(predicate, timeout: float = 2.0, step: float = 0.01):
    """Poll ``predicate`` until true; fail the test on timeout."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met before timeout")
        await asyncio.sleep(step)
