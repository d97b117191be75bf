"""Integration tests: real PluginClient, orchestrator and submitter over a mocked transport."""

from unittest.mock import patch

import pytest

from conftest import WALLET_ADDRESS, make_async_client, make_response, wait_until
from nodeboard.models.status import DashboardState, SourceName
from nodeboard.services.actions import ActionSubmitter
from nodeboard.services.orchestrator import PollingOrchestrator, build_default_sources
from nodeboard.services.plugin_client import PluginClient


class FakeBackend:
    """Plugin HTTP surface keyed by endpoint path."""

    def __init__(self, report):
        self.bodies = {
            "/wallet-fetch": {"result": {"Wallet": WALLET_ADDRESS, "ethBalance": "3.2"}},
            "/status": {"result": {"NodeState": "NodeStarted", "Alive": True, "IsRegistered": False}},
            "/sync-state": {
                "result": {
                    "IsSynced": True,
                    "executionSyncProgress": 100,
                    "executionStepDescription": "Synced",
                    "consensusSyncProgress": "100",
                    "consensusStepDescription": "Synced",
                }
            },
            "/node-fetch": {"result": {"node": {"rpcUrl": "http://node:8545"}}},
            "/pools-fetch": {"result": {"pools": report}},
            "/register-node": {"result": "true", "stdOut": "registered"},
        }
        self.requests = []

    async def request(self, method, url, headers=None, json=None):
        path = "/" + url.rsplit("/", 1)[-1]
        self.requests.append((method, path, json))
        if path not in self.bodies:
            return make_response({"error": "not found"}, status_code=404)
        return make_response(self.bodies[path])


@pytest.mark.integration
class TestDashboardFlow:

    @pytest.fixture
    def backend(self, sample_report):
        return FakeBackend(sample_report)

    @pytest.mark.asyncio
    async def test_register_then_minipools(self, backend, config):
        mock_client = make_async_client(side_effect=backend.request)

        with patch("nodeboard.services.plugin_client.httpx.AsyncClient", return_value=mock_client):
            client = PluginClient.from_config(config)
            orch = PollingOrchestrator(build_default_sources(client, config))
            submitter = ActionSubmitter(client)
            try:
                orch.start_all()
                await wait_until(lambda: orch.decision.state == DashboardState.READY_TO_REGISTER)
                assert orch.latest(SourceName.MINIPOOLS) is None

                result = await submitter.submit("register-node")
                assert result.succeeded is True
                assert result.std_out == "registered"

                backend.bodies["/status"]["result"]["IsRegistered"] = True
                await orch.refresh(SourceName.STATUS)
                await wait_until(lambda: orch.latest(SourceName.MINIPOOLS) is not None)

                records = orch.latest(SourceName.MINIPOOLS)
                assert len(records) == 3
                assert records[2].is_prelaunch is True
                assert orch.decision.state == DashboardState.REGISTERED
                assert orch.latest(SourceName.NODE_INFO).rpc_url == "http://node:8545"
            finally:
                await orch.close()

        assert ("GET", "/register-node", None) in backend.requests

    @pytest.mark.asyncio
    async def test_backend_outage_keeps_dashboard_state(self, backend, config):
        mock_client = make_async_client(side_effect=backend.request)

        with patch("nodeboard.services.plugin_client.httpx.AsyncClient", return_value=mock_client):
            client = PluginClient.from_config(config)
            orch = PollingOrchestrator(build_default_sources(client, config))
            try:
                orch.start_all()
                await wait_until(lambda: orch.decision.state == DashboardState.READY_TO_REGISTER)

                del backend.bodies["/status"]
                await orch.refresh(SourceName.STATUS)

                assert orch.decision.state == DashboardState.READY_TO_REGISTER
                assert "HTTP 404" in orch.source_info()["status"]["last_error"]
            finally:
                await orch.close()
