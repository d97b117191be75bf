"""Unit tests for main.py lifespan startup logic."""

import pytest
from unittest.mock import MagicMock, patch
from fastapi.testclient import TestClient

from nodeboard.config import DashboardConfig
from nodeboard.services.actions import ActionSubmitter
from nodeboard.services.orchestrator import PollingOrchestrator


def _make_client(fake_client, config=None, env=None):
    """Create a TestClient running the lifespan against the fake backend."""
    from nodeboard.main import app

    app.state.config = config
    with patch("nodeboard.main.setup_logger") as mock_log:
        mock_log.return_value = MagicMock()
        with patch("nodeboard.main.PluginClient.from_config", return_value=fake_client) as from_config:
            with patch.dict("os.environ", env or {}, clear=False):
                with TestClient(app, raise_server_exceptions=True) as c:
                    yield c, mock_log, from_config
    app.state.config = None


@pytest.mark.unit
class TestLifespanStartup:
    """lifespan startup wiring."""

    def test_builds_services(self, fake_client, config):
        for c, mock_log, from_config in _make_client(fake_client, config):
            resp = c.get("/")
            assert resp.status_code == 200
            assert resp.json()["status"] == "ok"

            state = c.app.state
            assert isinstance(state.orchestrator, PollingOrchestrator)
            assert isinstance(state.submitter, ActionSubmitter)
            assert state.submitter.client is fake_client

        from_config.assert_called_once_with(config)

    def test_logger_uses_config(self, fake_client, config):
        config = config.model_copy(update={"log_file": "/tmp/nodeboard-test/nb.log", "log_level": "DEBUG"})

        for c, mock_log, _ in _make_client(fake_client, config):
            c.get("/")

        args, kwargs = mock_log.call_args
        assert args == ("nodeboard", "/tmp/nodeboard-test/nb.log")
        assert kwargs["level"] == 10

    def test_config_from_env_when_not_injected(self, fake_client):
        env = {"NODEBOARD_API_URL": "http://10.1.1.1:2000", "NODEBOARD_POOL_MODE": "staking"}

        for c, _, from_config in _make_client(fake_client, env=env):
            assert c.app.state.config.api_url == "http://10.1.1.1:2000"

        used = from_config.call_args[0][0]
        assert isinstance(used, DashboardConfig)
        assert used.pool_mode == "staking"


@pytest.mark.unit
class TestLifespanShutdown:

    def test_orchestrator_closed(self, fake_client, config):
        for c, _, _ in _make_client(fake_client, config):
            orchestrator = c.app.state.orchestrator

        assert all(not info["enabled"] for info in orchestrator.source_info().values())
