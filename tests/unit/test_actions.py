"""Unit tests for ActionSubmitter."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from conftest import POOL_ADDRESS, wait_until
from nodeboard.services.actions import NODE_TARGET, ActionSubmitter
from nodeboard.services.plugin_client import NetworkError


@pytest.fixture
def client():
    client = AsyncMock()
    client.post_action.return_value = {"result": True, "stdOut": None}
    return client


@pytest.fixture
def submitter(client):
    return ActionSubmitter(client, execution_client="bor", consensus_client="heimdall")


@pytest.mark.unit
class TestSubmit:

    @pytest.mark.asyncio
    async def test_string_true_is_success(self, submitter, client):
        client.post_action.return_value = {"result": "true"}

        result = await submitter.submit("stop")

        assert result.succeeded is True
        client.post_action.assert_awaited_once_with("/stop", method="GET", body=None)

    @pytest.mark.asyncio
    async def test_result_false_is_failure_with_stdout(self, submitter, client):
        client.post_action.return_value = {"result": False, "stdOut": "err"}

        result = await submitter.submit("stop")

        assert result.succeeded is False
        assert result.std_out == "err"

    @pytest.mark.asyncio
    async def test_missing_result_counts_as_success(self, submitter, client):
        client.post_action.return_value = {"result": None, "stdOut": "ok"}

        result = await submitter.submit("register-node")

        assert result.succeeded is True

    @pytest.mark.asyncio
    async def test_unknown_action(self, submitter, client):
        with pytest.raises(ValueError):
            await submitter.submit("format-disk")

        client.post_action.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_fields(self, submitter, client):
        with pytest.raises(ValueError) as exc_info:
            await submitter.submit("stake", {"address": POOL_ADDRESS})

        assert "amount" in str(exc_info.value)
        client.post_action.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_network_error_propagates_and_clears_pending(self, submitter, client):
        client.post_action.side_effect = NetworkError("action/start", "connection refused")

        with pytest.raises(NetworkError):
            await submitter.submit("start")

        assert not submitter.is_pending(NODE_TARGET)

    @pytest.mark.asyncio
    async def test_target_pending_while_in_flight(self, submitter, client):
        gate = asyncio.Event()

        async def slow_action(endpoint, method="GET", body=None):
            await gate.wait()
            return {"result": True}

        client.post_action.side_effect = slow_action
        task = asyncio.create_task(submitter.claim_reward(POOL_ADDRESS))
        await wait_until(lambda: submitter.is_pending(POOL_ADDRESS))

        assert not submitter.is_pending(NODE_TARGET)
        gate.set()
        result = await task

        assert result.succeeded is True
        assert not submitter.is_pending(POOL_ADDRESS)


@pytest.mark.unit
class TestActionHelpers:

    @pytest.mark.asyncio
    async def test_stake_converts_to_wei(self, submitter, client):
        await submitter.stake("1.5", POOL_ADDRESS)

        client.post_action.assert_awaited_once_with(
            "/stake",
            method="POST",
            body={"amount": "1500000000000000000", "address": POOL_ADDRESS},
        )

    @pytest.mark.asyncio
    async def test_unstake_converts_to_wei(self, submitter, client):
        await submitter.unstake(2, POOL_ADDRESS)

        body = client.post_action.call_args[1]["body"]
        assert body["amount"] == "2000000000000000000"

    @pytest.mark.asyncio
    async def test_stake_rejects_non_positive(self, submitter, client):
        with pytest.raises(ValueError):
            await submitter.stake("0", POOL_ADDRESS)
        with pytest.raises(ValueError):
            await submitter.stake("abc", POOL_ADDRESS)

        client.post_action.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_claim_reward(self, submitter, client):
        await submitter.claim_reward(POOL_ADDRESS)

        client.post_action.assert_awaited_once_with("/reward", method="POST", body={"address": POOL_ADDRESS})

    @pytest.mark.asyncio
    async def test_resync_body_uses_client_names(self, submitter, client):
        await submitter.resync(execution=True)

        client.post_action.assert_awaited_once_with(
            "/resync", method="POST", body={"bor": "true", "heimdall": "false"}
        )

    @pytest.mark.asyncio
    async def test_resync_requires_a_client(self, submitter):
        with pytest.raises(ValueError):
            await submitter.resync()

    def test_target_of(self):
        assert ActionSubmitter.target_of("stop") == NODE_TARGET
        assert ActionSubmitter.target_of("stake", {"address": "0xABC", "amount": "1"}) == "0xabc"
        assert ActionSubmitter.target_of("unknown", {"address": "0xabc"}) == NODE_TARGET
