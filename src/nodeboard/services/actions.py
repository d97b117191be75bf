"""Submission of user-triggered mutating backend operations."""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Optional, Set, Union

from nodeboard.models.node import ActionResult
from nodeboard.services.plugin_client import PluginClient
from nodeboard.utils.amounts import to_wei_string


@dataclass(frozen=True)
class ActionSpec:
    endpoint: str
    method: str = "GET"
    # payload key naming the target pool, if any
    target_key: Optional[str] = None
    required: tuple = ()


ACTIONS: Dict[str, ActionSpec] = {
    "start": ActionSpec("/start"),
    "stop": ActionSpec("/stop"),
    "restart": ActionSpec("/restart"),
    "register-node": ActionSpec("/register-node"),
    "resync-eth1": ActionSpec("/resync-eth1"),
    "resync-eth2": ActionSpec("/resync-eth2"),
    "resync": ActionSpec("/resync", method="POST"),
    "stake": ActionSpec("/stake", method="POST", target_key="address", required=("amount", "address")),
    "unstake": ActionSpec("/unstake", method="POST", target_key="address", required=("amount", "address")),
    "reward": ActionSpec("/reward", method="POST", target_key="address", required=("address",)),
}

NODE_TARGET = "node"


class ActionSubmitter:
    """Sends actions through the plugin client and reports their outcome.

    Callers must not submit two actions for the same target concurrently;
    this class only tracks pending targets (``is_pending``) so the caller
    can disable its trigger. Nothing is retried automatically.
    """

    def __init__(self, client: PluginClient, execution_client: str = "execution",
                 consensus_client: str = "consensus"):
        self.logger = logging.getLogger("nodeboard.actions")
        self.client = client
        self.execution_client = execution_client
        self.consensus_client = consensus_client
        self._pending: Set[str] = set()

    @staticmethod
    def target_of(action_name: str, payload: Optional[Dict[str, Any]] = None) -> str:
        """Pool address for pool actions, the node for everything else."""
        spec = ACTIONS.get(action_name)
        if spec is not None and spec.target_key and payload:
            return str(payload.get(spec.target_key, NODE_TARGET)).lower()
        return NODE_TARGET

    def is_pending(self, target: str) -> bool:
        return target.lower() in self._pending

    async def submit(self, action_name: str, payload: Optional[Dict[str, Any]] = None) -> ActionResult:
        """Submit one action and wait for the backend's answer.

        Args:
            action_name: One of ``ACTIONS``
            payload: JSON body for POST actions

        Returns:
            ActionResult; succeeded unless the backend answered ``result: false``

        Raises:
            ValueError: Unknown action or missing payload fields
            NetworkError: Transport failure, timeout or non-2xx status
            ParseError: Malformed response envelope
        """
        spec = ACTIONS.get(action_name)
        if spec is None:
            raise ValueError(f"Unknown action: {action_name}")
        missing = [key for key in spec.required if not (payload or {}).get(key)]
        if missing:
            raise ValueError(f"Missing fields for {action_name}: {', '.join(missing)}")

        target = self.target_of(action_name, payload)
        if target in self._pending:
            self.logger.warning(f"Action {action_name} submitted while {target} already has one pending")
        self._pending.add(target)

        self.logger.info(f"Submitting action {action_name} (target={target})")
        try:
            response = await self.client.post_action(
                spec.endpoint,
                method=spec.method,
                body=payload if spec.method == "POST" else None,
            )
        except Exception as e:
            self.logger.error(f"Action {action_name} failed: {e}")
            raise
        finally:
            self._pending.discard(target)

        result = ActionResult(
            succeeded=response.get("result") is not False,
            std_out=response.get("stdOut"),
        )
        if result.succeeded:
            self.logger.info(f"Action {action_name} succeeded")
        else:
            self.logger.warning(f"Action {action_name} reported failure: {result.std_out}")
        return result

    async def stake(self, amount: Union[str, float, Decimal], pool_address: str) -> ActionResult:
        """Stake ``amount`` tokens (ether units) into a pool."""
        return await self.submit("stake", {"amount": to_wei_string(amount), "address": pool_address})

    async def unstake(self, amount: Union[str, float, Decimal], pool_address: str) -> ActionResult:
        return await self.submit("unstake", {"amount": to_wei_string(amount), "address": pool_address})

    async def claim_reward(self, pool_address: str) -> ActionResult:
        return await self.submit("reward", {"address": pool_address})

    async def resync(self, execution: bool = False, consensus: bool = False) -> ActionResult:
        """Wipe and resync one or both chain clients.

        Raises:
            ValueError: If neither client is selected
        """
        if not execution and not consensus:
            raise ValueError("Select at least one client to resync")
        return await self.submit(
            "resync",
            {
                self.execution_client: "true" if execution else "false",
                self.consensus_client: "true" if consensus else "false",
            },
        )
