"""Pydantic models for plugin backend payloads."""

from decimal import Decimal
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from nodeboard.models.status import NodeLifecycle
from nodeboard.utils.amounts import from_wei, leading_number


class NodeStatus(BaseModel):
    """GET /status result.

    Example:
        {"NodeState": "Running", "Alive": true, "IsRegistered": false}
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    node_state: NodeLifecycle = Field(..., alias="NodeState")
    is_alive: bool = Field(default=False, alias="Alive")
    is_registered: bool = Field(default=False, alias="IsRegistered")

    @field_validator("node_state", mode="before")
    @classmethod
    def map_legacy_state(cls, v):
        """Accept legacy lifecycle names from earlier backend versions."""
        if isinstance(v, NodeLifecycle):
            return v
        return NodeLifecycle.from_backend(str(v))


class SyncProgress(BaseModel):
    """GET /sync-state result, normalized to execution/consensus clients.

    The backend names its keys after the concrete clients
    (``borSyncProgress``, ``heimdallStepDescription``...), see
    ``from_result``.
    """

    model_config = ConfigDict(frozen=True)

    is_synced: bool = False
    execution_progress: float = Field(default=0.0, ge=0, le=100)
    execution_step: str = ""
    consensus_progress: float = Field(default=0.0, ge=0, le=100)
    consensus_step: str = ""

    @field_validator("execution_progress", "consensus_progress", mode="before")
    @classmethod
    def clamp_percent(cls, v):
        """Coerce numeric strings and clamp to 0-100."""
        number = leading_number(v)
        if number is None:
            return 0.0
        return min(max(number, 0.0), 100.0)

    @classmethod
    def from_result(
        cls,
        result: Dict[str, Any],
        execution_client: str = "execution",
        consensus_client: str = "consensus",
    ) -> "SyncProgress":
        """Build from the raw backend mapping.

        Args:
            result: Envelope ``result`` of /sync-state
            execution_client: Key prefix of the execution-layer client
            consensus_client: Key prefix of the consensus-layer client
        """
        return cls(
            is_synced=bool(result.get("IsSynced", False)),
            execution_progress=result.get(f"{execution_client}SyncProgress"),
            execution_step=_step_description(result, execution_client),
            consensus_progress=result.get(f"{consensus_client}SyncProgress"),
            consensus_step=_step_description(result, consensus_client),
        )


def _step_description(result: Dict[str, Any], client: str) -> str:
    for key in (f"{client}StepDescription", f"{client}SyncProgressStepDescription"):
        if result.get(key):
            return str(result[key])
    return ""


class Wallet(BaseModel):
    """GET /wallet-fetch result. No address means no wallet initialized yet."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    address: Optional[str] = Field(default=None, alias="Wallet")
    eth_balance: Optional[str] = Field(default=None, alias="ethBalance")
    token_balance: Optional[str] = Field(default=None, alias="maticBalance")

    @field_validator("address", mode="before")
    @classmethod
    def empty_is_absent(cls, v):
        if v is None or str(v).strip() == "":
            return None
        return str(v).strip()

    @property
    def is_present(self) -> bool:
        return self.address is not None


class NodeInfo(BaseModel):
    """GET /node-fetch ``node`` object; unknown keys are kept."""

    model_config = ConfigDict(populate_by_name=True, extra="allow", frozen=True)

    rpc_url: Optional[str] = Field(default=None, alias="rpcUrl")
    eth_wallet_balance: Optional[str] = Field(default=None, alias="ethWalletBalance")
    rpl_wallet_balance: Optional[str] = Field(default=None, alias="rplWalletBalance")

    @field_validator("eth_wallet_balance", "rpl_wallet_balance", mode="before")
    @classmethod
    def stringify(cls, v):
        return None if v is None else str(v)


class StakingPool(BaseModel):
    """One entry of the staking pool list returned by GET /pools-fetch."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    name: str = ""
    logo_url: str = Field(default="", alias="logoUrl")
    current_state: str = Field(default="", alias="currentState")
    delegation_enabled: bool = Field(default=False, alias="delegationEnabled")
    commission_percent: float = Field(default=0, alias="commissionPercent")
    performance_index: float = Field(default=0, alias="performanceIndex")
    total_staked: str = Field(default="0", alias="totalStaked")
    user_stake: str = Field(default="0", alias="userStake")
    user_reward: str = Field(default="0", alias="userReward")
    min_stake: str = Field(default="0", alias="minStake")
    contract_address: str = Field(..., alias="contractAddress")

    @field_validator("total_staked", "user_stake", "user_reward", "min_stake", mode="before")
    @classmethod
    def stringify_amount(cls, v):
        if v is None or v == "":
            return "0"
        if isinstance(v, float) and v.is_integer():
            return str(int(v))
        return str(v)

    @property
    def display_name(self) -> str:
        return self.name if self.name != "" else "Anonymous"

    @property
    def is_healthy(self) -> bool:
        return self.current_state == "HEALTHY"

    @property
    def total_staked_tokens(self) -> Decimal:
        """Total staked in whole tokens (backend reports wei)."""
        return from_wei(self.total_staked)

    @property
    def can_unstake(self) -> bool:
        return (leading_number(self.user_stake) or 0) > 0

    @property
    def can_claim(self) -> bool:
        return (leading_number(self.user_reward) or 0) > 0


class ActionResult(BaseModel):
    """Outcome of one submitted action. Created per call, never persisted."""

    succeeded: bool
    std_out: Optional[str] = None
