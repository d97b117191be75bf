"""Pydantic models for the dashboard HTTP API."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from nodeboard.models.node import NodeInfo, NodeStatus, StakingPool, SyncProgress, Wallet
from nodeboard.models.pool import MinipoolSummary, PoolRecord
from nodeboard.models.status import DashboardState, NodeLifecycle


class AffordanceData(BaseModel):
    can_start: bool = False
    can_stop: bool = False
    can_restart: bool = False
    can_resync: bool = False
    can_register: bool = False
    can_manage_pools: bool = False


class DashboardData(BaseModel):
    """Everything the status page needs to pick what to show.

    ``state == loading`` means no status has arrived yet (spinner), while
    ``noState`` is an explicit backend report (reinstall banner).
    """

    state: DashboardState
    node_state: Optional[NodeLifecycle] = None
    status: Optional[NodeStatus] = None
    wallet: Optional[Wallet] = None
    sync_progress: Optional[SyncProgress] = None
    enablement: Dict[str, bool] = Field(default_factory=dict)
    affordances: AffordanceData = Field(default_factory=AffordanceData)
    sources: Dict[str, Dict[str, Any]] = Field(default_factory=dict)


class DashboardResponse(BaseModel):
    """GET /api/v1.0/dashboard response."""

    code: int = Field(default=200, description="Application-level status code")
    msg: str = "success"
    data: DashboardData


class MinipoolData(BaseModel):
    available: bool = Field(..., description="False while the minipool source is disabled")
    records: List[PoolRecord] = Field(default_factory=list)
    summary: MinipoolSummary = Field(default_factory=MinipoolSummary)


class MinipoolResponse(BaseModel):
    code: int = 200
    msg: str = "success"
    data: MinipoolData


class StakingPoolResponse(BaseModel):
    code: int = 200
    msg: str = "success"
    data: List[StakingPool] = Field(default_factory=list)


class NodeInfoResponse(BaseModel):
    code: int = 200
    msg: str = "success"
    data: Optional[NodeInfo] = None


class ActionRequest(BaseModel):
    """POST /api/v1.0/actions/{action} payload.

    Example:
        {"amount": "1.5", "address": "0x5e3Ef299fDDf15eAa0432E6e66473ace8c13D908"}
    """

    amount: Optional[str] = Field(
        None,
        pattern=r"^\d+(\.\d+)?$",
        description="Token amount in whole units (stake/unstake)",
        examples=["1.5", "100"],
    )
    address: Optional[str] = Field(
        None,
        pattern=r"^0x[0-9a-fA-F]{40}$",
        description="Pool contract address (stake/unstake/reward)",
    )
    execution: bool = Field(False, description="Resync the execution client")
    consensus: bool = Field(False, description="Resync the consensus client")


class ActionResultData(BaseModel):
    succeeded: bool
    std_out: Optional[str] = None


class ActionResponse(BaseModel):
    code: int = Field(..., description="200 on submission, 400/409/502 on errors")
    msg: str
    data: Optional[ActionResultData] = None
