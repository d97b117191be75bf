"""Pure derivation of dashboard state and polling enablement.

Nothing in here performs I/O or keeps state: the orchestrator hands in one
consistent snapshot of the latest values and applies the returned decision.
"""

from dataclasses import dataclass, field
from typing import Dict, Optional

from nodeboard.models.node import NodeStatus, SyncProgress, Wallet
from nodeboard.models.status import DashboardState, NodeLifecycle, SourceName

ALWAYS_ENABLED = (SourceName.WALLET, SourceName.STATUS)
POOL_SOURCES = (SourceName.MINIPOOLS, SourceName.STAKING_POOLS)


@dataclass(frozen=True)
class StatusSnapshot:
    """Latest status/wallet/sync values read at one instant."""

    status: Optional[NodeStatus] = None
    wallet: Optional[Wallet] = None
    sync_progress: Optional[SyncProgress] = None

    @property
    def node_running(self) -> bool:
        return self.status is not None and self.status.node_state == NodeLifecycle.RUNNING

    @property
    def wallet_present(self) -> bool:
        return self.wallet is not None and self.wallet.is_present


@dataclass(frozen=True)
class Affordances:
    """Which user actions the dashboard offers in the current state."""

    can_start: bool = False
    can_stop: bool = False
    can_restart: bool = False
    can_resync: bool = False
    can_register: bool = False
    can_manage_pools: bool = False


@dataclass(frozen=True)
class StateDecision:
    state: DashboardState
    enablement: Dict[SourceName, bool] = field(default_factory=dict)
    affordances: Affordances = field(default_factory=Affordances)

    def is_enabled(self, source: SourceName) -> bool:
        return self.enablement.get(source, False)


def derive_state(snapshot: StatusSnapshot) -> DashboardState:
    status = snapshot.status
    if status is None:
        return DashboardState.LOADING
    if status.node_state == NodeLifecycle.NO_STATE:
        return DashboardState.NO_STATE
    if status.node_state != NodeLifecycle.RUNNING:
        return DashboardState.INSTALLED
    if not snapshot.wallet_present:
        return DashboardState.AWAITING_WALLET
    if snapshot.sync_progress is None:
        return DashboardState.AWAITING_SYNC_INFO
    if not snapshot.sync_progress.is_synced:
        return DashboardState.SYNCING
    if not status.is_registered:
        return DashboardState.READY_TO_REGISTER
    return DashboardState.REGISTERED


def compute_enablement(snapshot: StatusSnapshot) -> Dict[SourceName, bool]:
    """Which sources should be polled for this snapshot.

    Pool sources require a running, registered and fully synced node.
    """
    running = snapshot.node_running
    pools_ready = (
        running
        and snapshot.status.is_registered
        and snapshot.sync_progress is not None
        and snapshot.sync_progress.is_synced
    )
    enablement = {source: True for source in ALWAYS_ENABLED}
    enablement[SourceName.SYNC_PROGRESS] = running
    enablement[SourceName.NODE_INFO] = running
    for source in POOL_SOURCES:
        enablement[source] = bool(pools_ready)
    return enablement


def compute_affordances(state: DashboardState, status: Optional[NodeStatus]) -> Affordances:
    node_state = status.node_state if status is not None else None
    return Affordances(
        can_start=node_state in (NodeLifecycle.INSTALLED, NodeLifecycle.STOPPED),
        can_stop=node_state in (NodeLifecycle.STARTING, NodeLifecycle.RUNNING),
        can_restart=state in (DashboardState.AWAITING_SYNC_INFO, DashboardState.SYNCING),
        can_resync=state == DashboardState.SYNCING,
        can_register=state == DashboardState.READY_TO_REGISTER,
        can_manage_pools=state == DashboardState.REGISTERED,
    )


def evaluate(snapshot: StatusSnapshot) -> StateDecision:
    """Derive state, enablement vector and affordances from one snapshot."""
    state = derive_state(snapshot)
    return StateDecision(
        state=state,
        enablement=compute_enablement(snapshot),
        affordances=compute_affordances(state, snapshot.status),
    )
