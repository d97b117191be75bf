"""Status enums for node lifecycle and dashboard state."""

from enum import Enum


class NodeLifecycle(str, Enum):
    """Node lifecycle reported by the plugin backend (canonical set).

    The backend went through two earlier protocol versions with different
    names. Those are accepted as aliases through ``from_backend``.
    """

    NO_STATE = "NoState"
    INSTALLED = "Installed"
    STARTING = "Starting"
    RUNNING = "Running"
    STOPPED = "Stopped"

    @classmethod
    def from_backend(cls, value: str) -> "NodeLifecycle":
        """Map a raw backend value (canonical or legacy) to the canonical enum.

        Raises:
            ValueError: If the value has no canonical counterpart
        """
        try:
            return cls(value)
        except ValueError:
            pass
        alias = LEGACY_ALIASES.get(value)
        if alias is None:
            raise ValueError(f"Unknown node state: {value!r}")
        return alias


# v1 protocol (upper snake case strings)
LEGACY_V1_ALIASES = {
    "NO_STATE": NodeLifecycle.NO_STATE,
    "SETUP_ERROR_STATE": NodeLifecycle.NO_STATE,
    "STARTING_NODE": NodeLifecycle.STARTING,
    "NODE_RESTARTING": NodeLifecycle.STARTING,
    "NODE_RUNNING": NodeLifecycle.RUNNING,
    "NODE_STOPPED": NodeLifecycle.STOPPED,
}

# v2 protocol (per-client startup phases)
LEGACY_V2_ALIASES = {
    "SetupErrorState": NodeLifecycle.NO_STATE,
    "NodeInstalled": NodeLifecycle.INSTALLED,
    "StartingNode": NodeLifecycle.STARTING,
    "StartingHeimdall": NodeLifecycle.STARTING,
    "StartingRestServer": NodeLifecycle.STARTING,
    "StartingErigon": NodeLifecycle.STARTING,
    "NodeRestarting": NodeLifecycle.STARTING,
    "NodeStarted": NodeLifecycle.RUNNING,
}

LEGACY_ALIASES = {**LEGACY_V1_ALIASES, **LEGACY_V2_ALIASES}


class DashboardState(str, Enum):
    """Derived dashboard state.

    State progression while the node runs:
    awaitingWallet → awaitingSyncInfo → syncing → readyToRegister → registered

    ``loading`` means no status has been received yet and is distinct from
    ``noState``, which the backend reports explicitly (reinstall required).
    """

    LOADING = "loading"
    NO_STATE = "noState"
    INSTALLED = "installed"
    AWAITING_WALLET = "awaitingWallet"
    AWAITING_SYNC_INFO = "awaitingSyncInfo"
    SYNCING = "syncing"
    READY_TO_REGISTER = "readyToRegister"
    REGISTERED = "registered"


class SourceName(str, Enum):
    """Polled backend data sources."""

    WALLET = "wallet"
    STATUS = "status"
    SYNC_PROGRESS = "sync_progress"
    NODE_INFO = "node_info"
    MINIPOOLS = "minipools"
    STAKING_POOLS = "staking_pools"
