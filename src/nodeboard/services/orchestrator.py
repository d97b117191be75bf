"""Polling orchestrator: one recurring fetch loop per backend data source.

Enablement comes from the state machine and is re-evaluated every time a
response is applied. A source that becomes enabled is polled immediately; a
source that becomes disabled finishes its in-flight poll and is not scheduled
again. The orchestrator is the only writer of source values.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Tuple

from nodeboard.config import DashboardConfig
from nodeboard.models.node import Wallet
from nodeboard.models.status import SourceName
from nodeboard.services.minipool_parser import load_minipool_records
from nodeboard.services.plugin_client import PluginClient, PluginClientError
from nodeboard.services.state_machine import StateDecision, StatusSnapshot, evaluate

# enablement changes can cascade (status -> sync_progress -> pools)
MAX_DECISION_PASSES = 4


@dataclass(frozen=True)
class PollSource:
    """Declaration of one polled data source.

    Attributes:
        name: Source identifier
        fetch: Coroutine function returning the new value
        interval: Seconds between polls; None polls only on enable/refresh
        requires: Sources that must have resolved once before fetching
        merge: Combines (previous, new) into the stored value
        settled: Once true for the stored value, periodic polling stops
    """

    name: SourceName
    fetch: Callable[[], Awaitable[Any]]
    interval: Optional[float] = None
    requires: Tuple[SourceName, ...] = ()
    merge: Optional[Callable[[Any, Any], Any]] = None
    settled: Optional[Callable[[Any], bool]] = None


class _SourceState:
    def __init__(self, source: PollSource):
        self.source = source
        self.subscribed = False
        self.enabled = False
        self.enable_epoch = 0
        self.value: Any = None
        self.value_epoch = -1
        self.has_value = False
        self.last_success: Optional[float] = None
        self.last_error: Optional[str] = None
        self.inflight: Optional[asyncio.Task] = None
        self.loop_task: Optional[asyncio.Task] = None
        self.wake = asyncio.Event()

    @property
    def is_current(self) -> bool:
        return self.enabled and self.has_value and self.value_epoch == self.enable_epoch


class PollingOrchestrator:
    """Owns the poll loops and the latest value of every source."""

    def __init__(
        self,
        sources: Iterable[PollSource],
        decide: Callable[[StatusSnapshot], StateDecision] = evaluate,
    ):
        self.logger = logging.getLogger("nodeboard.orchestrator")
        self._states: Dict[SourceName, _SourceState] = {
            source.name: _SourceState(source) for source in sources
        }
        self._decide = decide
        self._decision = decide(StatusSnapshot())
        self._closed = False

    @property
    def decision(self) -> StateDecision:
        return self._decision

    @property
    def sources(self) -> List[SourceName]:
        return list(self._states)

    def start(self, name: SourceName) -> None:
        """Subscribe to a source; it polls whenever its predicate allows."""
        self._state(name).subscribed = True
        self._apply_decision()

    def start_all(self) -> None:
        for state in self._states.values():
            state.subscribed = True
        self._apply_decision()

    def stop(self, name: SourceName) -> None:
        """Unsubscribe; an in-flight poll still completes."""
        state = self._state(name)
        state.subscribed = False
        self._set_enabled(state, False)

    def latest(self, name: SourceName) -> Any:
        """Current value of a source, or None.

        Values are only current while the source is enabled and when they
        were fetched after the most recent enable.
        """
        state = self._states.get(name)
        if state is None or not state.is_current:
            return None
        return state.value

    def cached(self, name: SourceName) -> Any:
        """Last received value regardless of enablement."""
        state = self._states.get(name)
        return state.value if state is not None else None

    def has_resolved(self, name: SourceName) -> bool:
        state = self._states.get(name)
        return state is not None and state.has_value

    def snapshot(self) -> StatusSnapshot:
        return StatusSnapshot(
            status=self.latest(SourceName.STATUS),
            wallet=self.latest(SourceName.WALLET),
            sync_progress=self.latest(SourceName.SYNC_PROGRESS),
        )

    def source_info(self) -> Dict[str, Dict[str, Any]]:
        return {
            name.value: {
                "enabled": state.enabled,
                "current": state.is_current,
                "last_success": state.last_success,
                "last_error": state.last_error,
            }
            for name, state in self._states.items()
        }

    async def refresh(self, name: SourceName) -> Any:
        """Poll a source now (joining an in-flight poll) and return its value."""
        state = self._state(name)
        if not state.enabled:
            self.logger.debug(f"Refresh of disabled source {name.value} ignored")
            return None
        await self._poll(state)
        return self.latest(name)

    async def close(self) -> None:
        """Tear down all loops; responses still in flight are discarded."""
        self._closed = True
        tasks = []
        for state in self._states.values():
            state.enabled = False
            for task in (state.loop_task, state.inflight):
                if task is not None and not task.done():
                    task.cancel()
                    tasks.append(task)
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self.logger.info("Polling orchestrator closed")

    def _state(self, name: SourceName) -> _SourceState:
        try:
            return self._states[name]
        except KeyError:
            raise ValueError(f"Unknown source: {name}")

    def _apply_decision(self) -> None:
        for _ in range(MAX_DECISION_PASSES):
            decision = self._decide(self.snapshot())
            if decision.state != self._decision.state:
                self.logger.info(
                    f"Dashboard state: {self._decision.state.value} -> {decision.state.value}"
                )
            self._decision = decision

            changed = False
            for name, state in self._states.items():
                wanted = state.subscribed and decision.is_enabled(name)
                changed |= self._set_enabled(state, wanted)
            if not changed:
                return

    def _set_enabled(self, state: _SourceState, enabled: bool) -> bool:
        if state.enabled == enabled or (enabled and self._closed):
            return False
        state.enabled = enabled
        name = state.source.name.value
        if enabled:
            state.enable_epoch += 1
            self.logger.info(f"Source {name} enabled")
            if state.loop_task is None or state.loop_task.done():
                state.wake.clear()
                state.loop_task = asyncio.create_task(self._run(state))
            else:
                state.wake.set()
        else:
            self.logger.info(f"Source {name} disabled")
            state.wake.set()
        return True

    def _interval(self, state: _SourceState) -> Optional[float]:
        settled = state.source.settled
        if settled is not None and state.has_value and settled(state.value):
            return None
        return state.source.interval

    async def _run(self, state: _SourceState) -> None:
        while state.enabled and not self._closed:
            state.wake.clear()
            await self._poll(state)
            if not state.enabled or self._closed:
                break
            interval = self._interval(state)
            try:
                if interval is None:
                    await state.wake.wait()
                else:
                    await asyncio.wait_for(state.wake.wait(), timeout=interval)
            except asyncio.TimeoutError:
                pass

    async def _poll(self, state: _SourceState) -> None:
        # never two polls of the same source at once
        if state.inflight is None or state.inflight.done():
            state.inflight = asyncio.create_task(self._fetch_and_apply(state))
        await asyncio.shield(state.inflight)

    async def _fetch_and_apply(self, state: _SourceState) -> None:
        source = state.source
        for required in source.requires:
            if not self.has_resolved(required):
                self.logger.debug(f"{source.name.value} waits for {required.value}")
                await self.refresh(required)

        epoch = state.enable_epoch
        try:
            value = await source.fetch()
        except PluginClientError as e:
            state.last_error = str(e)
            self.logger.warning(f"Poll {source.name.value} failed: {e}")
            return
        except Exception as e:
            state.last_error = str(e)
            self.logger.error(f"Unexpected error polling {source.name.value}: {e}", exc_info=True)
            return

        if self._closed:
            self.logger.debug(f"Discarding {source.name.value} response after close")
            return

        if source.merge is not None and state.has_value:
            value = source.merge(state.value, value)
        state.value = value
        state.value_epoch = epoch
        state.has_value = True
        state.last_success = time.time()
        state.last_error = None
        self._apply_decision()


def keep_present_wallet(previous: Optional[Wallet], new: Wallet) -> Wallet:
    """A wallet once seen is kept for the session."""
    if previous is not None and previous.is_present and not new.is_present:
        return previous
    return new


def build_default_sources(client: PluginClient, config: DashboardConfig) -> List[PollSource]:
    """Sources polled by the dashboard, with the default refetch intervals."""

    async def fetch_sync_progress():
        return await client.get_sync_progress(config.execution_client, config.consensus_client)

    async def fetch_minipools():
        return load_minipool_records(await client.get_minipool_report())

    sources = [
        PollSource(
            SourceName.WALLET,
            client.get_wallet,
            interval=config.wallet_interval,
            merge=keep_present_wallet,
            settled=lambda wallet: wallet.is_present,
        ),
        PollSource(
            SourceName.STATUS,
            client.get_status,
            interval=config.status_interval,
            requires=(SourceName.WALLET,),
        ),
        PollSource(SourceName.SYNC_PROGRESS, fetch_sync_progress, interval=config.sync_interval),
        PollSource(SourceName.NODE_INFO, client.get_node_info, interval=config.node_info_interval),
    ]
    if config.pool_mode == "staking":
        sources.append(
            PollSource(
                SourceName.STAKING_POOLS,
                client.get_staking_pools,
                interval=config.staking_pools_interval,
            )
        )
    else:
        sources.append(
            PollSource(SourceName.MINIPOOLS, fetch_minipools, interval=config.minipools_interval)
        )
    return sources
