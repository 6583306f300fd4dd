"""
Supervisor — One reconciler per available guild.

Keeps an explicit registry of running reconcilers keyed by guild id. A guild
that goes away is deregistered and its loop cancelled, so reconnects start
a fresh loop instead of piling up orphaned ones.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from timebot.keeper.reconciler import TICK_INTERVAL, GroupReconciler
from timebot.services.config_store import ConfigStore
from timebot.services.directory import DirectoryClient

logger = logging.getLogger("timebot.supervisor")


@dataclass
class GroupRuntimeState:
    """Registry slot for one guild."""

    group_id: int
    reconciler: GroupReconciler

    @property
    def running(self) -> bool:
        return self.reconciler.running


class Supervisor:
    """Starts and stops GroupReconcilers on guild availability events."""

    def __init__(
        self,
        store: ConfigStore,
        directory: DirectoryClient,
        interval: float = TICK_INTERVAL,
        reconciler_factory: Optional[Callable[..., GroupReconciler]] = None,
    ):
        self.store = store
        self.directory = directory
        self.interval = interval
        self._factory = reconciler_factory or GroupReconciler
        self._groups: Dict[int, GroupRuntimeState] = {}

    def __contains__(self, group_id: int) -> bool:
        return group_id in self._groups

    def __len__(self) -> int:
        return len(self._groups)

    def on_group_available(self, group_id: int) -> bool:
        """Start a reconciler for ``group_id`` unless one is already running.

        Returns True when a new loop was started.
        """
        state = self._groups.get(group_id)
        if state is not None and state.running:
            logger.debug("Reconciler for guild %s already running", group_id)
            return False

        reconciler = self._factory(group_id, self.store, self.directory, interval=self.interval)
        reconciler.start()
        self._groups[group_id] = GroupRuntimeState(group_id=group_id, reconciler=reconciler)
        logger.info("Guild %s available, reconciler started", group_id)
        return True

    async def on_group_unavailable(self, group_id: int) -> bool:
        """Stop and deregister the reconciler for ``group_id``, if any."""
        state = self._groups.pop(group_id, None)
        if state is None:
            return False
        await state.reconciler.stop()
        logger.info("Guild %s unavailable, reconciler deregistered", group_id)
        return True

    async def stop_all(self):
        """Stop every reconciler. Used at shutdown."""
        for group_id in list(self._groups):
            await self.on_group_unavailable(group_id)

    def status(self) -> Dict[int, Dict[str, Any]]:
        """Per-guild loop state and the last tick report."""
        result = {}
        for group_id, state in self._groups.items():
            report = state.reconciler.last_report
            result[group_id] = {
                "running": state.running,
                "ticks": state.reconciler.ticks,
                "last_tick": report.to_dict() if report else None,
            }
        return result
