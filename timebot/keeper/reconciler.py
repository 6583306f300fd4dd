"""
Group Reconciler — The per-guild control loop.

Every tick re-derives the desired child role state of every tracked member
from scratch and corrects the directory where it differs:

- holds parent, lacks child, inside the window  -> add child
- holds child, outside the window               -> remove child
- anything else                                 -> leave alone

Nothing is carried between ticks, so a failed mutation is simply retried on
the next one. Missed ticks are dropped rather than replayed.
"""

import asyncio
import logging
import math
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional, Set

from timebot.config.configuration import Configuration
from timebot.errors import GroupUnavailable, InvalidTimezone, MemberUnresolvable, RoleMutationFailure
from timebot.services.config_store import ConfigStore
from timebot.services.directory import DirectoryClient, GroupView
from timebot.services.timezones import in_window, local_hour, parse_timezone

logger = logging.getLogger("timebot.reconciler")

TICK_INTERVAL = 60  # seconds

ADD = "add"
REMOVE = "remove"


def plan_correction(roles: Set[int], active: bool, parent_role_id: int, child_role_id: int) -> Optional[str]:
    """Which mutation, if any, brings ``roles`` to the desired state."""
    if active:
        if parent_role_id in roles and child_role_id not in roles:
            return ADD
    elif child_role_id in roles:
        return REMOVE
    return None


def next_deadline(previous: float, now: float, interval: float) -> float:
    """The first slot on the ``previous + k * interval`` grid that is still ahead.

    Slots that already passed while a tick was running are dropped.
    """
    deadline = previous + interval
    if deadline < now:
        deadline += math.ceil((now - deadline) / interval) * interval
    return deadline


@dataclass
class TickReport:
    """What one tick did for one guild."""

    group_id: int
    started_at: datetime
    group_available: bool = True
    evaluated: int = 0
    added: int = 0
    removed: int = 0
    skipped: int = 0
    failed: int = 0
    finished_at: Optional[datetime] = field(default=None)

    @property
    def mutations(self) -> int:
        return self.added + self.removed

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["started_at"] = self.started_at.isoformat()
        data["finished_at"] = self.finished_at.isoformat() if self.finished_at else None
        return data


class GroupReconciler:
    """Keeps one guild's child role in line with its members' local time."""

    def __init__(
        self,
        group_id: int,
        store: ConfigStore,
        directory: DirectoryClient,
        interval: float = TICK_INTERVAL,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        if interval <= 0:
            raise ValueError(f"Tick interval must be positive, got {interval!r}")
        self.group_id = group_id
        self.store = store
        self.directory = directory
        self.interval = interval
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.last_report: Optional[TickReport] = None
        self.ticks = 0
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def tick(self) -> TickReport:
        """Evaluate every tracked member once."""
        now = self.clock()
        conf = self.store.snapshot()
        report = TickReport(group_id=self.group_id, started_at=now)

        try:
            group = await self._resolve_group()
        except GroupUnavailable as e:
            logger.warning(
                "Unable to get the guild %s (%s). Did the bot leave the guild? Skipping this tick.",
                self.group_id,
                e.reason,
            )
            report.group_available = False
            return self._finish(report)

        for user_id, tz_name in conf.member_timezones.items():
            report.evaluated += 1
            try:
                action = await self._reconcile_member(group, conf, user_id, tz_name, now)
            except InvalidTimezone as e:
                logger.error("Stored timezone of %s is invalid, skipping: %s", user_id, e)
                report.skipped += 1
                continue
            except MemberUnresolvable as e:
                logger.error("Failed to get member %s in guild %s: %s", user_id, self.group_id, e.reason)
                report.skipped += 1
                continue
            except RoleMutationFailure as e:
                logger.error("%s", e)
                report.failed += 1
                continue
            except Exception as e:
                logger.exception("Unexpected error reconciling %s in guild %s: %s", user_id, self.group_id, e)
                report.failed += 1
                continue

            if action == ADD:
                report.added += 1
            elif action == REMOVE:
                report.removed += 1

        return self._finish(report)

    async def _resolve_group(self) -> GroupView:
        try:
            group = await self.directory.get_group_snapshot(self.group_id)
        except Exception as e:
            raise GroupUnavailable(self.group_id, str(e)) from e
        if group is None:
            raise GroupUnavailable(self.group_id)
        return group

    async def _reconcile_member(
        self,
        group: GroupView,
        conf: Configuration,
        user_id: int,
        tz_name: str,
        now: datetime,
    ) -> Optional[str]:
        tz = parse_timezone(tz_name)
        active = in_window(local_hour(tz, now), conf.start_hour, conf.end_hour)

        member = await group.get_member(user_id)
        if member is None:
            raise MemberUnresolvable(user_id, "not in guild")

        action = plan_correction(member.roles, active, conf.parent_role_id, conf.child_role_id)
        if action == ADD:
            await self.directory.add_role(member, conf.child_role_id)
            logger.info("Added role %s to %s in guild %s", conf.child_role_id, user_id, self.group_id)
        elif action == REMOVE:
            await self.directory.remove_role(member, conf.child_role_id)
            logger.info("Removed role %s from %s in guild %s", conf.child_role_id, user_id, self.group_id)
        return action

    def _finish(self, report: TickReport) -> TickReport:
        report.finished_at = datetime.now(timezone.utc)
        self.ticks += 1
        self.last_report = report
        if report.mutations or report.failed:
            logger.info(
                "Guild %s tick: %d evaluated, +%d / -%d, %d skipped, %d failed",
                self.group_id,
                report.evaluated,
                report.added,
                report.removed,
                report.skipped,
                report.failed,
            )
        return report

    async def _loop(self):
        """Fixed-rate loop. Late ticks realign to the schedule, never burst."""
        loop = asyncio.get_running_loop()
        next_tick = loop.time()
        logger.info("Reconciler for guild %s started (interval: %ss)", self.group_id, self.interval)
        while True:
            delay = next_tick - loop.time()
            if delay > 0:
                await asyncio.sleep(delay)

            try:
                await self.tick()
            except Exception as e:
                logger.error("Reconciliation tick for guild %s failed: %s", self.group_id, e)

            next_tick = next_deadline(next_tick, loop.time(), self.interval)

    def start(self) -> asyncio.Task:
        """Start the background loop. Must be called inside a running loop."""
        if self.running:
            return self._task
        self._task = asyncio.create_task(self._loop(), name=f"reconciler-{self.group_id}")
        self._task.add_done_callback(self._on_loop_done)
        return self._task

    def _on_loop_done(self, task: asyncio.Task):
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error("Reconciler for guild %s died: %r", self.group_id, error)

    async def stop(self):
        """Cancel the background loop and wait for it to unwind."""
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("Reconciler for guild %s stopped", self.group_id)
