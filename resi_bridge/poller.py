"""Slow and fast polling of Resi Studio schedules."""

from __future__ import annotations

import asyncio
import datetime as dt
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from dateutil.tz import tzutc

from .catalog import Catalog
from .client import ResiStudioClient
from .config import BridgeConfig
from .errors import NetworkFailure, NotFound, ResiError
from .host import ConnectionStatus, HostCallbacks
from .models import DestinationStatus, Schedule
from .registry import ScheduleRegistry
from .session import SessionManager

logger = logging.getLogger(__name__)

SLOW_POLL_JOB = "slow-poll"


@dataclass
class FastPollCycle:
    schedule_id: str
    job_id: str
    attempts: int = 0


class Poller:
    """Owns the slow catalog/schedule refresh and the per-schedule fast polls.

    Both loops are APScheduler interval jobs so each one can be cancelled
    on its own. The scheduler is created lazily on the running event loop.
    """

    def __init__(
        self,
        config: BridgeConfig,
        client: ResiStudioClient,
        sessions: SessionManager,
        catalog: Catalog,
        registry: ScheduleRegistry,
        host: HostCallbacks,
        scheduler: Optional[AsyncIOScheduler] = None,
    ):
        self.config = config
        self.client = client
        self.sessions = sessions
        self.catalog = catalog
        self.registry = registry
        self.host = host
        self._scheduler = scheduler
        self._fast_polls: Dict[str, FastPollCycle] = {}
        self._slow_loop_active = False
        self._slow_loop_cancelled = False

    @property
    def slow_loop_active(self) -> bool:
        return self._slow_loop_active

    @property
    def active_fast_polls(self) -> List[str]:
        return list(self._fast_polls.keys())

    def fast_poll_attempts(self, schedule_id: str) -> int:
        cycle = self._fast_polls.get(schedule_id)
        return cycle.attempts if cycle else 0

    def _ensure_scheduler(self) -> AsyncIOScheduler:
        if self._scheduler is None:
            self._scheduler = AsyncIOScheduler(timezone=tzutc(), event_loop=asyncio.get_running_loop())
        if not self._scheduler.running:
            self._scheduler.start()
        return self._scheduler

    # slow loop

    def start(self) -> None:
        if self._slow_loop_active:
            return
        logger.info("Starting polling for data...")
        logger.debug("Polling every %s seconds", self.config.polling_interval)
        self._slow_loop_active = True
        self._slow_loop_cancelled = False
        self._ensure_scheduler().add_job(
            self.poll_once,
            trigger="interval",
            seconds=self.config.polling_interval,
            id=SLOW_POLL_JOB,
            next_run_time=dt.datetime.now(tzutc()),
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )

    def stop_slow_loop(self) -> None:
        self._slow_loop_cancelled = True
        if not self._slow_loop_active:
            return
        self._slow_loop_active = False
        if self._scheduler is not None:
            try:
                self._scheduler.remove_job(SLOW_POLL_JOB)
            except JobLookupError:
                pass
        logger.info("Stopped polling for data.")

    def stop_all(self) -> None:
        """Stop the slow loop and every fast-poll cycle; the scheduler keeps running."""
        self.stop_slow_loop()
        for schedule_id in list(self._fast_polls):
            self.cancel_fast_poll(schedule_id)

    def shutdown(self) -> None:
        self.stop_all()
        if self._scheduler is not None and self._scheduler.running:
            self._scheduler.shutdown(wait=False)

    async def poll_once(self) -> None:
        """One slow-loop cycle: destination groups, then every registered schedule."""
        await self.catalog.refresh_destination_groups()
        for schedule in self.registry:
            if self._slow_loop_cancelled:
                logger.info("Slow poll cancelled, skipping remaining schedules")
                break
            await self.fetch_schedule(schedule.schedule_id)
        logger.debug("------------")

    async def fetch_schedule(self, schedule_id: str) -> Optional[Schedule]:
        """Refresh one schedule's destinations; returns it unless it was dropped."""
        try:
            token = await self.sessions.ensure_valid_session()
        except ResiError as exc:
            logger.error("Cannot fetch schedule %s: %s", schedule_id, exc)
            return None

        try:
            response = await self.client.get_schedule(token, schedule_id)
        except NotFound:
            logger.error("Schedule not found for Schedule Id %s - Does the Encoder have an input?", schedule_id)
            self.registry.remove(schedule_id)
            self.host.check_feedbacks()
            return None
        except NetworkFailure as exc:
            logger.error("Failed to fetch schedules: %s", exc)
            self.host.update_status(ConnectionStatus.FAILURE, "Failed to fetch schedules - see log for details")
            return None
        except ResiError as exc:
            logger.error("Failed to fetch schedule %s: %s", schedule_id, exc)
            return None

        if not response.destinations:
            logger.warning("No Destinations found for Schedule Id %s", schedule_id)
            return self.registry.get(schedule_id)

        destinations = [destination.to_destination() for destination in response.destinations]
        logger.debug("Retrieved destinations for %s: %s", schedule_id, destinations)
        schedule = self.registry.update_destinations(schedule_id, destinations)
        if schedule is None:
            logger.error("No schedule found for ID: %s", schedule_id)
            return None
        self.host.check_feedbacks()

        if schedule.all_destinations(DestinationStatus.STOPPED):
            logger.info("All destinations are STOPPED for Schedule Id %s", schedule_id)
            self.registry.remove(schedule_id)
            self.host.check_feedbacks()
            return None
        return schedule

    # fast loop

    def start_fast_poll(self, schedule_id: str) -> bool:
        if schedule_id in self._fast_polls:
            return False
        cycle = FastPollCycle(schedule_id=schedule_id, job_id=f"fast-poll:{schedule_id}")
        self._fast_polls[schedule_id] = cycle
        self._ensure_scheduler().add_job(
            self._run_fast_poll,
            trigger="interval",
            seconds=self.config.fast_poll_interval,
            args=[schedule_id],
            id=cycle.job_id,
            max_instances=1,
            replace_existing=True,
        )
        logger.debug("Fast polling Schedule %s every %s seconds", schedule_id, self.config.fast_poll_interval)
        return True

    async def _run_fast_poll(self, schedule_id: str) -> None:
        await self.fast_poll_tick(schedule_id)

    async def fast_poll_tick(self, schedule_id: str) -> bool:
        """Run one fast-poll attempt; returns whether the cycle keeps going."""
        cycle = self._fast_polls.get(schedule_id)
        if cycle is None:
            return False
        if self.registry.get(schedule_id) is None:
            logger.debug("Schedule %s no longer tracked, ending fast poll", schedule_id)
            self._finish_fast_poll(schedule_id)
            return False

        cycle.attempts += 1
        schedule = await self.fetch_schedule(schedule_id)

        if schedule is not None and schedule.all_destinations(DestinationStatus.STARTED):
            logger.info("Schedule %s fully started. Stopping fast polling.", schedule_id)
            self._finish_fast_poll(schedule_id)
            return False

        if cycle.attempts >= self.config.fast_poll_max_attempts:
            logger.warning("Fast polling for Schedule %s timed out.", schedule_id)
            self._finish_fast_poll(schedule_id)
            return False
        return True

    def cancel_fast_poll(self, schedule_id: str) -> bool:
        if schedule_id not in self._fast_polls:
            return False
        self._finish_fast_poll(schedule_id)
        return True

    def _finish_fast_poll(self, schedule_id: str) -> None:
        cycle = self._fast_polls.pop(schedule_id, None)
        if cycle is None or self._scheduler is None:
            return
        try:
            self._scheduler.remove_job(cycle.job_id)
        except JobLookupError:
            pass
