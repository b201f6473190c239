"""Go-live and stop-live operations against Resi Studio."""

from __future__ import annotations

import logging
from typing import Optional, Set, Tuple
from urllib.parse import urlparse

from .catalog import Catalog
from .client import ResiStudioClient
from .errors import ApiError, ResiError, Unauthorized
from .host import ConnectionStatus, HostCallbacks
from .models import Schedule
from .poller import Poller
from .registry import EncoderErrorTable, ScheduleRegistry
from .schemas import GoLivePayload
from .session import SessionManager

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "Live Stream"


def schedule_id_from_location(location: str) -> str:
    """The schedule id is the last path segment of the ``Location`` header."""
    path = urlparse(location).path or location
    return path.rstrip("/").split("/")[-1]


class StreamController:
    """Coordinates go-live / stop-live with the registry, error table and poller."""

    def __init__(
        self,
        client: ResiStudioClient,
        sessions: SessionManager,
        catalog: Catalog,
        registry: ScheduleRegistry,
        errors: EncoderErrorTable,
        poller: Poller,
        host: HostCallbacks,
    ):
        self.client = client
        self.sessions = sessions
        self.catalog = catalog
        self.registry = registry
        self.errors = errors
        self.poller = poller
        self.host = host
        self._in_flight: Set[Tuple[str, str]] = set()

    def _describe(self, encoder_id: str, destination_group_id: str) -> str:
        return (
            f'Encoder "{self.catalog.encoder_name(encoder_id)}" ({encoder_id}) with Destination Group '
            f'"{self.catalog.group_name(destination_group_id)}" ({destination_group_id})'
        )

    async def go_live(
        self, encoder_id: str, destination_group_id: str, title: str = DEFAULT_TITLE, description: str = ""
    ) -> Optional[Schedule]:
        """Start a live schedule for the pair.

        Returns the new schedule, the existing one when the pair is already
        live, or None when nothing is tracked (no session, API error, or no
        ``Location`` header in the answer).
        """
        try:
            token = await self.sessions.ensure_valid_session()
        except ResiError as exc:
            logger.error("Cannot go live: %s", exc)
            return None

        label = self._describe(encoder_id, destination_group_id)
        existing = self.registry.find(encoder_id, destination_group_id)
        if existing is not None:
            # double press on the button
            logger.info("%s is already live", label)
            return existing
        pair = (encoder_id, destination_group_id)
        if pair in self._in_flight:
            logger.info("%s is already going live", label)
            return None

        logger.info("Starting %s", label)
        payload = GoLivePayload(
            encoder_id=encoder_id,
            destination_group_id=destination_group_id,
            title=title or DEFAULT_TITLE,
            description=description or "",
        )
        self._in_flight.add(pair)
        try:
            location = await self.client.create_live_schedule(token, payload)
        except ApiError as exc:
            logger.error("Failed to start %s: %s", label, exc)
            self.errors.record(encoder_id, str(exc))
            if not isinstance(exc, Unauthorized):
                self.host.update_status(ConnectionStatus.WARNING, str(exc))
            return None
        except ResiError as exc:
            logger.error("Failed to start %s: %s", label, exc)
            self.errors.record(encoder_id, str(exc))
            self.host.update_status(ConnectionStatus.FAILURE, "Failed to start Encoder - see log for details")
            return None
        finally:
            self._in_flight.discard(pair)

        self.host.update_status(ConnectionStatus.OK)
        self.errors.clear(encoder_id)

        if not location:
            logger.error("Schedule ID is not available in the response headers.")
            return None

        schedule = Schedule(
            encoder_id=encoder_id,
            schedule_id=schedule_id_from_location(location),
            location=location,
            destination_group_id=destination_group_id,
        )
        self.registry.add(schedule)
        logger.info("Schedule ID: %s", schedule.schedule_id)
        self.poller.start_fast_poll(schedule.schedule_id)
        logger.info("%s started successfully", label)
        return schedule

    async def stop_live(self, encoder_id: str, destination_group_id: str) -> Optional[Schedule]:
        """Stop the pair's schedule; returns the removed schedule.

        Raises the typed API error when the stop call fails, leaving the
        schedule registered since it may still be live remotely.
        """
        label = self._describe(encoder_id, destination_group_id)
        schedule = self.registry.find(encoder_id, destination_group_id)
        if schedule is None:
            logger.error("Unable to Stop: No schedule found for %s", label)
            self.errors.record(encoder_id, "Unable to Stop: No schedule found")
            return None

        try:
            token = await self.sessions.ensure_valid_session()
        except ResiError as exc:
            logger.error("Cannot stop live: %s", exc)
            return None

        logger.debug("Stopping %s, schedule %s", label, schedule.schedule_id)
        try:
            await self.client.stop_schedule(token, schedule.schedule_id)
        except ResiError as exc:
            logger.error("Failed to stop %s: %s", label, exc)
            self.host.update_status(ConnectionStatus.FAILURE, "Failed to stop stream - see log for details")
            raise

        logger.info("%s stopped successfully", label)
        removed = self.registry.remove_pair(encoder_id, destination_group_id)
        self.poller.cancel_fast_poll(schedule.schedule_id)
        self.host.check_feedbacks()
        return removed
