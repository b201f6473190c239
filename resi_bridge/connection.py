"""Connection supervisor owning every component of the bridge."""

from __future__ import annotations

import logging
from dataclasses import fields
from typing import Optional

import requests
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from .catalog import Catalog
from .client import ResiStudioClient
from .config import BridgeConfig, ConfigStore, configure_logging, load_config
from .controller import StreamController
from .errors import AuthenticationFailed, MissingCredentials
from .host import ConnectionStatus, HostCallbacks
from .models import Schedule
from .poller import Poller
from .rate_limiter import RateLimiter
from .registry import EncoderErrorTable, ScheduleRegistry
from .session import SessionManager

logger = logging.getLogger(__name__)


class ResiConnection:
    """One connection to Resi Studio with explicit start/stop.

    Holds the token, registries and polling jobs that the operator commands
    and feedbacks work against.
    """

    def __init__(
        self,
        config: BridgeConfig,
        store: ConfigStore,
        host: HostCallbacks,
        http: Optional[requests.Session] = None,
        limiter: Optional[RateLimiter] = None,
        scheduler: Optional[AsyncIOScheduler] = None,
    ):
        self.config = config
        self.store = store
        self.host = host
        self.limiter = limiter or RateLimiter(limit=config.request_limit, window=config.request_window)
        self.client = ResiStudioClient(config, self.limiter, http=http, on_unauthorized=self._handle_unauthorized)
        self.sessions = SessionManager(config, self.client, host)
        self.catalog = Catalog(self.client, self.sessions, host)
        self.registry = ScheduleRegistry(store)
        self.errors = EncoderErrorTable(host)
        self.poller = Poller(config, self.client, self.sessions, self.catalog, self.registry, host, scheduler=scheduler)
        self.controller = StreamController(
            self.client, self.sessions, self.catalog, self.registry, self.errors, self.poller, host
        )

    async def start(self) -> bool:
        """Load stored schedules, authenticate, load catalogs, start the slow loop.

        Stored schedules are loaded before authenticating so that a failed
        start never lets a later persist overwrite them.
        """
        configure_logging(self.config.verbose)
        self.registry.load()
        self.host.update_status(ConnectionStatus.CONNECTING, "Connecting to Resi Studio")

        try:
            await self.sessions.authenticate()
        except MissingCredentials:
            logger.error(
                "Client ID and Client Secret are required to connect to Resi Studio. "
                "See module config for instructions."
            )
            self.host.update_status(ConnectionStatus.WARNING, "Client ID and Client Secret are required")
            return False
        except AuthenticationFailed as exc:
            logger.error("Connection failed: %s", exc)
            self.host.update_status(
                ConnectionStatus.FAILURE, "Failed to connect to Resi Studio - see log for details"
            )
            return False

        self.host.update_status(ConnectionStatus.OK, "Connected to Resi Studio")
        await self.catalog.refresh_encoders()
        await self.catalog.refresh_destination_groups()
        self.poller.start()
        return True

    async def stop(self) -> None:
        self.poller.shutdown()
        self.client.close()
        logger.info("Connection to Resi Studio closed")

    def reload_config(self) -> BridgeConfig:
        """Re-read the config store and environment into the shared config object."""
        fresh = load_config(self.store.load())
        for field in fields(BridgeConfig):
            setattr(self.config, field.name, getattr(fresh, field.name))
        return self.config

    async def restart(self) -> bool:
        """Stop polling, drop the token, reload config and start again."""
        logger.info("Restarting connection to Resi Studio")
        self.poller.stop_all()
        self.sessions.clear()
        self.reload_config()
        return await self.start()

    def _handle_unauthorized(self) -> None:
        self.poller.stop_slow_loop()
        self.host.update_status(ConnectionStatus.FAILURE, "Unauthorized - please re-authenticate")

    async def go_live(
        self, encoder_id: str, destination_group_id: str, title: str = "", description: str = ""
    ) -> Optional[Schedule]:
        return await self.controller.go_live(encoder_id, destination_group_id, title, description)

    async def stop_live(self, encoder_id: str, destination_group_id: str) -> Optional[Schedule]:
        return await self.controller.stop_live(encoder_id, destination_group_id)
