"""Encoder and destination-group catalogs offered to the operator."""

from __future__ import annotations

import logging
from typing import List

from .client import ResiStudioClient
from .errors import ResiError
from .host import ConnectionStatus, HostCallbacks
from .models import CatalogEntry
from .session import SessionManager

logger = logging.getLogger(__name__)

DEFAULT_ENCODER = CatalogEntry(id="default", name="Default Encoder")
DEFAULT_DESTINATION_GROUP = CatalogEntry(id="default", name="Default Destination Group")


class Catalog:
    """Snapshots of encoders and destination groups, never empty."""

    def __init__(self, client: ResiStudioClient, sessions: SessionManager, host: HostCallbacks):
        self.client = client
        self.sessions = sessions
        self.host = host
        self.encoders: List[CatalogEntry] = [DEFAULT_ENCODER]
        self.destination_groups: List[CatalogEntry] = [DEFAULT_DESTINATION_GROUP]

    async def refresh_encoders(self) -> List[CatalogEntry]:
        try:
            token = await self.sessions.ensure_valid_session()
        except ResiError as exc:
            logger.error("Cannot refresh encoders: %s", exc)
            return self.encoders

        try:
            encoders = await self.client.list_encoders(token)
        except ResiError as exc:
            logger.error("Failed to retrieve Encoders: %s", exc)
            self.host.update_status(ConnectionStatus.FAILURE, "Failed to retrieve Encoders - see log for details")
            self.encoders = [DEFAULT_ENCODER]
            return self.encoders

        if not encoders:
            logger.warning("No encoders found in Resi Studio")
            self.host.update_status(ConnectionStatus.WARNING, "No encoders found")
            self.encoders = [DEFAULT_ENCODER]
            return self.encoders

        self.encoders = encoders
        logger.info("Loaded %d encoders", len(encoders))
        return self.encoders

    async def refresh_destination_groups(self) -> List[CatalogEntry]:
        try:
            token = await self.sessions.ensure_valid_session()
        except ResiError as exc:
            logger.error("Cannot refresh destination groups: %s", exc)
            return self.destination_groups

        try:
            groups = await self.client.list_destination_groups(token)
        except ResiError as exc:
            logger.error("Failed to retrieve Destination Groups: %s", exc)
            self.host.update_status(
                ConnectionStatus.FAILURE, "Failed to retrieve Destination Groups - see log for details"
            )
            self.destination_groups = [DEFAULT_DESTINATION_GROUP]
            return self.destination_groups

        if not groups:
            logger.warning("No destination groups found in Resi Studio")
            self.host.update_status(ConnectionStatus.WARNING, "No destination groups found")
            self.destination_groups = [DEFAULT_DESTINATION_GROUP]
            return self.destination_groups

        # the destination-group fetch is the steady-state heartbeat
        self.host.update_status(ConnectionStatus.OK)
        self.destination_groups = groups
        logger.info("Loaded %d destination groups", len(groups))
        return self.destination_groups

    def encoder_name(self, encoder_id: str) -> str:
        for encoder in self.encoders:
            if encoder.id == encoder_id:
                return encoder.name
        return "Unknown Encoder"

    def group_name(self, destination_group_id: str) -> str:
        for group in self.destination_groups:
            if group.id == destination_group_id:
                return group.name
        return "Unknown Destination Group"
