"""Domain models for live schedules and their catalogs."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional


class DestinationType(str, Enum):
    EMBED = "EMBED"
    FACEBOOK = "FACEBOOK"
    RTMP = "RTMP"
    YOUTUBE = "YOUTUBE"


class DestinationStatus(str, Enum):
    IDLE = "IDLE"
    SET_UP = "SET_UP"
    STARTING = "STARTING"
    STARTED = "STARTED"
    STOPPING = "STOPPING"
    STOPPED = "STOPPED"
    ABORTED = "ABORTED"
    ERROR = "ERROR"


@dataclass(frozen=True)
class CredentialSession:
    bearer_token: str
    expires_at: float

    def remaining(self, now: float) -> float:
        return self.expires_at - now


@dataclass(frozen=True)
class CatalogEntry:
    """An encoder or destination group as offered to the operator."""

    id: str
    name: str


@dataclass
class Destination:
    id: str
    name: str
    type: DestinationType
    status: DestinationStatus


@dataclass
class Schedule:
    encoder_id: str
    schedule_id: str
    location: str
    destination_group_id: str
    destinations: Optional[List[Destination]] = None

    def matches(self, encoder_id: str, destination_group_id: str) -> bool:
        return self.encoder_id == encoder_id and self.destination_group_id == destination_group_id

    def all_destinations(self, status: DestinationStatus) -> bool:
        """True when there is at least one destination and every one has ``status``."""
        if not self.destinations:
            return False
        return all(destination.status == status for destination in self.destinations)


@dataclass
class EncoderError:
    encoder_id: str
    message: str
