"""Pydantic schemas for Resi Studio API payloads and the persisted schedule list."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from .errors import MalformedResponse
from .models import CatalogEntry, Destination, DestinationStatus, DestinationType, Schedule


class TokenResponse(BaseModel):
    access_token: str = Field(..., min_length=1)
    expires_in: float = Field(..., gt=0)

    model_config = ConfigDict(extra="ignore")


class CatalogItem(BaseModel):
    """Encoder or destination group as listed by the API."""

    id: str
    name: str = ""

    model_config = ConfigDict(extra="ignore")

    def to_entry(self) -> CatalogEntry:
        return CatalogEntry(id=self.id, name=self.name)


class ScheduleDestination(BaseModel):
    id: str
    name: Optional[str] = None
    type: DestinationType
    status: DestinationStatus

    model_config = ConfigDict(extra="ignore")

    def to_destination(self) -> Destination:
        return Destination(id=self.id, name=self.name or "Unknown Name", type=self.type, status=self.status)


class ScheduleResponse(BaseModel):
    id: str
    destinations: List[ScheduleDestination] = Field(default_factory=list)
    actions: Dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(extra="ignore")


class GoLivePayload(BaseModel):
    encoder_id: str = Field(..., alias="encoderId")
    destination_group_id: str = Field(..., alias="destinationGroupId")
    title: str
    description: str = ""

    model_config = ConfigDict(populate_by_name=True, serialize_by_alias=True)


class StoredDestination(BaseModel):
    id: str
    name: str
    type: DestinationType
    status: DestinationStatus


class StoredSchedule(BaseModel):
    """A schedule as mirrored into the config store."""

    encoder_id: str = Field(..., alias="encoderId")
    schedule_id: str = Field(..., alias="scheduleId")
    location: str = Field("", alias="scheduleIdLocation")
    destination_group_id: str = Field(..., alias="destinationGroupId")
    destinations: Optional[List[StoredDestination]] = None

    model_config = ConfigDict(populate_by_name=True, serialize_by_alias=True, extra="ignore")

    @classmethod
    def from_schedule(cls, schedule: Schedule) -> "StoredSchedule":
        destinations = None
        if schedule.destinations is not None:
            destinations = [
                StoredDestination(id=d.id, name=d.name, type=d.type, status=d.status) for d in schedule.destinations
            ]
        return cls(
            encoder_id=schedule.encoder_id,
            schedule_id=schedule.schedule_id,
            location=schedule.location,
            destination_group_id=schedule.destination_group_id,
            destinations=destinations,
        )

    def to_schedule(self) -> Schedule:
        destinations = None
        if self.destinations is not None:
            destinations = [Destination(id=d.id, name=d.name, type=d.type, status=d.status) for d in self.destinations]
        return Schedule(
            encoder_id=self.encoder_id,
            schedule_id=self.schedule_id,
            location=self.location,
            destination_group_id=self.destination_group_id,
            destinations=destinations,
        )


_catalog_adapter = TypeAdapter(List[CatalogItem])


def parse_token(data: Any) -> TokenResponse:
    try:
        return TokenResponse.model_validate(data)
    except ValidationError as exc:
        raise MalformedResponse("Invalid response from Resi Studio API: Missing access token or expiry time.") from exc


def parse_catalog(data: Any) -> List[CatalogEntry]:
    if data is None:
        return []
    try:
        items = _catalog_adapter.validate_python(data)
    except ValidationError as exc:
        raise MalformedResponse(f"Invalid catalog payload: {exc.error_count()} errors") from exc
    return [item.to_entry() for item in items]


def parse_schedule(data: Any) -> ScheduleResponse:
    try:
        return ScheduleResponse.model_validate(data)
    except ValidationError as exc:
        raise MalformedResponse(f"Invalid schedule payload: {exc.error_count()} errors") from exc
