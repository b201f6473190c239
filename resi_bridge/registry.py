"""In-memory registries of live schedules and encoder errors."""

from __future__ import annotations

import logging
from typing import Dict, Iterator, List, Optional

from pydantic import ValidationError

from .config import ConfigStore
from .host import HostCallbacks
from .models import Destination, EncoderError, Schedule
from .schemas import StoredSchedule

logger = logging.getLogger(__name__)

SCHEDULES_KEY = "schedules"
ENCODER_ERROR_VARIABLE = "encoderErrorStatus"


class ScheduleRegistry:
    """Active schedules, at most one per (encoder, destination group).

    Every mutation is mirrored into the config store.
    """

    def __init__(self, store: ConfigStore):
        self.store = store
        self._schedules: List[Schedule] = []

    def __iter__(self) -> Iterator[Schedule]:
        return iter(list(self._schedules))

    def __len__(self) -> int:
        return len(self._schedules)

    def __contains__(self, schedule_id: object) -> bool:
        return self.get(schedule_id) is not None  # type: ignore[arg-type]

    def find(self, encoder_id: str, destination_group_id: str) -> Optional[Schedule]:
        for schedule in self._schedules:
            if schedule.matches(encoder_id, destination_group_id):
                return schedule
        return None

    def get(self, schedule_id: str) -> Optional[Schedule]:
        for schedule in self._schedules:
            if schedule.schedule_id == schedule_id:
                return schedule
        return None

    def add(self, schedule: Schedule) -> None:
        if self.find(schedule.encoder_id, schedule.destination_group_id) is not None:
            raise ValueError(
                f"Schedule already registered for encoder {schedule.encoder_id} "
                f"and destination group {schedule.destination_group_id}"
            )
        self._schedules.append(schedule)
        self.persist()

    def remove(self, schedule_id: str) -> Optional[Schedule]:
        schedule = self.get(schedule_id)
        if schedule is None:
            return None
        self._schedules = [s for s in self._schedules if s.schedule_id != schedule_id]
        self.persist()
        logger.info("Removed Schedule Id %s from the list", schedule_id)
        return schedule

    def remove_pair(self, encoder_id: str, destination_group_id: str) -> Optional[Schedule]:
        schedule = self.find(encoder_id, destination_group_id)
        if schedule is None:
            return None
        return self.remove(schedule.schedule_id)

    def update_destinations(self, schedule_id: str, destinations: List[Destination]) -> Optional[Schedule]:
        schedule = self.get(schedule_id)
        if schedule is None:
            return None
        schedule.destinations = destinations
        self.persist()
        return schedule

    def persist(self) -> None:
        data = self.store.load()
        data[SCHEDULES_KEY] = [
            StoredSchedule.from_schedule(schedule).model_dump(mode="json", by_alias=True)
            for schedule in self._schedules
        ]
        self.store.save(data)

    def load(self) -> int:
        """Replace the registry with what the config store holds; no validation against the API."""
        loaded: List[Schedule] = []
        for raw in self.store.load().get(SCHEDULES_KEY) or []:
            try:
                schedule = StoredSchedule.model_validate(raw).to_schedule()
            except ValidationError as exc:
                logger.warning("Skipping malformed stored schedule %r: %s", raw, exc)
                continue
            if any(s.matches(schedule.encoder_id, schedule.destination_group_id) for s in loaded):
                logger.warning("Skipping duplicate stored schedule %s", schedule.schedule_id)
                continue
            loaded.append(schedule)
        self._schedules = loaded
        logger.info("Loaded %d schedules from config", len(loaded))
        return len(loaded)


class EncoderErrorTable:
    """Last error per encoder; drives the encoder-error feedback and variable."""

    def __init__(self, host: HostCallbacks):
        self.host = host
        self._errors: Dict[str, EncoderError] = {}

    def __iter__(self) -> Iterator[EncoderError]:
        return iter(list(self._errors.values()))

    def get(self, encoder_id: str) -> Optional[EncoderError]:
        return self._errors.get(encoder_id)

    def record(self, encoder_id: str, message: str) -> None:
        self._errors[encoder_id] = EncoderError(encoder_id=encoder_id, message=message)
        self.host.check_feedbacks()
        self.host.set_variable_values({ENCODER_ERROR_VARIABLE: message})

    def clear(self, encoder_id: str) -> None:
        self._errors.pop(encoder_id, None)
        self.host.check_feedbacks()
        self.host.set_variable_values({ENCODER_ERROR_VARIABLE: ""})
