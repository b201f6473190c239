"""Boolean button feedbacks computed from the registries."""

from __future__ import annotations

from .models import DestinationStatus
from .registry import EncoderErrorTable, ScheduleRegistry


def all_destinations_started(registry: ScheduleRegistry, encoder_id: str, destination_group_id: str) -> bool:
    schedule = registry.find(encoder_id, destination_group_id)
    if schedule is None:
        return False
    return schedule.all_destinations(DestinationStatus.STARTED)


def encoder_has_error(errors: EncoderErrorTable, encoder_id: str) -> bool:
    if not encoder_id:
        return False
    return errors.get(encoder_id) is not None
