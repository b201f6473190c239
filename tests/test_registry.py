"""Tests for the schedule registry, its persistence and the encoder error table."""

import json

import pytest

from resi_bridge.config import JsonFileConfigStore, MemoryConfigStore
from resi_bridge.host import HostState
from resi_bridge.models import Destination, DestinationStatus, DestinationType, Schedule
from resi_bridge.registry import ENCODER_ERROR_VARIABLE, SCHEDULES_KEY, EncoderErrorTable, ScheduleRegistry


def make_schedule(encoder_id="enc1", group_id="grp1", schedule_id="abc123") -> Schedule:
    return Schedule(
        encoder_id=encoder_id,
        schedule_id=schedule_id,
        location=f"https://api/v1/schedules/{schedule_id}",
        destination_group_id=group_id,
    )


class TestScheduleRegistry:
    def test_add_persists_camel_case_records(self):
        store = MemoryConfigStore({"clientId": "kept"})
        registry = ScheduleRegistry(store)

        registry.add(make_schedule())

        assert store.data["clientId"] == "kept"
        assert store.data[SCHEDULES_KEY] == [
            {
                "encoderId": "enc1",
                "scheduleId": "abc123",
                "scheduleIdLocation": "https://api/v1/schedules/abc123",
                "destinationGroupId": "grp1",
                "destinations": None,
            }
        ]

    def test_one_schedule_per_pair(self):
        registry = ScheduleRegistry(MemoryConfigStore())
        registry.add(make_schedule())

        with pytest.raises(ValueError):
            registry.add(make_schedule(schedule_id="other"))

        registry.add(make_schedule(group_id="grp2", schedule_id="other"))
        assert len(registry) == 2

    def test_remove_pair_is_exact_match(self):
        registry = ScheduleRegistry(MemoryConfigStore())
        registry.add(make_schedule("enc1", "grp1", "s1"))
        registry.add(make_schedule("enc1", "grp2", "s2"))
        registry.add(make_schedule("enc2", "grp1", "s3"))

        removed = registry.remove_pair("enc1", "grp1")

        assert removed.schedule_id == "s1"
        assert sorted(s.schedule_id for s in registry) == ["s2", "s3"]

    def test_update_destinations_persists(self):
        store = MemoryConfigStore()
        registry = ScheduleRegistry(store)
        registry.add(make_schedule())
        saves = store.saves

        registry.update_destinations(
            "abc123", [Destination("d1", "YouTube", DestinationType.YOUTUBE, DestinationStatus.STARTED)]
        )

        assert store.saves == saves + 1
        assert store.data[SCHEDULES_KEY][0]["destinations"] == [
            {"id": "d1", "name": "YouTube", "type": "YOUTUBE", "status": "STARTED"}
        ]

    def test_load_restores_verbatim_and_skips_malformed(self):
        store = MemoryConfigStore(
            {
                SCHEDULES_KEY: [
                    {
                        "encoderId": "enc1",
                        "scheduleId": "abc123",
                        "scheduleIdLocation": "https://api/v1/schedules/abc123",
                        "destinationGroupId": "grp1",
                        "destinations": [{"id": "d1", "name": "FB", "type": "FACEBOOK", "status": "STOPPED"}],
                    },
                    {"encoderId": "enc2"},
                ]
            }
        )
        registry = ScheduleRegistry(store)

        assert registry.load() == 1

        schedule = registry.get("abc123")
        assert schedule.matches("enc1", "grp1")
        assert schedule.destinations[0].status is DestinationStatus.STOPPED

    def test_survives_restart_through_json_file(self, tmp_path):
        path = tmp_path / "config.json"
        ScheduleRegistry(JsonFileConfigStore(path)).add(make_schedule())

        reloaded = ScheduleRegistry(JsonFileConfigStore(path))
        reloaded.load()

        assert [s.schedule_id for s in reloaded] == ["abc123"]
        assert json.loads(path.read_text())[SCHEDULES_KEY][0]["scheduleId"] == "abc123"


class TestEncoderErrorTable:
    def test_last_write_wins_and_sets_variable(self):
        host = HostState()
        errors = EncoderErrorTable(host)

        errors.record("enc1", "first")
        errors.record("enc1", "second")

        assert [e.message for e in errors] == ["second"]
        assert host.variables[ENCODER_ERROR_VARIABLE] == "second"
        assert host.feedback_checks == 2

    def test_clear_resets_variable(self):
        host = HostState()
        errors = EncoderErrorTable(host)
        errors.record("enc1", "boom")

        errors.clear("enc1")

        assert errors.get("enc1") is None
        assert host.variables[ENCODER_ERROR_VARIABLE] == ""
