"""Tests for encoder and destination-group catalog refresh."""

from conftest import make_response

from resi_bridge.catalog import DEFAULT_DESTINATION_GROUP, DEFAULT_ENCODER
from resi_bridge.host import ConnectionStatus
from resi_bridge.models import CatalogEntry


async def test_destination_groups_replace_snapshot_and_mark_ok(connection, authed, http, host):
    await authed()
    http.add(
        "GET",
        "destinationgroups",
        make_response(200, [{"id": "grp1", "name": "Sunday"}, {"id": "grp2", "name": "Midweek"}]),
    )
    host.update_status(ConnectionStatus.WARNING, "stale")

    groups = await connection.catalog.refresh_destination_groups()

    assert groups == [CatalogEntry("grp1", "Sunday"), CatalogEntry("grp2", "Midweek")]
    assert host.status is ConnectionStatus.OK
    assert connection.catalog.group_name("grp2") == "Midweek"


async def test_empty_destination_groups_fall_back_to_placeholder(connection, authed, http, host):
    await authed()
    http.add("GET", "destinationgroups", make_response(200, []))

    groups = await connection.catalog.refresh_destination_groups()

    assert groups == [DEFAULT_DESTINATION_GROUP]
    assert host.status is ConnectionStatus.WARNING


async def test_failed_encoder_refresh_falls_back_to_placeholder(connection, authed, http, host):
    await authed()
    http.add("GET", "encoders", make_response(200, [{"id": "enc1", "name": "Booth"}]), make_response(500))

    assert await connection.catalog.refresh_encoders() == [CatalogEntry("enc1", "Booth")]
    assert await connection.catalog.refresh_encoders() == [DEFAULT_ENCODER]
    assert host.status is ConnectionStatus.FAILURE


async def test_unknown_ids_get_generic_names(connection):
    assert connection.catalog.encoder_name("nope") == "Unknown Encoder"
    assert connection.catalog.group_name("nope") == "Unknown Destination Group"


async def test_refresh_without_session_keeps_snapshot(connection, http, config):
    config.client_id = ""

    groups = await connection.catalog.refresh_destination_groups()

    assert groups == [DEFAULT_DESTINATION_GROUP]
    assert http.calls == []
