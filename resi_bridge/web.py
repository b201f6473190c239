"""FastAPI application exposing the Resi Studio operator commands."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

from .config import DEFAULT_CONFIG_PATH, BridgeConfig, JsonFileConfigStore, load_config
from .connection import ResiConnection
from .errors import ApiError, ResiError
from .feedbacks import all_destinations_started, encoder_has_error
from .host import HostState
from .models import Schedule
from .schemas import StoredSchedule

logger = logging.getLogger(__name__)


class GoLiveRequest(BaseModel):
    encoder_id: str = Field(..., description="Encoder to start.")
    destination_group_id: str = Field(..., description="Destination group to stream to.")
    title: str = Field("Live Stream", description="Title for the live stream")
    description: str = Field("", description="Description for the live stream")


class StopLiveRequest(BaseModel):
    encoder_id: str
    destination_group_id: str


def _schedule_payload(schedule: Optional[Schedule]) -> Optional[Dict[str, Any]]:
    if schedule is None:
        return None
    return StoredSchedule.from_schedule(schedule).model_dump(mode="json", by_alias=True)


def create_app(
    config: Optional[BridgeConfig] = None,
    connection: Optional[ResiConnection] = None,
    host: Optional[HostState] = None,
) -> FastAPI:
    if connection is None:
        store = JsonFileConfigStore(Path(os.getenv("RESI_CONFIG_PATH", DEFAULT_CONFIG_PATH)))
        config = config or load_config(store.load())
        host = host or HostState(webhook_url=config.status_webhook_url)
        connection = ResiConnection(config, store, host)
    else:
        host = host or connection.host  # type: ignore[assignment]

    app = FastAPI(title="Resi Studio Bridge")

    @app.get("/health")
    async def health() -> Dict[str, str]:
        return {"status": "ok"}

    @app.get("/status")
    async def status() -> Dict[str, Any]:
        return {
            "status": host.status.value,
            "message": host.status_message,
            "polling": connection.poller.slow_loop_active,
            "fast_polls": connection.poller.active_fast_polls,
        }

    @app.get("/encoders")
    async def encoders() -> List[Dict[str, str]]:
        return [{"id": e.id, "name": e.name} for e in connection.catalog.encoders]

    @app.get("/destination-groups")
    async def destination_groups() -> List[Dict[str, str]]:
        return [{"id": g.id, "name": g.name} for g in connection.catalog.destination_groups]

    @app.get("/schedules")
    async def schedules() -> List[Dict[str, Any]]:
        return [_schedule_payload(schedule) for schedule in connection.registry]

    @app.post("/streams/go-live")
    async def go_live(payload: GoLiveRequest):
        schedule = await connection.go_live(
            payload.encoder_id, payload.destination_group_id, payload.title, payload.description
        )
        error = connection.errors.get(payload.encoder_id)
        return {
            "schedule": _schedule_payload(schedule),
            "error": error.message if error else None,
            "tracked": schedule is not None,
        }

    @app.post("/streams/stop-live")
    async def stop_live(payload: StopLiveRequest):
        try:
            schedule = await connection.stop_live(payload.encoder_id, payload.destination_group_id)
        except ApiError as exc:
            raise HTTPException(status_code=502, detail=str(exc)) from exc
        except ResiError as exc:
            raise HTTPException(status_code=503, detail=str(exc)) from exc
        error = connection.errors.get(payload.encoder_id)
        return {
            "stopped": _schedule_payload(schedule),
            "error": error.message if schedule is None and error else None,
        }

    @app.post("/connection/restart")
    async def restart_connection() -> Dict[str, Any]:
        connected = await connection.restart()
        return {"connected": connected, "status": host.status.value, "message": host.status_message}

    @app.get("/feedbacks/all-destinations-started")
    async def feedback_all_started(encoder_id: str, destination_group_id: str) -> Dict[str, bool]:
        return {"value": all_destinations_started(connection.registry, encoder_id, destination_group_id)}

    @app.get("/feedbacks/encoder-error")
    async def feedback_encoder_error(encoder_id: str) -> Dict[str, bool]:
        return {"value": encoder_has_error(connection.errors, encoder_id)}

    @app.get("/variables")
    async def variables() -> Dict[str, str]:
        return dict(host.variables)

    @app.on_event("startup")
    async def startup_event() -> None:
        logging.basicConfig(level=logging.INFO, format="%(asctime)s | %(levelname)s | %(name)s | %(message)s")
        logger.info("Resi Studio bridge started.")
        await connection.start()

    @app.on_event("shutdown")
    async def shutdown_event() -> None:
        await connection.stop()

    app.state.connection = connection
    return app


app = create_app()
