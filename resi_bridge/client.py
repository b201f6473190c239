"""Resi Studio REST API client wrapper."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional

import requests

from .config import BridgeConfig
from .errors import MalformedResponse, NetworkFailure, Unauthorized, error_for_response
from .models import CatalogEntry
from .rate_limiter import RateLimiter
from .schemas import GoLivePayload, ScheduleResponse, TokenResponse, parse_catalog, parse_schedule, parse_token

logger = logging.getLogger(__name__)


class ResiStudioClient:
    """Thin async wrapper around the Resi Studio v3 API.

    Every call goes through the shared rate limiter. Blocking ``requests``
    calls are pushed to a worker thread so the event loop keeps running.
    """

    def __init__(
        self,
        config: BridgeConfig,
        limiter: RateLimiter,
        http: Optional[requests.Session] = None,
        on_unauthorized: Optional[Callable[[], None]] = None,
    ):
        self.config = config
        self.limiter = limiter
        self.http = http or requests.Session()
        self.on_unauthorized = on_unauthorized

    def url(self, path: str) -> str:
        return f"{self.config.api_url}/{path.lstrip('/')}"

    async def _send(
        self,
        method: str,
        path: str,
        token: Optional[str] = None,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> requests.Response:
        url = self.url(path)
        headers = {"Content-Type": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"

        async with self.limiter.slot():
            try:
                response = await asyncio.to_thread(
                    self.http.request,
                    method,
                    url,
                    headers=headers,
                    json=json,
                    params=params,
                    timeout=self.config.http_timeout,
                )
            except requests.RequestException as exc:
                raise NetworkFailure(f"{method} {url} failed: {exc}") from exc

        logger.debug("Response: %s %s for %s %s", response.status_code, response.reason, method, url)
        if not response.ok:
            error = error_for_response(response)
            if isinstance(error, Unauthorized) and token and self.on_unauthorized:
                self.on_unauthorized()
            raise error
        return response

    @staticmethod
    def _json(response: requests.Response) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            raise MalformedResponse(f"Response from {response.url} is not JSON") from exc

    async def request_token(self, client_id: str, client_secret: str) -> TokenResponse:
        response = await self._send(
            "POST",
            "oauth/token",
            json={"client_id": client_id, "client_secret": client_secret, "grant_type": "client_credentials"},
        )
        return parse_token(self._json(response))

    async def list_encoders(self, token: str) -> List[CatalogEntry]:
        response = await self._send("GET", "encoders", token=token, params={"hardwareOnly": "true"})
        encoders = parse_catalog(self._json(response))
        logger.debug("Retrieved encoders: %s", encoders)
        return encoders

    async def list_destination_groups(self, token: str) -> List[CatalogEntry]:
        response = await self._send("GET", "destinationgroups", token=token)
        groups = parse_catalog(self._json(response))
        logger.debug("Retrieved destination groups: %s", groups)
        return groups

    async def create_live_schedule(self, token: str, payload: GoLivePayload) -> Optional[str]:
        """Start a live schedule; returns the ``Location`` of the new schedule if the API sent one."""
        response = await self._send("POST", "schedules/live", token=token, json=payload.model_dump(by_alias=True))
        location = response.headers.get("location")
        logger.debug("Schedule location: %s", location)
        return location

    async def stop_schedule(self, token: str, schedule_id: str) -> None:
        await self._send("POST", f"schedules/{schedule_id}/stop", token=token)
        logger.info("Stopped schedule %s", schedule_id)

    async def get_schedule(self, token: str, schedule_id: str) -> ScheduleResponse:
        response = await self._send("GET", f"schedules/{schedule_id}", token=token)
        return parse_schedule(self._json(response))

    def close(self) -> None:
        self.http.close()
