"""Bearer-token session for the Resi Studio API."""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from .client import ResiStudioClient
from .config import BridgeConfig
from .errors import AuthenticationFailed, MissingCredentials, ResiError
from .host import ConnectionStatus, HostCallbacks
from .models import CredentialSession

logger = logging.getLogger(__name__)


class SessionManager:
    """Holds the client-credentials token and refreshes it shortly before expiry."""

    def __init__(
        self,
        config: BridgeConfig,
        client: ResiStudioClient,
        host: Optional[HostCallbacks] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.config = config
        self.client = client
        self.host = host
        self._clock = clock
        self._session: Optional[CredentialSession] = None

    @property
    def session(self) -> Optional[CredentialSession]:
        return self._session

    @property
    def token(self) -> Optional[str]:
        return self._session.bearer_token if self._session else None

    def is_valid(self) -> bool:
        if self._session is None:
            return False
        return self._session.remaining(self._clock()) > self.config.token_refresh_margin

    async def ensure_valid_session(self) -> str:
        """Return a bearer token good for at least the refresh margin.

        Raises MissingCredentials or AuthenticationFailed; the previous
        session is kept as-is on failure. A failed exchange lowers the
        host's connection status to FAILURE.
        """
        if self.is_valid():
            return self._session.bearer_token
        if self._session is not None:
            logger.warning("Access token has expired. Re-authenticating...")
        self._report(ConnectionStatus.CONNECTING, "Re-authenticating with Resi Studio")
        try:
            token = await self.authenticate()
        except AuthenticationFailed:
            self._report(ConnectionStatus.FAILURE, "Re-authentication failed - see log for details")
            raise
        self._report(ConnectionStatus.OK, "Connected to Resi Studio")
        return token

    def _report(self, status: ConnectionStatus, message: str) -> None:
        if self.host is not None and self.config.has_credentials:
            self.host.update_status(status, message)

    async def authenticate(self) -> str:
        if not self.config.has_credentials:
            raise MissingCredentials()
        try:
            token = await self.client.request_token(self.config.client_id, self.config.client_secret)
        except ResiError as exc:
            logger.error("Failed to connect to Resi Studio: %s", exc)
            raise AuthenticationFailed(str(exc)) from exc

        self._session = CredentialSession(
            bearer_token=token.access_token,
            expires_at=self._clock() + token.expires_in,
        )
        logger.debug("Token expires in %s seconds", token.expires_in)
        logger.info("Successfully connected to Resi Studio")
        return token.access_token

    def clear(self) -> None:
        self._session = None
