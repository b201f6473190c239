"""Callbacks the bridge uses to talk back to its host."""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Dict, Optional, Protocol

import requests

logger = logging.getLogger(__name__)


class ConnectionStatus(str, Enum):
    CONNECTING = "connecting"
    OK = "ok"
    WARNING = "warning"
    FAILURE = "failure"


class HostCallbacks(Protocol):
    def update_status(self, status: ConnectionStatus, message: Optional[str] = None) -> None:
        ...

    def check_feedbacks(self) -> None:
        ...

    def set_variable_values(self, values: Dict[str, str]) -> None:
        ...


class HostState:
    """In-process host: remembers status and variables, optionally posts status changes to a webhook."""

    def __init__(self, webhook_url: Optional[str] = None):
        self.webhook_url = webhook_url
        self.status = ConnectionStatus.CONNECTING
        self.status_message: Optional[str] = None
        self.variables: Dict[str, str] = {}
        self.feedback_checks = 0

    def update_status(self, status: ConnectionStatus, message: Optional[str] = None) -> None:
        changed = status != self.status or message != self.status_message
        self.status = status
        self.status_message = message
        if changed and self.webhook_url:
            self._dispatch_webhook(status, message)

    def check_feedbacks(self) -> None:
        self.feedback_checks += 1

    def set_variable_values(self, values: Dict[str, str]) -> None:
        self.variables.update(values)

    def _dispatch_webhook(self, status: ConnectionStatus, message: Optional[str]) -> None:
        # off the event loop when called from async code
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._send_webhook(status, message)
            return
        loop.run_in_executor(None, self._send_webhook, status, message)

    def _send_webhook(self, status: ConnectionStatus, message: Optional[str]) -> None:
        payload = {"status": status.value, "message": message}
        try:
            response = requests.post(self.webhook_url, json=payload, timeout=10)
            response.raise_for_status()
        except requests.RequestException as exc:
            logger.error("Failed to send status webhook: %s", exc)
