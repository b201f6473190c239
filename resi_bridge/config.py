"""Configuration helpers for the Resi Studio bridge."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Protocol

logger = logging.getLogger(__name__)

DEFAULT_API_BASE_URL = "https://central.resi.io/api"
DEFAULT_API_VERSION = "v3"
DEFAULT_CONFIG_PATH = "resi_bridge_config.json"


class ConfigStore(Protocol):
    """Key/value blob owned by the host; survives restarts."""

    def load(self) -> Dict[str, Any]:
        ...

    def save(self, data: Dict[str, Any]) -> None:
        ...


class MemoryConfigStore:
    def __init__(self, data: Optional[Dict[str, Any]] = None):
        self.data: Dict[str, Any] = dict(data or {})
        self.saves = 0

    def load(self) -> Dict[str, Any]:
        return dict(self.data)

    def save(self, data: Dict[str, Any]) -> None:
        self.data = dict(data)
        self.saves += 1


class JsonFileConfigStore:
    """Config store persisted as a single JSON document."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def load(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with self.path.open("r", encoding="utf-8") as handle:
                data = json.load(handle)
        except (OSError, json.JSONDecodeError) as exc:
            logger.error("Failed to read config store %s: %s", self.path, exc)
            return {}
        if not isinstance(data, dict):
            logger.error("Config store %s does not hold an object, ignoring it", self.path)
            return {}
        return data

    def save(self, data: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        with tmp_path.open("w", encoding="utf-8") as handle:
            json.dump(data, handle, indent=2)
        tmp_path.replace(self.path)


@dataclass
class BridgeConfig:
    client_id: str = ""
    client_secret: str = ""
    verbose: bool = False
    api_base_url: str = DEFAULT_API_BASE_URL
    api_version: str = DEFAULT_API_VERSION
    polling_interval: float = 60.0
    fast_poll_interval: float = 3.0
    fast_poll_max_attempts: int = 20
    request_limit: int = 10
    request_window: float = 60.0
    token_refresh_margin: float = 5.0
    http_timeout: float = 30.0
    status_webhook_url: Optional[str] = None

    @property
    def api_url(self) -> str:
        return f"{self.api_base_url.rstrip('/')}/{self.api_version}"

    @property
    def has_credentials(self) -> bool:
        return bool(self.client_id and self.client_secret)


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"1", "true", "yes", "on"}


def load_config(stored: Optional[Dict[str, Any]] = None) -> BridgeConfig:
    """Load configuration from environment variables, falling back to the stored blob."""
    stored = stored or {}
    return BridgeConfig(
        client_id=os.getenv("RESI_CLIENT_ID", stored.get("clientId", "")),
        client_secret=os.getenv("RESI_CLIENT_SECRET", stored.get("clientSecret", "")),
        verbose=_as_bool(os.getenv("RESI_VERBOSE", stored.get("verbose", False))),
        api_base_url=os.getenv("RESI_API_BASE_URL", DEFAULT_API_BASE_URL),
        api_version=os.getenv("RESI_API_VERSION", DEFAULT_API_VERSION),
        polling_interval=float(os.getenv("RESI_POLLING_INTERVAL", "60")),
        status_webhook_url=os.getenv("RESI_STATUS_WEBHOOK_URL"),
    )


def configure_logging(verbose: bool) -> None:
    """Verbose switches the package logger to DEBUG."""
    package_logger = logging.getLogger("resi_bridge")
    package_logger.setLevel(logging.DEBUG if verbose else logging.INFO)
