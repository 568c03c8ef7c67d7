"""Configuration for the castsay command line."""

from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

from .client import DEFAULT_TIMEOUT
from .mdns import DEFAULT_QUERY_INTERVAL, SERVICE_NAME
from .speech import DEFAULT_LANGUAGE


def _float_env(name, default):
    raw = os.environ.get(name, str(default))
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number") from exc


@dataclass
class CastSayConfig:
    """
    Runtime settings for ``castsay``.

    Attributes:
        service_name: mDNS service queried for Cast devices.
        query_interval: Seconds between repeated mDNS questions.
        discover_timeout: How long the CLI listens for devices.
        connect_timeout: Per-round-trip timeout when talking to a device.
        language: Language tag passed to the TTS service.
        log_level: Name of the logging level for stderr output.
    """

    service_name: str = SERVICE_NAME
    query_interval: float = DEFAULT_QUERY_INTERVAL
    discover_timeout: float = 5.0
    connect_timeout: float = DEFAULT_TIMEOUT
    language: str = DEFAULT_LANGUAGE
    log_level: str = "WARNING"

    @classmethod
    def from_env(cls) -> "CastSayConfig":
        """
        Build a :class:`CastSayConfig` from environment variables.

        A ``.env`` file in the working directory is loaded first.

        Supported variables:
            - CASTSAY_SERVICE: mDNS service name (default: _googlecast._tcp.local.)
            - CASTSAY_QUERY_INTERVAL: Seconds between mDNS questions (default: 5).
            - CASTSAY_DISCOVER_TIMEOUT: Seconds the CLI listens (default: 5).
            - CASTSAY_CONNECT_TIMEOUT: Device round-trip timeout (default: 10).
            - CASTSAY_LANGUAGE: TTS language tag (default: "en").
            - CASTSAY_LOG_LEVEL: Logging level name (default: WARNING).
        """
        load_dotenv()
        return cls(
            service_name=os.environ.get("CASTSAY_SERVICE") or SERVICE_NAME,
            query_interval=_float_env("CASTSAY_QUERY_INTERVAL", DEFAULT_QUERY_INTERVAL),
            discover_timeout=_float_env("CASTSAY_DISCOVER_TIMEOUT", 5.0),
            connect_timeout=_float_env("CASTSAY_CONNECT_TIMEOUT", DEFAULT_TIMEOUT),
            language=os.environ.get("CASTSAY_LANGUAGE") or DEFAULT_LANGUAGE,
            log_level=(os.environ.get("CASTSAY_LOG_LEVEL") or "WARNING").upper(),
        )
