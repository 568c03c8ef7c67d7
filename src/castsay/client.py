"""Device-control client used by connect/say.

``CastClient`` is the narrow surface the rest of castsay needs from a Cast
control channel. ``PyChromecastClient`` provides it on top of pychromecast,
which owns the Cast v2 wire protocol.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol

import pychromecast
from pychromecast.error import PyChromecastError

from .errors import CastError

logger = logging.getLogger(__name__)

# Platform endpoint every Cast device answers on
DEFAULT_DESTINATION_ID = "receiver-0"
# Seconds to wait for each device round-trip
DEFAULT_TIMEOUT = 10.0
PONG_POLL_INTERVAL = 0.05
# Media namespace replies that mean the LOAD did not take
LOAD_ERROR_TYPES = frozenset({"LOAD_FAILED", "LOAD_CANCELLED", "INVALID_REQUEST", "ERROR"})


@dataclass(frozen=True)
class LaunchedApp:
    """Handles returned by the device after launching a receiver app."""

    transport_id: str
    session_id: str


@dataclass(frozen=True)
class Media:
    """
    Media item handed to the device's media subsystem.

    Attributes:
        content_id: URL the device fetches.
        content_type: MIME type of the content.
        stream_type: "BUFFERED", "LIVE" or "NONE".
        duration: Optional duration in seconds.
        metadata: Optional Cast metadata dict.
    """

    content_id: str
    content_type: str
    stream_type: str = "BUFFERED"
    duration: Optional[float] = None
    metadata: Optional[Dict[str, Any]] = None


class CastClient(Protocol):
    """Control channel to one Cast device."""

    def connect_endpoint(self, destination_id: str) -> None:
        """Open a virtual connection to ``destination_id``."""

    def ping(self) -> None:
        """Send a heartbeat and block until the device answers."""

    def launch_app(self, app_id: str) -> LaunchedApp:
        """Launch ``app_id`` and return its transport/session ids."""

    def connect_transport(self, transport_id: str) -> None:
        """Open a virtual connection to a launched app."""

    def load(self, transport_id: str, session_id: str, media: Media) -> None:
        """Ask the app's media subsystem to load and play ``media``."""

    def close(self) -> None:
        """Release the control channel."""


class PyChromecastClient:
    """CastClient backed by a pychromecast ``Chromecast``."""

    def __init__(self, cast, timeout=DEFAULT_TIMEOUT):
        self._cast = cast
        self.timeout = timeout

    @classmethod
    def open(cls, host, port, timeout=DEFAULT_TIMEOUT):
        """Create a client for the device at ``host:port``.

        pychromecast only dials the device once the socket thread starts,
        which happens in :meth:`connect_endpoint`.
        """
        try:
            cast = pychromecast.get_chromecast_from_host(
                (host, port, None, None, None),
                timeout=timeout,
            )
        except (PyChromecastError, OSError) as e:
            raise CastError("open", str(e)) from e
        logger.debug("Created control client for %s:%d", host, port)
        return cls(cast, timeout)

    def connect_endpoint(self, destination_id):
        """Start the socket thread, then connect to ``destination_id``."""
        try:
            self._cast.wait(timeout=self.timeout)
            self._cast.socket_client._ensure_channel_connected(destination_id)
        except (PyChromecastError, OSError) as e:
            raise CastError("connect", str(e)) from e

    def ping(self):
        """Heartbeat the device; a missing PONG within the timeout fails."""
        heartbeat = self._cast.socket_client.heartbeat_controller
        try:
            heartbeat.ping()
        except (PyChromecastError, OSError) as e:
            raise CastError("ping", str(e)) from e
        sent = heartbeat.last_ping
        deadline = time.monotonic() + self.timeout
        while heartbeat.last_pong < sent:
            if time.monotonic() > deadline:
                raise CastError("ping", f"no heartbeat reply within {self.timeout}s")
            time.sleep(PONG_POLL_INTERVAL)

    def launch_app(self, app_id):
        """Launch ``app_id``, replacing whatever the device is running."""
        try:
            self._cast.start_app(app_id, force_launch=True, timeout=self.timeout)
        except (PyChromecastError, OSError) as e:
            raise CastError("launch", str(e)) from e
        status = self._cast.status
        if status is None or status.app_id != app_id:
            raise CastError("launch", f"device did not report app {app_id} as running")
        return LaunchedApp(transport_id=status.transport_id, session_id=status.session_id)

    def connect_transport(self, transport_id):
        try:
            self._cast.socket_client._ensure_channel_connected(transport_id)
        except (PyChromecastError, OSError) as e:
            raise CastError("transport", str(e)) from e

    def load(self, transport_id, session_id, media):
        """Send LOAD for ``media`` and wait for the device to accept it."""
        status = self._cast.status
        if status is None or (status.transport_id, status.session_id) != (transport_id, session_id):
            raise CastError("load", f"app session {session_id} is no longer active")

        done = threading.Event()
        outcome = {}

        def on_loaded(msg_sent, response):
            outcome["ok"] = msg_sent
            outcome["response"] = response
            done.set()

        media_info = {"duration": media.duration} if media.duration is not None else None
        try:
            self._cast.media_controller.play_media(
                media.content_id,
                media.content_type,
                stream_type=media.stream_type,
                metadata=media.metadata,
                media_info=media_info,
                callback_function=on_loaded,
            )
        except (PyChromecastError, OSError) as e:
            raise CastError("load", str(e)) from e

        if not done.wait(self.timeout):
            raise CastError("load", f"no reply to LOAD within {self.timeout}s")
        response = outcome["response"]
        if not outcome["ok"]:
            raise CastError("load", f"device rejected media: {response}")
        # pychromecast reports every reply to the request as sent, rejections included
        if response is None:
            raise CastError("load", "device sent no status for LOAD")
        if response.get("type") in LOAD_ERROR_TYPES:
            raise CastError("load", f"device rejected media: {response}")

    def close(self):
        self._cast.disconnect(timeout=self.timeout)


def open_client(host, port, timeout=DEFAULT_TIMEOUT):
    """Default client factory used by :meth:`castsay.device.Target.connect`."""
    return PyChromecastClient.open(host, port, timeout)
