"""Discovered Cast devices and connected sessions.

Every device round-trip blocks, so ``connect`` and ``say`` hand the whole
sequence to a worker thread and the caller awaits it as a single step.
"""

from __future__ import annotations

import asyncio
import functools
import logging
from dataclasses import dataclass, field
from typing import Callable, Tuple

from .client import DEFAULT_DESTINATION_ID, DEFAULT_TIMEOUT, CastClient, Media, open_client
from .errors import CastSayError
from .speech import DEFAULT_LANGUAGE, tts_url

logger = logging.getLogger(__name__)

# Default Media Receiver
DEFAULT_MEDIA_RECEIVER_APP_ID = "CC1AD845"
SPEECH_CONTENT_TYPE = "audio/mp3"

ClientFactory = Callable[[str, int, float], CastClient]


async def _unblock(executor, func, *args):
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(executor, func, *args)


def _close_abandoned(executor, opening):
    """Close a client that finished opening after its caller went away."""
    if opening.cancelled() or opening.exception() is not None:
        return
    logger.debug("Closing connection nobody is waiting for")
    opening.get_loop().run_in_executor(executor, opening.result().close)


@dataclass(frozen=True)
class Target:
    """
    A Cast device seen on the network, not yet connected.

    Two targets are equal when they share an address; the name is only for
    display.

    Attributes:
        name: Friendly name from the device's ``fn`` TXT entry.
        addr: ``(ip, port)`` of the device's control channel.
    """

    name: str = field(compare=False)
    addr: Tuple[str, int]

    @property
    def host(self) -> str:
        return self.addr[0]

    @property
    def port(self) -> int:
        return self.addr[1]

    async def connect(
        self,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        language: str = DEFAULT_LANGUAGE,
        client_factory: ClientFactory = open_client,
        executor=None,
    ) -> "Connection":
        """Open a control channel to this device.

        Dials the device, connects to the platform receiver and checks it
        answers a heartbeat. Raises :class:`~castsay.errors.CastError` if any
        step fails; no Connection exists in that case.
        """
        loop = asyncio.get_running_loop()
        opening = loop.run_in_executor(executor, self._open, client_factory, timeout)
        try:
            client = await asyncio.shield(opening)
        except asyncio.CancelledError:
            # the worker keeps running; close whatever it opens
            opening.add_done_callback(functools.partial(_close_abandoned, executor))
            raise
        return Connection(client, language=language, executor=executor)

    def _open(self, client_factory, timeout):
        logger.info("Connecting to '%s' at %s:%d", self.name, self.host, self.port)
        client = client_factory(self.host, self.port, timeout)
        try:
            client.connect_endpoint(DEFAULT_DESTINATION_ID)
            client.ping()
        except CastSayError:
            client.close()
            raise
        logger.info("Connected to '%s'", self.name)
        return client


class Connection:
    """
    A live control channel to one Cast device.

    The client is shared by every ``say`` call; nothing serializes those
    calls, so callers that need wire ordering must await one before starting
    the next.
    """

    def __init__(self, client: CastClient, *, language: str = DEFAULT_LANGUAGE, executor=None):
        self.client = client
        self.language = language
        self._executor = executor

    async def say(self, message: str) -> None:
        """Make the device speak ``message``.

        Launches the Default Media Receiver, connects to it and loads the
        speech MP3. The app is launched afresh on every call.
        """
        await _unblock(self._executor, self._say, message)

    def _say(self, message):
        client = self.client
        app = client.launch_app(DEFAULT_MEDIA_RECEIVER_APP_ID)
        logger.debug("Launched %s (transport %s)", DEFAULT_MEDIA_RECEIVER_APP_ID, app.transport_id)
        client.connect_transport(app.transport_id)
        client.load(
            app.transport_id,
            app.session_id,
            Media(
                content_id=tts_url(message, self.language),
                content_type=SPEECH_CONTENT_TYPE,
                stream_type="BUFFERED",
                duration=None,
                metadata=None,
            ),
        )
        logger.info("Speaking %d characters", len(message))

    async def close(self) -> None:
        """Drop the control channel. Optional; the client cleans up on its own."""
        await _unblock(self._executor, self.client.close)