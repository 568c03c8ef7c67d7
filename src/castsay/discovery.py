"""Continuous, deduplicated discovery of Cast devices."""

from __future__ import annotations

import logging

from .mdns import DEFAULT_QUERY_INTERVAL, SERVICE_NAME, query
from .records import extract

logger = logging.getLogger(__name__)


class UniqueTargets:
    """
    Async iterator of Targets, each address at most once.

    Wraps an async iterable of raw mDNS responses. Responses that do not
    describe a device are skipped; errors raised upstream reach the consumer
    untouched.
    """

    def __init__(self, responses):
        self._responses = responses.__aiter__()
        self.seen = set()

    def __aiter__(self):
        return self

    async def __anext__(self):
        while True:
            response = await self._responses.__anext__()
            target = extract(response)
            if target is None:
                continue
            if target.addr in self.seen:
                logger.debug("Already seen %s:%d", target.host, target.port)
                continue
            self.seen.add(target.addr)
            logger.info("Discovered '%s' at %s:%d", target.name, target.host, target.port)
            return target

    async def aclose(self):
        """Stop the underlying response stream and release its socket."""
        close = getattr(self._responses, "aclose", None)
        if close is not None:
            await close()


def discover(service_name=SERVICE_NAME, interval=DEFAULT_QUERY_INTERVAL):
    """Return an endless async iterator of Cast devices on the local network.

    Example:
        >>> async for target in discover():
        ...     print(target.name)
    """
    return UniqueTargets(query(service_name, interval))
