"""
castsay: make Google Cast devices speak.

Find devices with :func:`discover`, pick a :class:`Target`, ``connect()``
to it and ``say()`` something::

    async for target in discover():
        if target.name == "Kitchen speaker":
            connection = await target.connect()
            await connection.say("Dinner is ready")
            break
"""

from .device import Connection, Target
from .discovery import UniqueTargets, discover
from .errors import CastError, CastSayError, DiscoveryError, ListenError, QueryError

__version__ = "0.1.0"

__all__ = [
    "CastError",
    "CastSayError",
    "Connection",
    "DiscoveryError",
    "ListenError",
    "QueryError",
    "Target",
    "UniqueTargets",
    "discover",
]
