"""Exceptions raised by castsay."""

from __future__ import annotations


class CastSayError(Exception):
    """Base class for every castsay failure."""


class DiscoveryError(CastSayError):
    """Raised when the mDNS transport fails."""


class QueryError(DiscoveryError):
    """Raised when the discovery question could not be sent."""


class ListenError(DiscoveryError):
    """Raised when listening for discovery answers fails."""


class CastError(CastSayError):
    """Raised when a device-control step fails.

    ``step`` names the step that failed: ``open``, ``connect``, ``ping``,
    ``launch``, ``transport`` or ``load``.
    """

    def __init__(self, step: str, message: str):
        super().__init__(f"{step}: {message}")
        self.step = step
