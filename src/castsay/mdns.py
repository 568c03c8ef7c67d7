"""Raw multicast-DNS query/listen on the asyncio event loop.

zeroconf binds the mDNS sockets, joins the group on each interface and
handles the DNS packet codec; the sockets themselves are driven by the
running loop, so waiting for answers never ties up a thread.
"""

from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterator

from zeroconf import DNSIncoming, DNSOutgoing, DNSQuestion, InterfaceChoice, IPVersion, create_sockets
from zeroconf.const import _CLASS_IN, _FLAGS_QR_QUERY, _MDNS_ADDR, _MDNS_PORT, _TYPE_PTR

from .errors import ListenError, QueryError

logger = logging.getLogger(__name__)

SERVICE_NAME = "_googlecast._tcp.local."
# Seconds between repeated questions while listening
DEFAULT_QUERY_INTERVAL = 5.0

MDNS_GROUP = (_MDNS_ADDR, _MDNS_PORT)


class _MdnsProtocol(asyncio.DatagramProtocol):
    """Pushes datagrams and transport errors onto a queue."""

    def __init__(self, queue):
        self._queue = queue

    def datagram_received(self, data, addr):
        self._queue.put_nowait((data, addr))

    def error_received(self, exc):
        self._queue.put_nowait(exc)

    def connection_lost(self, exc):
        if exc is not None:
            self._queue.put_nowait(exc)


def build_query(service_name):
    """Return the wire bytes of a PTR question for ``service_name``."""
    out = DNSOutgoing(_FLAGS_QR_QUERY, multicast=True)
    out.add_question(DNSQuestion(service_name, _TYPE_PTR, _CLASS_IN))
    return out.packets()[0]


def _open_sockets(interfaces):
    """Have zeroconf bind the mDNS port and join the group on ``interfaces``.

    Returns ``(readers, senders)``. The wildcard listen socket hears the
    group; each per-interface socket sends the question out of its own
    interface. zeroconf hands back one socket for both roles when it can.
    """
    listen_socket, respond_sockets = create_sockets(interfaces, ip_version=IPVersion.V4Only)
    readers = [] if listen_socket is None else [listen_socket]
    readers += [s for s in respond_sockets if s not in readers]
    return readers, respond_sockets


def _close_all(sockets):
    for sock in sockets:
        sock.close()


def _send_first_question(senders, packet):
    """Send ``packet`` on every interface; fail only if no interface took it."""
    error = None
    sent = 0
    for sock in senders:
        try:
            sock.sendto(packet, MDNS_GROUP)
        except OSError as e:
            logger.debug("Cannot send mDNS query on %r: %s", sock, e)
            error = e
        else:
            sent += 1
    if not sent:
        raise error


async def query(
    service_name=SERVICE_NAME,
    interval=DEFAULT_QUERY_INTERVAL,
    interfaces=InterfaceChoice.All,
) -> AsyncIterator[DNSIncoming]:
    """
    Ask for ``service_name`` and yield every mDNS response heard afterwards.

    The question goes out on each of ``interfaces`` (a zeroconf
    ``InterfaceChoice`` or a list of addresses) and is repeated every
    ``interval`` seconds. The iterator never ends by itself; stop iterating
    (or cancel the consuming task) to close the sockets.

    Raises:
        QueryError: no socket could be opened or the first question could
            not be sent on any interface. Nothing is yielded in that case.
        ListenError: a socket failed while waiting for answers.
    """
    loop = asyncio.get_running_loop()
    packet = build_query(service_name)
    try:
        readers, senders = _open_sockets(interfaces)
    except OSError as e:
        raise QueryError(f"cannot open mDNS socket: {e}") from e
    if not senders:
        _close_all(readers)
        raise QueryError("no network interface to send the mDNS query on")
    try:
        _send_first_question(senders, packet)
    except OSError as e:
        _close_all(readers)
        raise QueryError(f"cannot send query for {service_name}: {e}") from e
    logger.debug("Sent mDNS query for %s on %d interface(s)", service_name, len(senders))

    packets = asyncio.Queue()
    transports = {}
    try:
        for sock in readers:
            transport, _ = await loop.create_datagram_endpoint(lambda: _MdnsProtocol(packets), sock=sock)
            transports[sock] = transport
    except OSError as e:
        for transport in transports.values():
            transport.close()
        _close_all(s for s in readers if s not in transports)
        raise QueryError(f"cannot listen for mDNS answers: {e}") from e

    requery = None

    def ask_again():
        nonlocal requery
        for sock in senders:
            transports[sock].sendto(packet, MDNS_GROUP)
        requery = loop.call_later(interval, ask_again)

    if interval:
        requery = loop.call_later(interval, ask_again)

    try:
        while True:
            item = await packets.get()
            if isinstance(item, Exception):
                raise ListenError(f"mDNS listen failed: {item}") from item
            data, addr = item
            incoming = DNSIncoming(data)
            if not incoming.valid:
                logger.debug("Dropping unparseable mDNS packet from %s", addr[0])
                continue
            if not incoming.is_response():
                continue
            yield incoming
    finally:
        if requery is not None:
            requery.cancel()
        for transport in transports.values():
            transport.close()
