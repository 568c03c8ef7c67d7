"""pytest configuration and shared helpers for castsay tests."""

import socket

import pytest
from zeroconf import DNSAddress, DNSIncoming, DNSOutgoing, DNSPointer, DNSService, DNSText
from zeroconf.const import (
    _CLASS_IN,
    _FLAGS_AA,
    _FLAGS_QR_RESPONSE,
    _TYPE_A,
    _TYPE_PTR,
    _TYPE_SRV,
    _TYPE_TXT,
)

SERVICE = "_googlecast._tcp.local."


def txt_payload(*entries):
    """Encode TXT entries the way they appear on the wire."""
    return b"".join(bytes([len(e.encode())]) + e.encode() for e in entries)


def txt_record(instance, *entries):
    return DNSText(instance, _TYPE_TXT, _CLASS_IN, 120, txt_payload(*entries))


def srv_record(instance, port, host):
    return DNSService(instance, _TYPE_SRV, _CLASS_IN, 120, 0, 0, port, host)


def a_record(host, ip):
    return DNSAddress(host, _TYPE_A, _CLASS_IN, 120, socket.inet_aton(ip))


def ptr_record(instance):
    return DNSPointer(SERVICE, _TYPE_PTR, _CLASS_IN, 120, instance)


def packet(answers=(), additionals=()):
    """Wire bytes of a response with the given answer and additional sections."""
    out = DNSOutgoing(_FLAGS_QR_RESPONSE | _FLAGS_AA)
    for record in answers:
        out.add_answer_at_time(record, 0)
    for record in additionals:
        out.add_additional_answer(record)
    return out.packets()[0]


def response_packet(name=None, ip=None, port=None, order=("txt", "srv", "a"), txt_entries=None):
    """Wire bytes of a Cast device's mDNS answer.

    Any of ``name``, ``ip`` and ``port`` can be left out to build an
    incomplete answer. ``order`` controls where the additional records go.
    """
    instance = f"Device-{ip or 'x'}.{SERVICE}"
    host = f"device-{(ip or 'x').replace('.', '-')}.local."
    if txt_entries is None:
        txt_entries = ["id=0123456789abcdef", "md=Google Nest Mini"]
        if name is not None:
            txt_entries.append(f"fn={name}")
    records = {}
    if name is not None or txt_entries:
        records["txt"] = txt_record(instance, *txt_entries)
    if port is not None:
        records["srv"] = srv_record(instance, port, host)
    if ip is not None:
        records["a"] = a_record(host, ip)
    return packet(
        answers=[ptr_record(instance)],
        additionals=[records[kind] for kind in order if kind in records],
    )


def make_response(**kwargs):
    return DNSIncoming(response_packet(**kwargs))


async def responses_from(*items):
    """Async generator standing in for the mDNS response source.

    Exceptions in ``items`` are raised at their position.
    """
    for item in items:
        if isinstance(item, BaseException):
            raise item
        yield item


@pytest.fixture
def living_room():
    return make_response(name="LivingRoom", ip="192.168.1.42", port=8009)
