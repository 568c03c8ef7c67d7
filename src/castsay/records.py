"""Turn one mDNS response into a Target."""

from __future__ import annotations

import socket
from typing import Iterator, Optional

from zeroconf import DNSAddress, DNSService, DNSText
from zeroconf.const import _TYPE_A

from .device import Target

NAME_KEY = "fn"


def txt_entries(data: bytes) -> Iterator[str]:
    """Split a TXT record's wire payload into its ``key=value`` strings."""
    offset = 0
    while offset < len(data):
        length = data[offset]
        offset += 1
        yield data[offset:offset + length].decode("utf-8", errors="replace")
        offset += length


def friendly_name(record: DNSText) -> Optional[str]:
    for entry in txt_entries(record.text):
        key, sep, value = entry.partition("=")
        if key == NAME_KEY and sep:
            return value
    return None


def additional_records(response):
    """Records of the additional section of ``response``, in wire order."""
    # answers() holds the answer, authority and additional sections back to back
    return response.answers()[response.num_answers + response.num_authorities:]


def extract(response) -> Optional[Target]:
    """
    Build a Target from the additional records of ``response``.

    The first TXT record carrying ``fn`` gives the name, the first A record
    the IP and the first SRV record the port. Answers missing any of the
    three return None; plenty of hosts answer the same question without them.
    Records in the answer and authority sections are ignored.
    """
    name = ip = port = None
    for record in additional_records(response):
        if name is None and isinstance(record, DNSText):
            name = friendly_name(record)
        elif ip is None and isinstance(record, DNSAddress) and record.type == _TYPE_A:
            ip = socket.inet_ntoa(record.address)
        elif port is None and isinstance(record, DNSService):
            port = record.port
    if name is None or ip is None or port is None:
        return None
    return Target(name=name, addr=(ip, port))
