"""Command-line options shared by every transport."""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_ADDR = "127.0.0.1"
DEFAULT_SERVICE = "12345"
DEFAULT_PROTO = "tcp"


@dataclass
class Options:
    """Where to connect or listen, over which transport, and what to transfer."""

    protoname: str = DEFAULT_PROTO
    addrname: str = DEFAULT_ADDR
    servicename: str = DEFAULT_SERVICE
    filename: str | None = None
    ccname: str | None = None