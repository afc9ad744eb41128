"""Plain TCP throughput client and server."""

from __future__ import annotations

import sys

from tpbench.transport import Transport, TransportError


def client(options, args):
    """Connect and receive until the server closes the connection."""
    print(
        f"connect to {options.addrname}.{options.servicename} using {options.protoname}",
        file=sys.stderr,
    )
    with Transport.connect(options) as transport:
        try:
            while transport.recv(0) is not None:
                pass
        except TransportError as exc:
            print(exc, file=sys.stderr)
    return 0


def _stream_to(transport):
    print("connected", file=sys.stderr)
    try:
        while transport.send() is not None:
            pass
    except TransportError as exc:
        print(exc, file=sys.stderr)
    print("disconnected", file=sys.stderr)


def server(options, args):
    """Listen and stream data to each client in turn, forever."""
    print(
        f"waiting on {options.addrname}.{options.servicename} using {options.protoname}",
        file=sys.stderr,
    )
    with Transport.listen(options) as listener:
        while True:
            try:
                transport = listener.accept()
            except TransportError as exc:
                print(exc, file=sys.stderr)
                continue
            with transport:
                _stream_to(transport)


def register(registry):
    """Register the tcp transport with registry."""
    return registry.register("tcp", client, server)