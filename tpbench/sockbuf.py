"""Discovery of the largest socket buffer sizes the system accepts."""

from __future__ import annotations

import socket

_INT_MAX = 2**31 - 1

_probed: dict[int, int] = {}


def probe_buffer_size(optname):
    """Grow a scratch UDP socket's buffer option as far as allowed; cached per option."""
    cached = _probed.get(optname)
    if cached:
        return cached
    with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
        size = sock.getsockopt(socket.SOL_SOCKET, optname)
        delta = size
        while delta > 0:
            candidate = size + delta
            if candidate > _INT_MAX:
                break
            try:
                sock.setsockopt(socket.SOL_SOCKET, optname, candidate)
            except OSError:
                delta >>= 1
            else:
                size = candidate
                delta <<= 1
    _probed[optname] = size
    return size


def _probed_or_zero(optname):
    try:
        return probe_buffer_size(optname)
    except OSError:
        return _probed.get(optname, 0)


def buffer_recv_size():
    """Largest receive buffer size, or 0 if it cannot be determined."""
    return _probed_or_zero(socket.SO_RCVBUF)


def buffer_send_size():
    """Largest send buffer size, or 0 if it cannot be determined."""
    return _probed_or_zero(socket.SO_SNDBUF)


def buffer_maximize(sock):
    """Set both buffers of sock to the largest probed sizes."""
    for optname in (socket.SO_RCVBUF, socket.SO_SNDBUF):
        size = probe_buffer_size(optname)
        sock.setsockopt(socket.SOL_SOCKET, optname, size)