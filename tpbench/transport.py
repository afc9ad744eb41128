"""Socket transports that stream a fixed amount of data, or a file, and count it."""

from __future__ import annotations

import os
import socket
import sys
from enum import Enum

from tpbench.count import Counter

MTU = 1500
IPHDRLEN = 20
THDRLEN = 20
MSS = MTU - IPHDRLEN - THDRLEN

DATASIZE = 1024 << 10 << 10  # 1 GiB

EX_DATAERR = 65
EX_SOFTWARE = 70
EX_OSERR = 71

LISTEN_BACKLOG = 5
CONGESTION_CONTROL = b"bbr"
_TCP_INFO_LEN = 256


class Proto(Enum):
    """Transport protocols known by name."""

    UDP = "udp"
    TCP = "tcp"
    TLS = "tls"
    SCTP = "sctp"
    QUIC = "quic"


class TransportError(Exception):
    """A transport could not be set up or failed while transferring."""

    def __init__(self, message, exit_code=EX_OSERR):
        super().__init__(message)
        self.exit_code = exit_code


def proto_aton(name):
    """Return the protocol called name."""
    try:
        return Proto(name)
    except ValueError:
        raise ValueError(f"unknown protocol: {name}") from None


_SOCKET_TYPES = {
    Proto.UDP: socket.SOCK_DGRAM,
    Proto.TCP: socket.SOCK_STREAM,
    Proto.TLS: socket.SOCK_STREAM,
}


def socket_type(proto):
    """Return the socket type a protocol runs over."""
    try:
        return _SOCKET_TYPES[proto]
    except KeyError:
        raise ValueError(f"unknown protocol: {proto}") from None


def name_resolve(socktype, host, service, callback):
    """Call callback with each resolved address until one does not raise OSError.

    Returns what the successful call returned.
    """
    try:
        infos = socket.getaddrinfo(host, service, socket.AF_UNSPEC, socktype)
    except socket.gaierror as exc:
        raise TransportError(str(exc), EX_DATAERR) from exc
    last = None
    for info in infos:
        try:
            return callback(info)
        except OSError as exc:
            last = exc
    message = str(last) if last is not None else f"no address for {host}"
    raise TransportError(message) from last


def _open_socket(info, action, cause):
    family, type_, proto, _, address = info
    try:
        sock = socket.socket(family, type_, proto)
    except OSError as exc:
        raise OSError(exc.errno, f"socket: {exc.strerror}") from exc
    try:
        action(sock, address)
    except OSError as exc:
        sock.close()
        raise OSError(exc.errno, f"{cause}: {exc.strerror}") from exc
    return sock


def _connect(sock, address):
    sock.connect(address)


def _bind(sock, address):
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
    except OSError as exc:
        print(f"setsockopt(SO_REUSEADDR): {exc}", file=sys.stderr)
    sock.bind(address)


def _open_output(filename):
    fd = os.open(filename, os.O_CREAT | os.O_TRUNC | os.O_WRONLY, 0o600)
    try:
        return os.fdopen(fd, "wb", buffering=0)
    except OSError:
        os.close(fd)
        raise


def _socket_recv(transport, view):
    return transport.sock.recv_into(view)


def _socket_send(transport, data):
    return transport.sock.send(data)


class Transport:
    """One socket with its transfer buffer, counters and optional data file.

    recv_hook(transport, view) fills view and returns the byte count;
    send_hook(transport, data) sends data and returns the byte count.
    Both default to plain socket I/O and may be replaced, e.g. by a TLS layer,
    which can keep its state in context.
    """

    def __init__(self, proto, sock, filename=None, *, datasize=DATASIZE):
        self.proto = proto
        self.sock = sock
        self.filename = filename
        self.datasize = datasize
        self.context = None
        self.recv_hook = _socket_recv
        self.send_hook = _socket_send
        self.count_recv = Counter("recv")
        self.count_sent = Counter("sent")
        self.buf = bytearray(MSS)
        self._file = None

    @classmethod
    def connect(cls, options):
        """Connect to options' address; received data goes to options.filename if set."""
        proto = proto_aton(options.protoname)
        sock = name_resolve(
            socket_type(proto),
            options.addrname,
            options.servicename,
            lambda info: _open_socket(info, _connect, "connect"),
        )
        transport = cls(proto, sock, options.filename)
        if options.filename is not None:
            try:
                transport._file = _open_output(options.filename)
            except OSError as exc:
                transport.close()
                raise TransportError(f"file open failed: {exc}") from exc
        return transport

    @classmethod
    def listen(cls, options):
        """Bind to options' address and listen for connections."""
        proto = proto_aton(options.protoname)
        sock = name_resolve(
            socket_type(proto),
            options.addrname,
            options.servicename,
            lambda info: _open_socket(info, _bind, "bind"),
        )
        transport = cls(proto, sock, options.filename)
        if hasattr(socket, "TCP_CONGESTION"):
            try:
                transport.set_cc()
            except TransportError as exc:
                print(exc, file=sys.stderr)
        try:
            sock.listen(LISTEN_BACKLOG)
        except OSError as exc:
            transport.close()
            raise TransportError(f"listen failed: {exc}") from exc
        return transport

    def accept(self):
        """Accept one connection; data sent on it comes from filename if set."""
        try:
            sock, _ = self.sock.accept()
        except OSError as exc:
            raise TransportError(f"accept failed: {exc}") from exc
        transport = type(self)(self.proto, sock, self.filename, datasize=self.datasize)
        if self.filename is not None:
            try:
                transport._file = open(self.filename, "rb", buffering=0)
            except OSError as exc:
                transport.close()
                raise TransportError(f"file open failed: {exc}") from exc
        return transport

    def close(self):
        """Close the socket and the data file."""
        self.sock.close()
        if self._file is not None:
            self._file.close()
            self._file = None

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    def set_cc(self):
        """Select the BBR congestion control algorithm for the socket."""
        option = getattr(socket, "TCP_CONGESTION", None)
        if option is None:
            raise TransportError("congestion control selection is not supported")
        try:
            self.sock.setsockopt(socket.IPPROTO_TCP, option, CONGESTION_CONTROL)
        except OSError as exc:
            raise TransportError(f"setsockopt: {exc}") from exc

    def get_info(self):
        """Return the raw TCP_INFO record of the socket."""
        option = getattr(socket, "TCP_INFO", None)
        if option is None:
            raise TransportError("TCP_INFO is not supported")
        try:
            return self.sock.getsockopt(socket.IPPROTO_TCP, option, _TCP_INFO_LEN)
        except OSError as exc:
            raise TransportError(f"getsockopt: {exc}") from exc

    def write(self, data):
        """Write data straight to the socket, bypassing the hooks; return bytes written."""
        while True:
            try:
                return self.sock.send(data)
            except BlockingIOError:
                continue
            except OSError as exc:
                raise TransportError(f"write failed: {exc}") from exc

    def send(self):
        """Send one buffer of data.

        Returns the bytes sent, 0 if the socket would block, or None once the
        file is exhausted, datasize bytes have gone out, or the peer took nothing.
        """
        view = memoryview(self.buf)
        if self._file is not None:
            length = self._file.readinto(view)
            if not length:
                return None
        else:
            length = min(len(self.buf), self.datasize - self.count_sent.total_bytes)
            length = max(length, 0)
        try:
            sent = self.send_hook(self, view[:length])
        except BlockingIOError:
            self.count_sent.record_error()
            return 0
        except OSError as exc:
            self.count_sent.record_error()
            raise TransportError(f"send failed: {exc}") from exc
        if sent == 0:
            return None
        self.count_sent.inc(sent)
        if self._file is None and self.count_sent.total_bytes >= self.datasize:
            self.count_sent.final_stats()
            return None
        return sent

    def recv(self, off=0):
        """Receive into the buffer from offset off.

        Returns the bytes received, 0 if the socket would block, or None when
        the peer closed the connection.
        """
        if not 0 <= off <= len(self.buf):
            raise ValueError(f"offset {off} outside buffer of {len(self.buf)} bytes")
        view = memoryview(self.buf)[off:]
        try:
            length = self.recv_hook(self, view)
        except BlockingIOError:
            self.count_recv.record_error()
            return 0
        except OSError as exc:
            self.count_recv.record_error()
            raise TransportError(f"recv failed: {exc}") from exc
        if length == 0:
            print("connection closed", file=sys.stderr)
            self.count_recv.final_stats()
            return None
        self.count_recv.inc(length)
        if self._file is not None:
            try:
                self._file.write(self.buf[off:off + length])
            except OSError as exc:
                print(f"file write failed: {exc}", file=sys.stderr)
        return length