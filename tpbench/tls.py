"""TLS 1.3 throughput client and server over TCP."""

from __future__ import annotations

import ssl
import sys

from tpbench.transport import EX_SOFTWARE, Transport, TransportError

DEFAULT_SNI = "tp-test.jp"
EX_USAGE = 64

AES128_GCM_SHA256 = "TLS_AES_128_GCM_SHA256"
AES256_GCM_SHA384 = "TLS_AES_256_GCM_SHA384"
CHACHA20_POLY1305_SHA256 = "TLS_CHACHA20_POLY1305_SHA256"

SECP256R1 = "prime256v1"
X25519 = "X25519"

DEFAULT_KEYEX_ID = 0
DEFAULT_CIPHER_SUITE_ID = 0


class TLSSetupError(TransportError):
    """TLS could not be configured or its arguments were wrong."""

    def __init__(self, message, exit_code=EX_SOFTWARE):
        super().__init__(message, exit_code)


def cipher_suites(suite_id):
    """Return the TLS 1.3 cipher suites selected by suite_id (0 means all)."""
    suites = []
    if suite_id in (0, 128):
        suites.append(AES128_GCM_SHA256)
    if suite_id in (0, 256):
        suites.append(AES256_GCM_SHA384)
    if suite_id in (0, 20):
        suites.append(CHACHA20_POLY1305_SHA256)
    if not suites:
        raise TLSSetupError(f"unknown cipher suite id: {suite_id}")
    return tuple(suites)


def _key_exchanges(keyex_id):
    if keyex_id == 0:
        return (SECP256R1, X25519)
    if keyex_id == 20:
        return (X25519,)
    if keyex_id in (128, 256):
        return (SECP256R1,)
    raise TLSSetupError(f"unknown key exchange id: {keyex_id}")


def _base_context(protocol):
    context = ssl.SSLContext(protocol)
    try:
        context.minimum_version = ssl.TLSVersion.TLSv1_3
    except ValueError as exc:
        raise TLSSetupError(f"TLS 1.3 is not available: {exc}") from exc
    groups = _key_exchanges(DEFAULT_KEYEX_ID)
    if len(groups) == 1:
        try:
            context.set_ecdh_curve(groups[0])
        except (ValueError, ssl.SSLError) as exc:
            raise TLSSetupError(f"cannot set key exchange {groups[0]}: {exc}") from exc
    return context


def server_context(cert, key):
    """Build a server context presenting the certificate chain and private key."""
    context = _base_context(ssl.PROTOCOL_TLS_SERVER)
    try:
        context.load_cert_chain(cert, key)
    except OSError as exc:
        raise TLSSetupError(f"cannot load certificate: {cert}: {exc}") from exc
    return context


def client_context(root):
    """Build a client context trusting root, or the system store when root is None."""
    context = _base_context(ssl.PROTOCOL_TLS_CLIENT)
    try:
        if root is None:
            context.load_default_certs()
        else:
            context.load_verify_locations(cafile=root)
    except OSError as exc:
        raise TLSSetupError(f"cannot load X509 store: {root}: {exc}") from exc
    return context


def _check_cipher(tls_sock):
    negotiated = tls_sock.cipher()
    name = negotiated[0] if negotiated else None
    if name not in cipher_suites(DEFAULT_CIPHER_SUITE_ID):
        raise TLSSetupError(f"unexpected cipher suite: {name}")


def _handshake(transport, context, server_side):
    print("TLS handshake start", file=sys.stderr)
    try:
        tls_sock = context.wrap_socket(
            transport.sock,
            server_side=server_side,
            server_hostname=None if server_side else DEFAULT_SNI,
        )
    except OSError as exc:
        print(f"handshake error: {exc}", file=sys.stderr)
        return None
    try:
        _check_cipher(tls_sock)
    except TLSSetupError as exc:
        tls_sock.close()
        print(f"handshake error: {exc}", file=sys.stderr)
        return None
    print("TLS handshake finish", file=sys.stderr)
    return tls_sock


def _tls_send(transport, data):
    transport.context.sendall(data)
    return len(data)


def _tls_recv(transport, view):
    return transport.context.recv_into(view)


def _attach(transport, tls_sock):
    transport.context = tls_sock
    transport.send_hook = _tls_send
    transport.recv_hook = _tls_recv


def _serve(transport, context):
    tls_sock = _handshake(transport, context, server_side=True)
    if tls_sock is None:
        return 1
    with tls_sock:
        _attach(transport, tls_sock)
        try:
            while transport.send() is not None:
                pass
        except TransportError as exc:
            print(exc, file=sys.stderr)
    return 0


def server(options, args):
    """Listen and stream encrypted data to each client in turn, forever."""
    if len(args) < 2:
        raise TLSSetupError("missing certificate or key file for TLS", EX_USAGE)
    cert, key, *extra = args
    if extra:
        raise TLSSetupError("extra argument(s)", EX_USAGE)
    print(
        f"waiting on {options.addrname}.{options.servicename} using {options.protoname}",
        file=sys.stderr,
    )
    with Transport.listen(options) as listener:
        context = server_context(cert, key)
        while True:
            try:
                transport = listener.accept()
            except TransportError as exc:
                print(exc, file=sys.stderr)
                continue
            print("connected", file=sys.stderr)
            with transport:
                _serve(transport, context)
            print("disconnected", file=sys.stderr)


def client(options, args):
    """Connect, verify the server against the given root, and receive until closed."""
    if len(args) < 1:
        raise TLSSetupError("missing server certificate file for TLS", EX_USAGE)
    root, *extra = args
    if extra:
        raise TLSSetupError("extra argument(s)", EX_USAGE)
    print(
        f"connect to {options.addrname}.{options.servicename} using {options.protoname}",
        file=sys.stderr,
    )
    with Transport.connect(options) as transport:
        context = client_context(root)
        tls_sock = _handshake(transport, context, server_side=False)
        if tls_sock is None:
            return 1
        with tls_sock:
            _attach(transport, tls_sock)
            try:
                while transport.recv(0) is not None:
                    pass
            except TransportError as exc:
                print(f"TLS receive failed: {exc}", file=sys.stderr)
                return 1
    return 0


def register(registry):
    """Register the tls transport with registry."""
    return registry.register("tls", client, server)