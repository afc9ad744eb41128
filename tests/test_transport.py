import socket

import pytest

from tpbench.option import Options
from tpbench.transport import (
    EX_DATAERR,
    MSS,
    Proto,
    Transport,
    TransportError,
    name_resolve,
    proto_aton,
    socket_type,
)


def _recv_exactly(sock, size):
    chunks = []
    remaining = size
    while remaining:
        chunk = sock.recv(remaining)
        if not chunk:
            break
        chunks.append(chunk)
        remaining -= len(chunk)
    return b"".join(chunks)


def _recv_all(sock):
    chunks = []
    while True:
        chunk = sock.recv(65536)
        if not chunk:
            return b"".join(chunks)
        chunks.append(chunk)


def _free_port():
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


@pytest.fixture
def pair():
    a, b = socket.socketpair()
    transport = Transport(Proto.TCP, a)
    yield transport, b
    transport.close()
    b.close()


@pytest.mark.parametrize(
    "name, proto",
    [("udp", Proto.UDP), ("tcp", Proto.TCP), ("tls", Proto.TLS),
     ("sctp", Proto.SCTP), ("quic", Proto.QUIC)],
)
def test_proto_aton_known_names(name, proto):
    assert proto_aton(name) is proto


def test_proto_aton_unknown_name():
    with pytest.raises(ValueError):
        proto_aton("picoquic")


def test_socket_type_mapping():
    assert socket_type(Proto.UDP) == socket.SOCK_DGRAM
    assert socket_type(Proto.TCP) == socket.SOCK_STREAM
    assert socket_type(Proto.TLS) == socket.SOCK_STREAM


@pytest.mark.parametrize("proto", [Proto.SCTP, Proto.QUIC])
def test_socket_type_unsupported(proto):
    with pytest.raises(ValueError):
        socket_type(proto)


def test_name_resolve_returns_first_success():
    seen = []

    def callback(info):
        seen.append(info)
        return info[4]

    result = name_resolve(socket.SOCK_STREAM, "127.0.0.1", "12345", callback)
    assert result == ("127.0.0.1", 12345)
    assert len(seen) == 1


def test_name_resolve_all_failures_raise():
    def callback(info):
        raise OSError(111, "connect: refused")

    with pytest.raises(TransportError, match="connect: refused"):
        name_resolve(socket.SOCK_STREAM, "127.0.0.1", "12345", callback)


def test_name_resolve_bad_service_is_data_error():
    with pytest.raises(TransportError) as excinfo:
        name_resolve(socket.SOCK_STREAM, "127.0.0.1", "no-such-service-xyz", lambda info: info)
    assert excinfo.value.exit_code == EX_DATAERR


def test_buffer_is_one_segment(pair):
    transport, _ = pair
    assert len(transport.buf) == MSS


def test_recv_counts_bytes(pair):
    transport, peer = pair
    peer.sendall(b"abc")
    assert transport.recv(0) == 3
    assert bytes(transport.buf[:3]) == b"abc"
    assert transport.count_recv.total_bytes == 3
    assert transport.count_recv.total_count == 1


def test_recv_at_offset(pair):
    transport, peer = pair
    peer.sendall(b"xyz")
    assert transport.recv(2) == 3
    assert bytes(transport.buf[2:5]) == b"xyz"


@pytest.mark.parametrize("off", [-1, MSS + 1])
def test_recv_offset_out_of_range(pair, off):
    transport, _ = pair
    with pytest.raises(ValueError):
        transport.recv(off)


def test_recv_end_of_stream(pair, capsys):
    transport, peer = pair
    peer.sendall(b"data")
    peer.shutdown(socket.SHUT_WR)
    assert transport.recv(0) == 4
    assert transport.recv(0) is None
    err = capsys.readouterr().err
    assert "connection closed" in err
    assert "recv 1 packets" in err


def test_recv_would_block_counts_error(pair):
    transport, _ = pair

    def blocked(t, view):
        raise BlockingIOError()

    transport.recv_hook = blocked
    assert transport.recv(0) == 0
    assert transport.count_recv.total_errors == 1
    assert transport.count_recv.total_bytes == 0


def test_recv_failure_raises(pair):
    transport, _ = pair

    def broken(t, view):
        raise ConnectionResetError(104, "reset")

    transport.recv_hook = broken
    with pytest.raises(TransportError, match="recv failed"):
        transport.recv(0)
    assert transport.count_recv.total_errors == 1


def test_send_stops_at_datasize(capsys):
    a, b = socket.socketpair()
    with Transport(Proto.TCP, a, datasize=3000) as transport, b:
        sizes = []
        while (sent := transport.send()) is not None:
            sizes.append(sent)
        received = _recv_exactly(b, 3000)
        assert received == bytes(3000)
        assert sum(sizes) + (3000 - sum(sizes)) == transport.count_sent.total_bytes
        assert transport.count_sent.total_bytes == 3000
    assert "sent 3 packets" in capsys.readouterr().err


def test_send_uses_hook(pair):
    transport, _ = pair
    transport.datasize = 10
    captured = []

    def hook(t, data):
        captured.append(bytes(data))
        return len(data)

    transport.send_hook = hook
    assert transport.send() is None
    assert captured == [bytes(10)]


def test_send_failure_raises(pair):
    transport, _ = pair

    def broken(t, data):
        raise BrokenPipeError(32, "broken pipe")

    transport.send_hook = broken
    with pytest.raises(TransportError, match="send failed"):
        transport.send()
    assert transport.count_sent.total_errors == 1


def test_send_peer_took_nothing(pair):
    transport, _ = pair
    transport.send_hook = lambda t, data: 0
    assert transport.send() is None
    assert transport.count_sent.total_count == 0


def test_write_goes_to_socket(pair):
    transport, peer = pair
    assert transport.write(b"data") == 4
    assert _recv_exactly(peer, 4) == b"data"


def test_context_manager_closes_socket():
    a, b = socket.socketpair()
    with Transport(Proto.TCP, a) as transport:
        pass
    b.close()
    assert transport.sock.fileno() == -1
    transport.close()
    assert transport.sock.fileno() == -1


def test_connect_writes_received_data_to_file(tmp_path):
    out = tmp_path / "received.bin"
    with Transport.listen(Options(servicename="0")) as listener:
        port = listener.sock.getsockname()[1]
        client = Transport.connect(Options(servicename=str(port), filename=str(out)))
        with client:
            server_side = listener.accept()
            server_side.sock.sendall(b"payload")
            server_side.close()
            while client.recv(0) is not None:
                pass
    assert out.read_bytes() == b"payload"


def test_accept_sends_file_contents(tmp_path):
    source = tmp_path / "source.bin"
    content = bytes(range(256)) * 20
    source.write_bytes(content)
    with Transport.listen(Options(servicename="0", filename=str(source))) as listener:
        address = listener.sock.getsockname()
        with socket.create_connection(address) as peer:
            with listener.accept() as accepted:
                while accepted.send() is not None:
                    pass
            assert _recv_all(peer) == content


def test_accept_inherits_datasize():
    with Transport.listen(Options(servicename="0")) as listener:
        listener.datasize = 100
        with socket.create_connection(listener.sock.getsockname()) as peer:
            with listener.accept() as accepted:
                assert accepted.datasize == 100
                assert accepted.send() is None
            assert _recv_all(peer) == bytes(100)


def test_connect_refused_raises():
    port = _free_port()
    with pytest.raises(TransportError, match="connect"):
        Transport.connect(Options(servicename=str(port)))


def test_connect_unknown_protocol():
    with pytest.raises(ValueError):
        Transport.connect(Options(protoname="sctp"))