# tpbench

A small tool for measuring transport throughput between two hosts. One side
runs as a server and streams data; the other connects as a client and
receives it. Both sides report packet counts, bytes and bits per second on
standard error while the transfer runs, and a summary when it ends.

The transports are plain TCP (`tcp`) and TCP with TLS 1.3 (`tls`).

## Installation

    pip install .

For running the tests:

    pip install .[test]
    pytest

## Usage

    tpbench [-h] [-c <destination>] [-p <port>] [-f <file>] [-B <local IP address>] [<transport>] [<transport arguments>...]

Without `-c` the program runs as a server. With `-c` it connects to the given
destination as a client. The defaults are address `127.0.0.1`, port `12345`
and transport `tcp`.

Options:

- `-c <destination>`: run as a client and connect to this host.
- `-p <port>`: port or service name to use.
- `-B <address>`: address for the server to bind to.
- `-f <file>`: on the server, send this file's contents instead of generated
  data; on the client, write what was received into this file (created or
  truncated, mode 0600).
- `-h`: print usage and exit with status 64.

An unknown option or an unknown transport name prints the usage message and
exits with status 64. Setup failures exit with the status carried by the
error (71 for socket and file errors, 65 for name resolution errors, 70 for
TLS setup errors, 64 for wrong transport arguments). Ctrl-C ends the program
with status 64.

Without a file the server sends 1 GiB of data per connection and then closes
it. The server keeps accepting connections, one at a time, until it is
interrupted. On Linux the listening socket asks for the `bbr` congestion
control algorithm; if that is refused, a message is printed and the server
carries on.

### Plain TCP

Start a server:

    tpbench

Connect to it from another terminal:

    tpbench -c localhost

### TLS

The server needs a certificate and a private key in PEM form:

    tpbench tls server-cert.pem server-key.pem

The client takes the file of certificates it should trust:

    tpbench -c localhost tls server-cert.pem

The client sends the server name `tp-test.jp` and checks the server
certificate against it, so the certificate must be issued for that name.
Only TLS 1.3 is used, with the AES-128-GCM, AES-256-GCM and
ChaCha20-Poly1305 cipher suites.

## Output

Every 500,000 packets each side prints a line such as

    recv 500000 packets, 912 Mbps (700 Mbytes, 0 errors) for 6.412345678 secs

and at the end of the transfer a line with the totals for the whole
connection. Values are scaled by powers of 1024 with the prefixes K, M, G, T
and P. When the elapsed time is under a hundredth of a second the rate is
shown as `-`.

## Library use

The pieces can also be used from Python:

- `tpbench.cli.main(argv)` runs the command with the given arguments and
  returns its exit status; `tpbench.cli.parse_args(argv)` returns the
  `Options`, whether to run as a client, and the remaining arguments.
- `tpbench.cli.build_registry()` returns a `HandleRegistry` with the `tcp`
  and `tls` transports registered. `HandleRegistry.lookup()` finds a `Handle`
  by name, whose `run_client()` and `run_server()` start a transfer with an
  `Options` object from `tpbench.option`.
- `tpbench.transport.Transport` wraps one socket: `connect()`, `listen()`,
  `accept()`, `send()` and `recv()`, with counters in `count_sent` and
  `count_recv`.
- `tpbench.count.Counter` keeps the statistics and can be used on its own to
  measure any stream of byte counts; `final_stats()` prints the summary line
  and returns it.
- `tpbench.sockbuf` finds the largest socket receive and send buffer sizes
  the system accepts (`buffer_recv_size()`, `buffer_send_size()`) and can
  apply them to a socket (`buffer_maximize()`).

## What it does not do

There is no QUIC transport and no UDP or SCTP transport. The names `udp`,
`sctp` and `quic` are known to `tpbench.transport.Proto`, but only `tcp` and
`tls` can be run from the command line. Client session resumption for TLS is
not supported.