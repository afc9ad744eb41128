"""Command-line entry point: pick a transport and run its client or server."""

from __future__ import annotations

import getopt
import os
import signal
import sys
import threading

from tpbench import tcp, tls
from tpbench.clock import clock_init
from tpbench.handle import HandleRegistry
from tpbench.option import Options
from tpbench.transport import EX_OSERR, TransportError

EX_USAGE = 64

_OPTSTRING = "c:f:hp:t:B:"


class UsageError(Exception):
    """The command line cannot be used; the message may be empty."""


def parse_args(argv):
    """Return (options, is_client, remaining arguments) for argv."""
    try:
        opts, rest = getopt.getopt(list(argv), _OPTSTRING)
    except getopt.GetoptError as exc:
        raise UsageError(str(exc)) from exc
    options = Options()
    is_client = False
    for flag, value in opts:
        if flag == "-c":
            is_client = True
            options.addrname = value
        elif flag == "-f":
            options.filename = value
        elif flag == "-p":
            options.servicename = value
        elif flag == "-B":
            options.addrname = value
        else:
            raise UsageError("")
    if rest:
        options.protoname = rest[0]
        rest = rest[1:]
    return options, is_client, rest


def build_registry():
    """Return a registry holding every available transport."""
    registry = HandleRegistry()
    tcp.register(registry)
    tls.register(registry)
    return registry


def usage_text(progname):
    """Return the usage message for progname."""
    return (
        "Usage:\n"
        f"\t{progname}: [-h] [-c <destination>] [-p <port>] [-f <file>] "
        "[-B <local IP address>] [<transport>]\n"
        "\n"
        "Examples:\n"
        f"\t{progname}\n"
        f"\t{progname} -c localhost\n"
        f"\t{progname} tls certificate key\n"
        f"\t{progname} -c localhost tls certificate\n"
    )


def _report_usage(progname, message):
    if message:
        print(f"ERROR: {message}", file=sys.stderr)
    print(usage_text(progname), end="", file=sys.stderr)


def _sigint(signum, frame):
    print(f"caught signal {signum}", file=sys.stderr)
    sys.exit(EX_USAGE)


def main(argv=None):
    """Run the transport named on the command line and return its exit status."""
    progname = os.path.basename(sys.argv[0]) if sys.argv and sys.argv[0] else "tpbench"
    if argv is None:
        argv = sys.argv[1:]
    try:
        options, is_client, args = parse_args(argv)
    except UsageError as exc:
        _report_usage(progname, str(exc))
        return EX_USAGE

    try:
        clock_init()
    except OSError as exc:
        print(f"{progname}: {exc}", file=sys.stderr)
        return EX_OSERR

    handle = build_registry().lookup(options.protoname)
    if handle is None:
        _report_usage(progname, f"unknown protocol: {options.protoname}")
        return EX_USAGE

    if threading.current_thread() is threading.main_thread():
        signal.signal(signal.SIGINT, _sigint)

    try:
        if is_client:
            return handle.run_client(options, args)
        return handle.run_server(options, args)
    except TransportError as exc:
        print(f"{progname}: {exc}", file=sys.stderr)
        return exc.exit_code