"""Registry of named transports and their client and server entry points."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Sequence

from tpbench.option import Options

EntryPoint = Callable[[Options, Sequence[str]], int]


@dataclass(frozen=True)
class Handle:
    """A transport name bound to its client and server functions."""

    protostr: str
    client: EntryPoint
    server: EntryPoint

    def run_client(self, options, args):
        return self.client(options, args)

    def run_server(self, options, args):
        return self.server(options, args)


@dataclass
class HandleRegistry:
    """Transports by name; the most recent registration of a name wins."""

    _handles: list[Handle] = field(default_factory=list)

    def register(self, protostr, client, server):
        if protostr is None:
            raise TypeError("protocol name is required")
        handle = Handle(protostr, client, server)
        self._handles.insert(0, handle)
        return handle

    def lookup(self, protostr):
        if protostr is None:
            raise TypeError("protocol name is required")
        return next((h for h in self._handles if h.protostr == protostr), None)

    def __iter__(self):
        return iter(self._handles)

    def __len__(self):
        return len(self._handles)