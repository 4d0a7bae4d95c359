"""Event channels — synchronous fan-out with disconnectable handles.

A channel holds an ordered list of handlers. fire() calls each one in
connection order on the calling thread. connect() returns a Connection;
disconnecting it removes exactly that handler. destroy_all() tears the
channel down for good.
"""

from __future__ import annotations

import logging
from typing import Callable

logger = logging.getLogger("statecrate.channel")

Handler = Callable[..., None]


class Connection:
    """Disposable handle for one handler on one channel."""

    __slots__ = ("_channel", "_handler", "_connected")

    def __init__(self, channel: EventChannel, handler: Handler) -> None:
        self._channel = channel
        self._handler = handler
        self._connected = True

    @property
    def connected(self) -> bool:
        return self._connected

    def disconnect(self) -> None:
        """Remove the handler. Idempotent."""
        if not self._connected:
            return
        self._connected = False
        self._channel._remove(self)

    def __repr__(self) -> str:
        state = "connected" if self._connected else "disconnected"
        return f"Connection({getattr(self._handler, '__name__', self._handler)!r}, {state})"


class EventChannel:
    """Observer list with synchronous fan-out."""

    def __init__(self) -> None:
        self._connections: list[Connection] = []
        self._destroyed = False

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    def connect(self, handler: Handler) -> Connection:
        """Register a handler. Returns its Connection.

        Connecting to a destroyed channel yields an already-disconnected handle.
        """
        connection = Connection(self, handler)
        if self._destroyed:
            connection._connected = False
            return connection
        self._connections.append(connection)
        return connection

    def disconnect(self, connection: Connection) -> None:
        connection.disconnect()

    def fire(self, *args) -> None:
        """Call every connected handler with args.

        A handler that raises is logged and skipped; the rest still run.
        """
        if self._destroyed:
            return
        # Snapshot: handlers may disconnect themselves or others mid-fire.
        for connection in list(self._connections):
            if not connection._connected:
                continue
            try:
                connection._handler(*args)
            except Exception:
                logger.exception("Handler %r raised during fire", connection._handler)

    def destroy_all(self) -> None:
        """Disconnect every handler. Later fires are no-ops."""
        self._destroyed = True
        for connection in self._connections:
            connection._connected = False
        self._connections.clear()

    def _remove(self, connection: Connection) -> None:
        try:
            self._connections.remove(connection)
        except ValueError:
            pass  # already removed

    def __len__(self) -> int:
        return len(self._connections)
