"""
TCP transport to the relay.

Outbound payloads are queued and written by a background thread, so game
threads never block on the network. A second thread reads inbound frames
and hands the raw payloads to `on_message`.
"""

from __future__ import annotations

import enum
import queue as queue_mod
import socket
import threading
from typing import Callable

from tetris2p.net.protocol import ProtocolError, recv_frame, send_frame


class ConnectionState(enum.Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


class SocketTransport:
    """Length-prefixed frame transport over one TCP connection.

    Attributes:
        host: Relay host name.
        port: Relay TCP port.
        timeout: Connect timeout in seconds.
    """

    def __init__(
        self,
        host: str,
        port: int,
        on_message: Callable[[bytes], None] | None = None,
        on_connected: Callable[[], None] | None = None,
        on_closed: Callable[[], None] | None = None,
        on_error: Callable[[Exception], None] | None = None,
        timeout: float = 5.0,
    ) -> None:
        self.host = host
        self.port = port
        self.timeout = timeout
        self.on_message = on_message
        self.on_connected = on_connected
        self.on_closed = on_closed
        self.on_error = on_error

        self._lock = threading.Lock()
        self._state = ConnectionState.DISCONNECTED
        self._sock: socket.socket | None = None
        self._queue: queue_mod.Queue | None = None

    @property
    def state(self) -> ConnectionState:
        return self._state

    def is_connected(self) -> bool:
        return self._state == ConnectionState.CONNECTED

    def connect(self) -> None:
        """Open the connection and start the reader and writer threads.

        Raises:
            OSError: If the relay cannot be reached.
        """
        with self._lock:
            if self._state != ConnectionState.DISCONNECTED:
                return
            self._state = ConnectionState.CONNECTING
        try:
            sock = socket.create_connection((self.host, self.port), timeout=self.timeout)
            sock.settimeout(None)
        except OSError:
            with self._lock:
                self._state = ConnectionState.DISCONNECTED
            raise

        outbound: queue_mod.Queue = queue_mod.Queue()
        with self._lock:
            self._sock = sock
            self._queue = outbound
            self._state = ConnectionState.CONNECTED
        threading.Thread(
            target=self._writer, args=(sock, outbound), name="transport-writer", daemon=True
        ).start()
        threading.Thread(
            target=self._reader, args=(sock,), name="transport-reader", daemon=True
        ).start()
        if self.on_connected:
            self.on_connected()

    def disconnect(self) -> None:
        """Close the connection. No-op when already disconnected."""
        if self._close() and self.on_closed:
            self.on_closed()

    def send(self, payload: bytes) -> None:
        """Queue a payload for delivery; never blocks on the network.

        Raises:
            ConnectionError: If the transport is not connected.
        """
        with self._lock:
            if self._state != ConnectionState.CONNECTED or self._queue is None:
                raise ConnectionError("not connected")
            self._queue.put_nowait(payload)

    def _close(self) -> bool:
        with self._lock:
            sock, outbound = self._sock, self._queue
            self._sock = None
            self._queue = None
            self._state = ConnectionState.DISCONNECTED
        if sock is None:
            return False
        if outbound is not None:
            outbound.put(None)
        try:
            sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            # Already reset by the peer.
            pass
        sock.close()
        return True

    def _fail(self, sock: socket.socket, exc: Exception) -> None:
        # Only the live connection may report; a closed one is stale.
        if self._sock is not sock:
            return
        if self._close() and self.on_error:
            self.on_error(exc)

    def _writer(self, sock: socket.socket, outbound: queue_mod.Queue) -> None:
        while True:
            payload = outbound.get()
            if payload is None:
                break
            try:
                send_frame(sock, payload)
            except OSError as e:
                self._fail(sock, e)
                break

    def _reader(self, sock: socket.socket) -> None:
        while True:
            try:
                payload = recv_frame(sock)
            except (OSError, ProtocolError) as e:
                self._fail(sock, e)
                break
            if self.on_message:
                self.on_message(payload)
