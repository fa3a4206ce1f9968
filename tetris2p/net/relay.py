"""
Minimal relay server: every frame received from one client is forwarded,
unchanged, to all other connected clients.
"""

from __future__ import annotations

import socket
import socketserver
import threading

from tetris2p.net.protocol import ProtocolError, recv_frame, send_frame


class _RelayHandler(socketserver.BaseRequestHandler):
    def handle(self) -> None:
        server: _ThreadingRelay = self.server  # type: ignore[assignment]
        host, port = self.client_address[:2]
        server.register(self.request)
        print(f"[Relay] {host}:{port} connected", flush=True)
        try:
            while True:
                payload = recv_frame(self.request)
                server.broadcast(payload, exclude=self.request)
        except (OSError, ProtocolError) as e:
            print(f"[Relay] {host}:{port} disconnected ({e})", flush=True)
        finally:
            server.unregister(self.request)


class _ThreadingRelay(socketserver.ThreadingTCPServer):
    allow_reuse_address = True
    daemon_threads = True

    def __init__(self, address: tuple[str, int]) -> None:
        super().__init__(address, _RelayHandler)
        self._clients: set[socket.socket] = set()
        self._clients_lock = threading.Lock()

    def register(self, sock: socket.socket) -> None:
        with self._clients_lock:
            self._clients.add(sock)

    def unregister(self, sock: socket.socket) -> None:
        with self._clients_lock:
            self._clients.discard(sock)

    def broadcast(self, payload: bytes, exclude: socket.socket | None = None) -> None:
        with self._clients_lock:
            for sock in list(self._clients):
                if sock is exclude:
                    continue
                try:
                    send_frame(sock, payload)
                except OSError as e:
                    print(f"[Relay] dropping client: {e}", flush=True)
                    self._clients.discard(sock)

    def client_count(self) -> int:
        with self._clients_lock:
            return len(self._clients)

    def close_clients(self) -> None:
        with self._clients_lock:
            for sock in self._clients:
                try:
                    sock.shutdown(socket.SHUT_RDWR)
                except OSError:
                    # Peer already gone.
                    pass
            self._clients.clear()


class RelayServer:
    """Threaded broadcast relay for Tetris2P clients.

    Attributes:
        host: Interface to bind ("" for all).
        port: TCP port to bind (0 picks a free port).
    """

    def __init__(self, host: str = "", port: int = 1337) -> None:
        self.host = host
        self.port = port
        self._server: _ThreadingRelay | None = None
        self._thread: threading.Thread | None = None

    @property
    def address(self) -> tuple[str, int]:
        """Bound (host, port); meaningful once started."""
        if self._server is None:
            return self.host, self.port
        return self._server.server_address[:2]

    def client_count(self) -> int:
        """Number of clients currently connected."""
        return self._server.client_count() if self._server is not None else 0

    def _bind(self) -> _ThreadingRelay:
        if self._server is None:
            self._server = _ThreadingRelay((self.host, self.port))
            print(f"[Relay] listening on port {self.address[1]}", flush=True)
        return self._server

    def start(self) -> None:
        """Bind and serve in a daemon thread.

        Raises:
            OSError: If the port cannot be bound.
        """
        server = self._bind()
        self._thread = threading.Thread(target=server.serve_forever, name="relay", daemon=True)
        self._thread.start()

    def serve_forever(self) -> None:
        """Bind and serve on the calling thread until shutdown()."""
        self._bind().serve_forever()

    def shutdown(self) -> None:
        if self._server is None:
            return
        self._server.shutdown()
        self._server.close_clients()
        self._server.server_close()
        self._server = None
        print("[Relay] stopped", flush=True)
