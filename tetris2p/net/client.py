"""
TetrisClient: glue between the two boards, the user's text input and the
relay transport.

Responsibilities:
  - Outbound: every lock on the local board becomes a snapshot message.
  - Inbound: snapshots update the mirror board, text is displayed.
  - Commands: text starting with '/' or '#' is interpreted locally;
    unknown commands are forwarded to the relay with the prefix restored.
  - Win handshake: a local game over sends '/gameover' to the opponent,
    whose client then resets both of its boards.
"""

from __future__ import annotations

from typing import Callable

from tetris2p.game.board import Board
from tetris2p.game.snapshot import SyncSnapshot
from tetris2p.net.protocol import (
    COMMAND_PREFIX,
    ProtocolError,
    SnapshotMessage,
    TextMessage,
    decode_message,
    encode_message,
    parse_command,
)
from tetris2p.net.relay import RelayServer
from tetris2p.net.transport import SocketTransport

DEFAULT_HOST = "localhost"
DEFAULT_PORT = 1337

LOCAL_PREFIXES = ("/", "#")


class TetrisClient:
    """Command interpreter and sync layer for one player.

    Attributes:
        local_board: The interactive board of this player.
        mirror_board: Read-only view of the opponent's board.
        transport: Connection to the relay.
        relay: Relay started by the 'start' command, if any.
    """

    def __init__(
        self,
        local_board: Board,
        mirror_board: Board,
        host: str = DEFAULT_HOST,
        port: int = DEFAULT_PORT,
        display: Callable[[str], None] | None = None,
        on_quit: Callable[[], None] | None = None,
        transport: SocketTransport | None = None,
    ) -> None:
        """Wire the client to both boards and create its transport.

        The local board's on_lock and on_game_over observers are replaced
        by the client's handlers.

        Args:
            local_board: Interactive board whose locks are broadcast.
            mirror_board: Non-interactive board fed by inbound snapshots.
            host: Relay host.
            port: Relay port.
            display: Sink for user-visible text (defaults to print).
            on_quit: Called after 'quit'/'exit' has torn everything down.
            transport: Pre-built transport (mainly for tests).
        """
        self.local_board = local_board
        self.mirror_board = mirror_board
        self.display = display or print
        self.on_quit = on_quit
        self.relay: RelayServer | None = None
        self.multiplayer_enabled = False

        self.transport = transport or SocketTransport(host, port)
        self.transport.on_message = self.handle_message_from_server
        self.transport.on_connected = self.connection_established
        self.transport.on_closed = self.connection_closed
        self.transport.on_error = self.connection_exception

        local_board.on_lock = self.send_snapshot
        local_board.on_game_over = self.game_lost

    # ── Connection hooks ─────────────────────────────────────────────────

    def connection_established(self) -> None:
        self.multiplayer_enabled = True
        self.display("Connected to server.")

    def connection_closed(self) -> None:
        self.multiplayer_enabled = False
        self.display("Disconnected from server.")

    def connection_exception(self, exc: Exception) -> None:
        self.multiplayer_enabled = False
        self.display("Server closed. Abnormal termination of connection.")
        print(f"[Client] connection lost: {exc}", flush=True)

    # ── Outbound ─────────────────────────────────────────────────────────

    def _send(self, message: SnapshotMessage | TextMessage) -> bool:
        try:
            self.transport.send(encode_message(message))
        except OSError:
            return False
        return True

    def send_snapshot(self, snapshot: SyncSnapshot) -> None:
        """Lock observer: forward the local board to the opponent."""
        if not self.multiplayer_enabled:
            return
        if not self._send(SnapshotMessage(snapshot)):
            self.display("[ERROR] Could not send the update to opponent. Terminating connection.")
            self.disconnect()

    def game_lost(self) -> None:
        """Game-over observer: tell the opponent they won."""
        if not self.multiplayer_enabled:
            return
        if not self._send(TextMessage(COMMAND_PREFIX + "gameover")):
            self.display("Could not reach opponent for game over confirmation.")
            self.disconnect()

    # ── Inbound ──────────────────────────────────────────────────────────

    def handle_message_from_server(self, payload: bytes) -> None:
        """Route one inbound payload.

        Snapshots update the mirror board; a malformed one is logged and
        dropped. Text starting with the command prefix is a remote command,
        of which only 'gameover' is honoured. Other text is displayed.
        """
        try:
            message = decode_message(payload)
        except ProtocolError as e:
            print(f"[Client] dropped malformed message: {e}", flush=True)
            return

        if isinstance(message, SnapshotMessage):
            try:
                self.mirror_board.apply_snapshot(message.snapshot)
            except ValueError as e:
                print(f"[Client] rejected snapshot: {e}", flush=True)
            return

        if message.is_command:
            instruction, _ = parse_command(message.text[len(COMMAND_PREFIX):])
            if instruction == "gameover":
                self.match_won()
                return
        self.display("> " + message.text)

    # ── User input ───────────────────────────────────────────────────────

    def handle_message_from_ui(self, message: str) -> None:
        """Interpret a line typed by the user.

        Args:
            message: Raw input text. Empty input is ignored.
        """
        if not message:
            return
        if message.startswith(LOCAL_PREFIXES):
            self.command_message(message[1:])
            return
        if not self._send(TextMessage(message)):
            self.display("Could not send message to server.")

    def command_message(self, msg: str) -> None:
        """Execute a command (prefix already stripped).

        Args:
            msg: "instruction [operand]".
        """
        instruction, operand = parse_command(msg)

        if instruction == "connect":
            self.connect()
        elif instruction == "disconnect":
            self.disconnect()
        elif instruction == "start":
            self.start()
        elif instruction in ("quit", "exit"):
            self.quit()
        elif instruction == "gameover":
            self.match_won()
        elif instruction == "sethost":
            if self.transport.is_connected():
                self.disconnect()
            self.transport.host = operand
            self.display("The host has been set to: " + self.transport.host)
            self.connect()
        elif instruction == "setport":
            try:
                port = int(operand)
            except ValueError:
                self.display(f"Invalid port: {operand!r}")
                return
            if self.transport.is_connected():
                self.disconnect()
            self.transport.port = port
            self.display(f"Port set: {self.transport.port}")
        elif instruction == "gethost":
            self.display("The host is: " + self.transport.host)
        elif instruction == "getport":
            self.display(f"The port is: {self.transport.port}")
        else:
            print("[Client] Command not found. Sending cmd to server.", flush=True)
            if not self._send(TextMessage(COMMAND_PREFIX + msg)):
                self.display("Could not send command to server.")

    # ── Commands ─────────────────────────────────────────────────────────

    def connect(self) -> None:
        if self.transport.is_connected():
            self.display("Client already connected.")
            return
        try:
            self.transport.connect()
        except OSError as e:
            print(f"[Client] connect failed: {e}", flush=True)
            self.display("Cannot open connection. Awaiting command.")

    def disconnect(self) -> None:
        try:
            self.transport.disconnect()
        except OSError as e:
            print(f"[Client] disconnect failed: {e}", flush=True)
            self.display("Could not disconnect.")
        self.multiplayer_enabled = False

    def start(self) -> None:
        """Host a relay on the configured port, then connect to it."""
        if self.relay is None:
            relay = RelayServer("", self.transport.port)
            try:
                relay.start()
            except OSError as e:
                print(f"[Client] relay failed: {e}", flush=True)
                self.display("ERROR - Could not listen for clients!")
                return
            self.relay = relay
        self.connect()

    def quit(self) -> None:
        """Stop both boards, close the connection and any hosted relay."""
        self.local_board.stop()
        self.mirror_board.stop()
        self.disconnect()
        if self.relay is not None:
            self.relay.shutdown()
            self.relay = None
        if self.on_quit:
            self.on_quit()

    def match_won(self) -> None:
        """The opponent lost: announce it and reset both boards."""
        self.display("You won!")
        with self.local_board.lock:
            if self.local_board.running:
                self.local_board.pause()
            self.local_board.restart()
        self.mirror_board.restart()
