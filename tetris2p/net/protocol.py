"""
Wire protocol between a Tetris2P client and the relay.

Two message kinds share one channel:
  - snapshot: { type: 'snapshot', held: [kind, rot], next: [kind, rot],
                current: [kind, rot], cells: [int, ...] }
  - text:     { type: 'text', text: str }

Text beginning with COMMAND_PREFIX is a control command. Every message is a
UTF-8 JSON object preceded by a 4-byte big-endian length header.
"""

from __future__ import annotations

import json
import socket
import struct
from dataclasses import dataclass
from typing import Any, Union

from tetris2p.game.snapshot import ProtocolError, SyncSnapshot

HEADER_FMT = "!I"
HEADER_SIZE = struct.calcsize(HEADER_FMT)
MAX_FRAME_SIZE = 1 << 20

COMMAND_PREFIX = "/"


@dataclass(frozen=True)
class SnapshotMessage:
    snapshot: SyncSnapshot


@dataclass(frozen=True)
class TextMessage:
    text: str

    @property
    def is_command(self) -> bool:
        return self.text.startswith(COMMAND_PREFIX)


Message = Union[SnapshotMessage, TextMessage]


def encode_message(message: Message) -> bytes:
    """Serialize a message to a JSON payload (without the length header)."""
    if isinstance(message, SnapshotMessage):
        obj: dict[str, Any] = {"type": "snapshot", **message.snapshot.to_dict()}
    elif isinstance(message, TextMessage):
        obj = {"type": "text", "text": message.text}
    else:
        raise TypeError(f"cannot encode {type(message).__name__}")
    return json.dumps(obj, separators=(",", ":")).encode("utf-8")


def decode_message(payload: bytes) -> Message:
    """Parse a JSON payload into a SnapshotMessage or TextMessage.

    Raises:
        ProtocolError: If the payload is not valid JSON, has an unknown
            type, or carries an invalid snapshot.
    """
    try:
        obj = json.loads(payload.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ProtocolError(f"invalid JSON payload: {e}") from e
    if not isinstance(obj, dict):
        raise ProtocolError("message must be a JSON object")

    msg_type = obj.get("type")
    if msg_type == "snapshot":
        return SnapshotMessage(SyncSnapshot.from_dict(obj))
    if msg_type == "text":
        text = obj.get("text")
        if not isinstance(text, str):
            raise ProtocolError("text message without a string 'text' field")
        return TextMessage(text)
    raise ProtocolError(f"unknown message type: {msg_type!r}")


def frame(payload: bytes) -> bytes:
    return struct.pack(HEADER_FMT, len(payload)) + payload


def recv_exact(sock: socket.socket, n: int) -> bytes:
    buf = b""
    while len(buf) < n:
        chunk = sock.recv(n - len(buf))
        if not chunk:
            raise ConnectionError("Socket closed")
        buf += chunk
    return buf


def send_frame(sock: socket.socket, payload: bytes) -> None:
    sock.sendall(frame(payload))


def recv_frame(sock: socket.socket) -> bytes:
    """Read one length-prefixed payload.

    Raises:
        ConnectionError: If the peer closed the socket mid-frame.
        ProtocolError: If the announced length exceeds MAX_FRAME_SIZE.
    """
    header = recv_exact(sock, HEADER_SIZE)
    (length,) = struct.unpack(HEADER_FMT, header)
    if length > MAX_FRAME_SIZE:
        raise ProtocolError(f"frame of {length} bytes exceeds limit")
    if length == 0:
        return b""
    return recv_exact(sock, length)


def parse_command(text: str) -> tuple[str, str]:
    """Split command text (prefix already removed) into instruction and operand.

    The instruction is lower-cased; the operand is the second whitespace
    separated token, or "" when absent.
    """
    parts = text.split()
    if not parts:
        return "", ""
    instruction = parts[0].lower()
    operand = parts[1] if len(parts) > 1 else ""
    return instruction, operand
