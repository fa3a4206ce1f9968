"""Networking: wire protocol, relay transport, relay server, and client."""

from tetris2p.net.protocol import SnapshotMessage, TextMessage, encode_message, decode_message
from tetris2p.net.transport import ConnectionState, SocketTransport
from tetris2p.net.relay import RelayServer
from tetris2p.net.client import TetrisClient

__all__ = [
    "SnapshotMessage",
    "TextMessage",
    "encode_message",
    "decode_message",
    "ConnectionState",
    "SocketTransport",
    "RelayServer",
    "TetrisClient",
]
