"""Game logic: pieces, board state machine, ticker, and snapshots."""

from tetris2p.game.pieces import Piece, Tetromino, PIECE_COLORS
from tetris2p.game.snapshot import ProtocolError, SyncSnapshot
from tetris2p.game.ticker import Ticker
from tetris2p.game.board import Action, Board

__all__ = [
    "Piece",
    "Tetromino",
    "PIECE_COLORS",
    "ProtocolError",
    "SyncSnapshot",
    "Ticker",
    "Action",
    "Board",
]
