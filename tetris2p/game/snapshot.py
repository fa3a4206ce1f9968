"""
SyncSnapshot: a full, self-contained copy of one board at a piece lock.

Snapshots carry the held / next / current pieces and the whole locked grid.
There is no versioning: the receiver overwrites its mirror unconditionally.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from tetris2p.game.pieces import Tetromino, rotation_count


class ProtocolError(ValueError):
    """Raised when a wire payload cannot be turned into a valid message."""


@dataclass(frozen=True)
class SyncSnapshot:
    """Point-in-time copy of a board's pieces and cells.

    Attributes:
        held_kind / held_rotation: The held slot.
        next_kind / next_rotation: The preview slot.
        current_kind / current_rotation: The active slot.
        cells: Row-major grid values (row 0 is the bottom row), one
            Tetromino value per cell, length width * height.
    """

    held_kind: Tetromino
    held_rotation: int
    next_kind: Tetromino
    next_rotation: int
    current_kind: Tetromino
    current_rotation: int
    cells: tuple[int, ...]

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable dict."""
        return {
            "held": [int(self.held_kind), self.held_rotation],
            "next": [int(self.next_kind), self.next_rotation],
            "current": [int(self.current_kind), self.current_rotation],
            "cells": list(self.cells),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SyncSnapshot:
        """Build a snapshot from its dict form, validating every field.

        Args:
            data: Dict as produced by to_dict().

        Returns:
            The decoded snapshot.

        Raises:
            ProtocolError: If a field is missing, a kind is unknown, a
                rotation is out of range, or a cell is not a valid kind.
        """
        try:
            held = _decode_piece(data["held"])
            nxt = _decode_piece(data["next"])
            current = _decode_piece(data["current"])
            raw_cells = data["cells"]
        except (KeyError, TypeError) as e:
            raise ProtocolError(f"incomplete snapshot: {e}") from e

        if not isinstance(raw_cells, list):
            raise ProtocolError("snapshot cells must be a list")
        cells = tuple(_decode_kind(value) for value in raw_cells)
        return cls(
            held_kind=held[0],
            held_rotation=held[1],
            next_kind=nxt[0],
            next_rotation=nxt[1],
            current_kind=current[0],
            current_rotation=current[1],
            cells=tuple(int(c) for c in cells),
        )


def _decode_kind(value: Any) -> Tetromino:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ProtocolError(f"piece kind must be an int, got {value!r}")
    try:
        return Tetromino(value)
    except ValueError as e:
        raise ProtocolError(f"unknown piece kind: {value}") from e


def _decode_piece(pair: Any) -> tuple[Tetromino, int]:
    if not isinstance(pair, (list, tuple)) or len(pair) != 2:
        raise ProtocolError(f"piece must be a [kind, rotation] pair, got {pair!r}")
    kind = _decode_kind(pair[0])
    rotation = pair[1]
    if isinstance(rotation, bool) or not isinstance(rotation, int):
        raise ProtocolError(f"rotation must be an int, got {rotation!r}")
    if not 0 <= rotation < rotation_count(kind):
        raise ProtocolError(f"rotation {rotation} out of range for {kind.name}")
    return kind, rotation
