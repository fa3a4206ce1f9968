"""
Tetromino definitions and the reusable Piece slot.

Each kind is described by four (dx, dy) offsets around a pivot cell. The
offsets use a y-up convention: on the board a cell lands at
(cursor_x + dx, cursor_y - dy), and row 0 is the bottom of the grid.

Rotation states are precomputed once at import. Every kind cycles through
4 states except the square (O) and the empty sentinel, which have one.
"""

from __future__ import annotations

import enum
import random

# =============================================================================
# Piece kinds
# =============================================================================
# The integer value doubles as the grid cell value, so EMPTY must stay 0.


class Tetromino(enum.IntEnum):
    """The seven tetromino kinds plus the empty sentinel."""
    EMPTY = 0
    Z = 1
    S = 2
    I = 3  # noqa: E741
    T = 4
    O = 5  # noqa: E741
    L = 6
    J = 7


PLAYABLE_KINDS: tuple[Tetromino, ...] = tuple(k for k in Tetromino if k != Tetromino.EMPTY)

# =============================================================================
# Piece Colors (RGB), indexed by kind
# =============================================================================

PIECE_COLORS: dict[int, tuple[int, int, int]] = {
    Tetromino.EMPTY: (0, 0, 0),
    Tetromino.Z: (240, 30, 61),
    Tetromino.S: (60, 197, 80),
    Tetromino.I: (32, 165, 247),
    Tetromino.T: (182, 36, 166),
    Tetromino.O: (255, 202, 14),
    Tetromino.L: (32, 58, 247),
    Tetromino.J: (250, 114, 0),
}

# =============================================================================
# Spawn orientation offsets
# =============================================================================

SPAWN_OFFSETS: dict[Tetromino, tuple[tuple[int, int], ...]] = {
    Tetromino.EMPTY: (),
    Tetromino.Z: ((0, -1), (0, 0), (-1, 0), (-1, 1)),
    Tetromino.S: ((0, -1), (0, 0), (1, 0), (1, 1)),
    Tetromino.I: ((0, -1), (0, 0), (0, 1), (0, 2)),
    Tetromino.T: ((-1, 0), (0, 0), (1, 0), (0, 1)),
    Tetromino.O: ((0, 0), (1, 0), (0, 1), (1, 1)),
    Tetromino.L: ((-1, -1), (0, -1), (0, 0), (0, 1)),
    Tetromino.J: ((1, -1), (0, -1), (0, 0), (0, 1)),
}


def _build_rotations(
    offsets: tuple[tuple[int, int], ...], states: int
) -> tuple[tuple[tuple[int, int], ...], ...]:
    """Precompute successive clockwise rotations of an offset set.

    Args:
        offsets: Offsets of the spawn orientation.
        states: Number of distinct rotation states to generate.

    Returns:
        Tuple of offset sets, index 0 being the spawn orientation.
    """
    rotations = [offsets]
    for _ in range(states - 1):
        prev = rotations[-1]
        rotations.append(tuple((-dy, dx) for dx, dy in prev))
    return tuple(rotations)


ROTATIONS: dict[Tetromino, tuple[tuple[tuple[int, int], ...], ...]] = {
    kind: _build_rotations(
        offsets, 1 if kind in (Tetromino.EMPTY, Tetromino.O) else 4
    )
    for kind, offsets in SPAWN_OFFSETS.items()
}


def random_kind(rng: random.Random | None = None) -> Tetromino:
    """Draw one of the 7 playable kinds uniformly at random."""
    rng = rng or random
    return rng.choice(PLAYABLE_KINDS)


def rotation_count(kind: Tetromino) -> int:
    """Number of distinct rotation states for a kind (1 or 4)."""
    return len(ROTATIONS[Tetromino(kind)])


class Piece:
    """A mutable piece slot: a kind plus a rotation index.

    The board keeps one Piece object per slot (current, next, held) for the
    whole session and reassigns it rather than creating new ones. Rotation
    candidates are separate objects so that a rejected rotation leaves the
    slot untouched.

    Attributes:
        kind: The Tetromino kind held by this slot.
        rotation: Index into ROTATIONS[kind].
    """

    __slots__ = ("kind", "rotation")

    def __init__(self, kind: Tetromino = Tetromino.EMPTY, rotation: int = 0) -> None:
        self.kind = Tetromino(kind)
        self.rotation = rotation % rotation_count(self.kind)

    def __repr__(self) -> str:
        return f"Piece({self.kind.name}, rotation={self.rotation})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Piece):
            return NotImplemented
        return self.kind == other.kind and self.rotation == other.rotation

    def set_kind(self, kind: Tetromino) -> None:
        """Assign a kind and reset to the spawn orientation."""
        self.kind = Tetromino(kind)
        self.rotation = 0

    def set_random_kind(self, rng: random.Random | None = None) -> None:
        self.set_kind(random_kind(rng))

    def assign(self, other: Piece) -> None:
        """Copy kind and rotation from another piece into this slot."""
        self.kind = other.kind
        self.rotation = other.rotation

    def copy(self) -> Piece:
        return Piece(self.kind, self.rotation)

    @property
    def is_empty(self) -> bool:
        return self.kind == Tetromino.EMPTY

    def rotated(self) -> Piece:
        """Return a new piece in the next clockwise orientation.

        The square and the empty sentinel return an unchanged copy.
        """
        return Piece(self.kind, (self.rotation + 1) % rotation_count(self.kind))

    def cells(self) -> tuple[tuple[int, int], ...]:
        """Return the (dx, dy) offsets for the current kind and rotation.

        Returns:
            Four offsets, or an empty tuple for EMPTY.
        """
        return ROTATIONS[self.kind][self.rotation]

    def min_y(self) -> int:
        cells = self.cells()
        return min(dy for _, dy in cells) if cells else 0

    def max_y(self) -> int:
        cells = self.cells()
        return max(dy for _, dy in cells) if cells else 0
