"""
Board state machine for one Tetris2P player.

The locked cells live in a 2D numpy array (height x width) of int8 values:
  - 0 = empty cell
  - 1-7 = Tetromino kind (used for coloring)

Row 0 is the BOTTOM of the board. A piece at cursor (x, y) occupies
(x + dx, y - dy) for each of its offsets.

Two actors mutate an interactive board: the Ticker thread (descent) and the
input handler (moves, rotation, drops, hold). Every public operation takes
`self.lock`, a re-entrant lock scoped to this board instance. A mirror board
(interactive=False) is only written by apply_snapshot() and never ticks.
"""

from __future__ import annotations

import enum
import random
import threading
import time
from typing import Callable

import numpy as np

from tetris2p.game.pieces import Piece, Tetromino, rotation_count
from tetris2p.game.snapshot import SyncSnapshot
from tetris2p.game.ticker import Ticker


class Action(enum.IntEnum):
    """Player input actions."""
    LEFT = 0
    RIGHT = 1
    ROTATE = 2
    SOFT_DROP = 3
    HARD_DROP = 4
    HOLD = 5


STATUS_PAUSED = " Game [P]aused. "
STATUS_PLAYING = " Playing. "
STATUS_GAME_OVER = " Game over. Press [Q]uit [R]estart"


def _noop(*_args) -> None:
    pass


class Board:
    """Grid, piece slots and the rules for spawn, movement, lock and clear.

    Attributes:
        width: Number of columns (default 10).
        height: Number of rows (default 20).
        grid: 2D numpy array of shape (height, width), dtype int8.
        current: Active piece slot.
        next: Preview piece slot.
        held: Hold piece slot (EMPTY when nothing is held).
        cursor: (x, y) grid position of the current piece's pivot.
        lines_cleared: Lines removed during this session.
        running: The session has started and is not over.
        paused: Descent and input are suspended.
        game_over: The last spawn collided.
        hold_used: Hold was already used for the current falling piece.
        lock_pending: Lines were just cleared; the next tick spawns a piece.
        lock: Re-entrant lock guarding every mutation of this board.
    """

    def __init__(
        self,
        width: int = 10,
        height: int = 20,
        *,
        interactive: bool = True,
        interval: float = 0.6,
        initial_delay: float = 0.7,
        lock_delay: float = 0.0,
        rng: random.Random | None = None,
        on_redraw: Callable[[], None] | None = None,
        on_status: Callable[[str], None] | None = None,
        on_lines: Callable[[int], None] | None = None,
        on_lock: Callable[[SyncSnapshot], None] | None = None,
        on_game_over: Callable[[], None] | None = None,
        on_sound: Callable[[str], None] | None = None,
    ) -> None:
        """Initialize an empty, stopped board.

        Args:
            width: Number of columns.
            height: Number of rows.
            interactive: False for a mirror board driven only by snapshots.
            interval: Seconds between descent ticks.
            initial_delay: Seconds before the first tick.
            lock_delay: Settle time in seconds between a failed descent and
                the lock, during which input may still move the piece.
            rng: Random source for piece kinds (seed it for reproducible games).
            on_redraw: Called whenever visible state changes.
            on_status: Called with a status line on pause / resume / game over.
            on_lines: Called with the total line count after it changes.
            on_lock: Called with the post-lock snapshot after every lock.
            on_game_over: Called once when the session ends.
            on_sound: Called with "move", "rotate" or "drop" for audio cues.
        """
        self.width = width
        self.height = height
        self.interactive = interactive
        self.interval = interval
        self.initial_delay = initial_delay
        self.lock_delay = lock_delay
        self.grid = np.zeros((self.height, self.width), dtype=np.int8)

        self.current = Piece()
        self.next = Piece()
        self.held = Piece()
        self.cursor: tuple[int, int] = (0, 0)
        self.lines_cleared: int = 0

        self.running: bool = False
        self.paused: bool = False
        self.game_over: bool = False
        self.hold_used: bool = False
        self.lock_pending: bool = False

        self.lock = threading.RLock()
        self._rng = rng or random.Random()
        self._ticker: Ticker | None = None
        self._lock_depth = 0
        self._game_over_deferred = False
        # Bumped whenever a new piece becomes current.
        self._spawn_serial = 0

        self.on_redraw = on_redraw or _noop
        self.on_status = on_status or _noop
        self.on_lines = on_lines or _noop
        self.on_lock = on_lock or _noop
        self.on_game_over = on_game_over or _noop
        self.on_sound = on_sound or _noop

    # ── Session control ──────────────────────────────────────────────────

    def start(self) -> None:
        """Begin a new session and leave it paused.

        No-op while paused. Otherwise resets the grid, flags and line count,
        spawns the first piece pair, starts a fresh ticker and pauses, so a
        player (or test) must call resume() explicitly.
        """
        with self.lock:
            if self.paused or not self.interactive:
                return
            self._stop_ticker()
            self.running = True
            self.game_over = False
            self.hold_used = False
            self.lock_pending = False
            self.lines_cleared = 0
            self.clear_board()
            self.held.set_kind(Tetromino.EMPTY)
            self.next.set_kind(Tetromino.EMPTY)
            self._ticker = Ticker(self.on_tick, self.interval, self.initial_delay)
            self.spawn_piece()
            self._ticker.start()
            self.pause()

    def pause(self) -> None:
        with self.lock:
            if not self.running or self.paused:
                return
            self.paused = True
            if self._ticker is not None:
                self._ticker.pause()
            self.on_status(STATUS_PAUSED)
            self.on_redraw()

    def resume(self) -> None:
        with self.lock:
            if not self.running or not self.paused:
                return
            self.paused = False
            if self._ticker is not None:
                self._ticker.resume()
            self.on_status(STATUS_PLAYING)
            self.on_redraw()

    def toggle_pause(self) -> None:
        with self.lock:
            if self.paused:
                self.resume()
            else:
                self.pause()

    def restart(self) -> None:
        """Start over from an empty grid and resume play.

        Only legal while paused; a no-op otherwise. After a game over the
        ticker was stopped, so a new one is created. On a mirror board this
        simply clears the grid and all three piece slots.
        """
        with self.lock:
            if not self.interactive:
                self.clear_board()
                for slot in (self.current, self.next, self.held):
                    slot.set_kind(Tetromino.EMPTY)
                self.on_redraw()
                return
            if not self.paused:
                return
            self.running = True
            self.game_over = False
            self.hold_used = False
            self.lock_pending = False
            self.lines_cleared = 0
            self.on_lines(self.lines_cleared)
            self.clear_board()
            for slot in (self.current, self.next, self.held):
                slot.set_kind(Tetromino.EMPTY)
            if self._ticker is None or self._ticker.stopped:
                self._ticker = Ticker(
                    self.on_tick, self.interval, self.initial_delay, paused=True
                )
                self._ticker.start()
            self.spawn_piece()
            self.resume()

    def end_game(self) -> None:
        """Terminate the session: no more ticks, no active piece."""
        with self.lock:
            self.game_over = True
            self.running = False
            self.paused = True
            self.hold_used = False
            self.lock_pending = False
            self.current.set_kind(Tetromino.EMPTY)
            self._stop_ticker()
            self.on_status(STATUS_GAME_OVER)
            self.on_redraw()
            if self._lock_depth:
                # Announce after the lock event so the final snapshot goes first.
                self._game_over_deferred = True
            else:
                self.on_game_over()

    def stop(self) -> None:
        """Stop ticking and refuse further play without touching the grid."""
        with self.lock:
            self.running = False
            self._stop_ticker()

    def _stop_ticker(self) -> None:
        if self._ticker is not None:
            self._ticker.stop()

    def clear_board(self) -> None:
        with self.lock:
            self.grid = np.zeros((self.height, self.width), dtype=np.int8)

    # ── Piece logic ──────────────────────────────────────────────────────

    def spawn_cursor(self, piece: Piece) -> tuple[int, int]:
        """Cursor at which `piece` spawns: its top cell on the top row."""
        return self.width // 2, self.height - 1 + piece.min_y()

    def spawn_piece(self) -> bool:
        """Promote `next` to `current` and draw a new `next`.

        Returns:
            True if the piece was placed, False if the spawn collided (the
            session is then over).
        """
        with self.lock:
            if self.next.is_empty:
                self.next.set_random_kind(self._rng)
            candidate = Piece(self.next.kind)
            self.next.set_random_kind(self._rng)
            self._spawn_serial += 1
            self.hold_used = False
            self.lock_pending = False
            x, y = self.spawn_cursor(candidate)
            if not self.try_move(candidate, x, y):
                self.end_game()
                return False
            return True

    def is_valid_position(self, piece: Piece, x: int, y: int) -> bool:
        """Check whether `piece` fits with its pivot at (x, y).

        A position is valid if every occupied cell of the piece:
          - Is within the board boundaries (0 <= col < width, 0 <= row < height).
          - Does not overlap a filled cell on the grid.

        The empty piece has no cells and is never a valid placement.
        """
        cells = piece.cells()
        if not cells:
            return False
        for dx, dy in cells:
            col = x + dx
            row = y - dy
            if col < 0 or col >= self.width:
                return False
            if row < 0 or row >= self.height:
                return False
            if self.grid[row, col] != 0:
                return False
        return True

    def try_move(self, piece: Piece, x: int, y: int) -> bool:
        """Move the current slot to `piece` at (x, y) if it fits.

        This is the single gate for every move, rotation and descent. On
        success the current slot takes piece's kind and rotation and the
        cursor becomes (x, y). On failure nothing changes.

        Args:
            piece: Candidate piece (may be the current slot itself).
            x: Candidate pivot column.
            y: Candidate pivot row.

        Returns:
            True if the candidate was committed.
        """
        with self.lock:
            if not self.is_valid_position(piece, x, y):
                return False
            self.current.assign(piece)
            self.cursor = (x, y)
            self.on_redraw()
            return True

    def move_left(self) -> bool:
        with self.lock:
            x, y = self.cursor
            return self.try_move(self.current, x - 1, y)

    def move_right(self) -> bool:
        with self.lock:
            x, y = self.cursor
            return self.try_move(self.current, x + 1, y)

    def rotate(self) -> bool:
        """Rotate clockwise in place; a colliding rotation is discarded."""
        with self.lock:
            x, y = self.cursor
            return self.try_move(self.current.rotated(), x, y)

    def soft_drop(self) -> bool:
        """Move one row down, locking the piece if it cannot.

        Returns:
            True if the piece moved, False if it was locked (or absent).
        """
        with self.lock:
            if self.current.is_empty:
                return False
            x, y = self.cursor
            if self.try_move(self.current, x, y - 1):
                return True
            self.lock_piece()
            return False

    def hard_drop(self) -> int:
        """Drop the piece as far as it goes and lock it.

        Returns:
            Number of rows dropped.
        """
        with self.lock:
            if self.current.is_empty:
                return 0
            rows = 0
            while True:
                x, y = self.cursor
                if not self.try_move(self.current, x, y - 1):
                    break
                rows += 1
            self.lock_piece()
            return rows

    def hold(self) -> bool:
        """Swap the current piece with the held one, once per falling piece.

        With nothing held, the current piece goes to hold and the next piece
        spawns. Otherwise the two swap and the newly active piece restarts at
        the spawn cursor.

        Returns:
            True if the hold happened, False if already used this cycle.
        """
        with self.lock:
            if self.hold_used or self.current.is_empty:
                return False
            if self.held.is_empty:
                self.held.set_kind(self.current.kind)
                self.spawn_piece()
            else:
                swapped = Piece(self.held.kind)
                self.held.set_kind(self.current.kind)
                self._spawn_serial += 1
                x, y = self.spawn_cursor(swapped)
                if not self.try_move(swapped, x, y):
                    self.end_game()
            # Set AFTER spawn, which resets it.
            self.hold_used = True
            self.on_redraw()
            return True

    def lock_piece(self) -> int:
        """Commit the current piece into the grid and clear full lines.

        Without cleared lines the next piece spawns right away; otherwise
        the board waits for the next tick (lock_pending) with no active
        piece. Emits the lock event with the resulting snapshot.

        Returns:
            Number of lines cleared.
        """
        with self.lock:
            if self.current.is_empty:
                return 0
            self._lock_depth += 1
            try:
                x, y = self.cursor
                kind = int(self.current.kind)
                for dx, dy in self.current.cells():
                    self.grid[y - dy, x + dx] = kind
                cleared = self.clear_full_lines()
                self.hold_used = False
                if cleared:
                    self.lock_pending = True
                    self.current.set_kind(Tetromino.EMPTY)
                    self.on_redraw()
                else:
                    self.spawn_piece()
            finally:
                self._lock_depth -= 1
            self.on_lock(self.snapshot())
            if self._game_over_deferred and not self._lock_depth:
                self._game_over_deferred = False
                self.on_game_over()
            return cleared

    def clear_full_lines(self) -> int:
        """Remove all fully filled rows and shift everything above them down.

        Returns:
            The number of lines cleared.
        """
        with self.lock:
            full_rows = np.all(self.grid != 0, axis=1)
            count = int(full_rows.sum())
            if not count:
                return 0
            # Row 0 is the bottom: keep survivors in order, refill on top.
            remaining = self.grid[~full_rows]
            empty_rows = np.zeros((count, self.width), dtype=np.int8)
            self.grid = np.vstack([remaining, empty_rows])
            self.lines_cleared += count
            self.on_lines(self.lines_cleared)
            self.on_redraw()
            return count

    # ── Tick and input ───────────────────────────────────────────────────

    def on_tick(self) -> None:
        """Ticker callback: spawn after a clear, or descend one row."""
        with self.lock:
            if not self._ticking():
                return
            if self.lock_pending:
                self.spawn_piece()
                return
            if self.current.is_empty:
                return
            x, y = self.cursor
            if self.try_move(self.current, x, y - 1):
                return
            if self.lock_delay <= 0:
                self.lock_piece()
                return
            settling = self._spawn_serial
        # Settle outside the lock so a last nudge can still get in.
        time.sleep(self.lock_delay)
        with self.lock:
            if not self._ticking() or self.lock_pending or self.current.is_empty:
                return
            if self._spawn_serial != settling:
                # The resting piece was already locked or swapped out.
                return
            x, y = self.cursor
            if not self.try_move(self.current, x, y - 1):
                self.lock_piece()

    def _ticking(self) -> bool:
        return self.running and not self.paused and not self.game_over

    def accepts_input(self) -> bool:
        with self.lock:
            return self._ticking() and not self.current.is_empty

    def handle_input(self, action: Action) -> bool:
        """Apply a player action if the game is live.

        Args:
            action: The Action to perform.

        Returns:
            True if the action changed the board.
        """
        with self.lock:
            if not self.accepts_input():
                return False
            if action == Action.LEFT:
                self.on_sound("move")
                return self.move_left()
            if action == Action.RIGHT:
                self.on_sound("move")
                return self.move_right()
            if action == Action.ROTATE:
                self.on_sound("rotate")
                return self.rotate()
            if action == Action.SOFT_DROP:
                self.on_sound("move")
                self.soft_drop()
                return True
            if action == Action.HARD_DROP:
                self.on_sound("drop")
                self.hard_drop()
                return True
            if action == Action.HOLD:
                return self.hold()
            return False

    # ── Synchronization ──────────────────────────────────────────────────

    def snapshot(self) -> SyncSnapshot:
        """Return a full copy of the piece slots and the grid."""
        with self.lock:
            return SyncSnapshot(
                held_kind=self.held.kind,
                held_rotation=self.held.rotation,
                next_kind=self.next.kind,
                next_rotation=self.next.rotation,
                current_kind=self.current.kind,
                current_rotation=self.current.rotation,
                cells=tuple(int(v) for v in self.grid.reshape(-1)),
            )

    def apply_snapshot(self, snapshot: SyncSnapshot) -> None:
        """Overwrite pieces and grid from an opponent's snapshot.

        The snapshot is validated first; a rejected snapshot leaves the
        board untouched.

        Raises:
            ValueError: If the cell count does not match this board, or a
                cell, kind or rotation is out of range.
        """
        expected = self.width * self.height
        if len(snapshot.cells) != expected:
            raise ValueError(
                f"snapshot has {len(snapshot.cells)} cells, expected {expected}"
            )
        cells = np.asarray(snapshot.cells, dtype=np.int64)
        if cells.size and (cells.min() < 0 or cells.max() > max(Tetromino)):
            raise ValueError("snapshot contains an unknown piece kind")
        pieces = []
        for kind, rotation in (
            (snapshot.held_kind, snapshot.held_rotation),
            (snapshot.next_kind, snapshot.next_rotation),
            (snapshot.current_kind, snapshot.current_rotation),
        ):
            kind = Tetromino(kind)
            if not 0 <= rotation < rotation_count(kind):
                raise ValueError(f"rotation {rotation} out of range for {kind.name}")
            pieces.append(Piece(kind, rotation))

        with self.lock:
            self.grid = cells.reshape(self.height, self.width).astype(np.int8)
            self.held.assign(pieces[0])
            self.next.assign(pieces[1])
            self.current.assign(pieces[2])
            self.cursor = self.spawn_cursor(self.current)
            self.on_redraw()

    def get_grid(self) -> np.ndarray:
        """Return a copy of the grid (row 0 = bottom)."""
        with self.lock:
            return self.grid.copy()

    def occupied_cells(self) -> list[tuple[int, int]]:
        """Grid (col, row) positions covered by the current piece."""
        with self.lock:
            x, y = self.cursor
            return [(x + dx, y - dy) for dx, dy in self.current.cells()]
