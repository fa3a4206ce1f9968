import threading
import time

import numpy as np

from conftest import make_board
from tetris2p.game.board import STATUS_GAME_OVER, STATUS_PAUSED, STATUS_PLAYING, Action, Board
from tetris2p.game.pieces import Piece, Tetromino


# ── Collision ────────────────────────────────────────────────────────────

def test_try_move_accepts_exactly_the_valid_positions(board):
    board.grid[0, :5] = Tetromino.Z
    board.grid[7, 3] = Tetromino.S
    piece = Piece(Tetromino.T, rotation=1)

    for x in range(-3, board.width + 3):
        for y in range(-3, board.height + 3):
            before_piece = board.current.copy()
            before_cursor = board.cursor
            expected = all(
                0 <= x + dx < board.width
                and 0 <= y - dy < board.height
                and board.grid[y - dy, x + dx] == 0
                for dx, dy in piece.cells()
            )
            assert board.try_move(piece, x, y) is expected
            if expected:
                assert board.current == piece
                assert board.cursor == (x, y)
            else:
                assert board.current == before_piece
                assert board.cursor == before_cursor


def test_try_move_rejects_empty_piece(board):
    assert board.try_move(Piece(), 5, 5) is False


def test_rotation_that_collides_is_discarded(board):
    assert board.try_move(Piece(Tetromino.I), 0, 10)
    assert board.rotate() is False
    assert board.current == Piece(Tetromino.I)
    assert board.cursor == (0, 10)


# ── Line clearing ────────────────────────────────────────────────────────

def test_clear_full_lines_removes_rows_and_keeps_order(board):
    board.grid[0, :] = Tetromino.I
    board.grid[1, :4] = Tetromino.T
    board.grid[2, :] = Tetromino.O
    board.grid[3, 6:] = Tetromino.L
    board.grid[5, :] = Tetromino.J
    row1 = board.grid[1].copy()
    row3 = board.grid[3].copy()

    assert board.clear_full_lines() == 3
    assert board.lines_cleared == 3
    np.testing.assert_array_equal(board.grid[0], row1)
    np.testing.assert_array_equal(board.grid[1], row3)
    assert not board.grid[2:].any()
    assert not np.all(board.grid != 0, axis=1).any()


def test_clear_full_lines_with_whole_grid_full(board):
    board.grid[:, :] = Tetromino.S
    assert board.clear_full_lines() == board.height
    assert not board.grid.any()
    assert board.grid.shape == (board.height, board.width)


def test_clear_full_lines_without_full_rows_is_noop(board):
    board.grid[0, :9] = Tetromino.Z
    before = board.get_grid()
    assert board.clear_full_lines() == 0
    assert board.lines_cleared == 0
    np.testing.assert_array_equal(board.grid, before)


def test_single_line_example_on_standard_board(board):
    board.grid[0, :9] = Tetromino.Z
    board.grid[1, :3] = Tetromino.T

    assert board.try_move(Piece(Tetromino.I), 9, 10)
    board.hard_drop()

    assert board.lines_cleared == 1
    expected_row0 = np.zeros(board.width, dtype=np.int8)
    expected_row0[:3] = Tetromino.T
    expected_row0[9] = Tetromino.I
    np.testing.assert_array_equal(board.grid[0], expected_row0)
    assert board.lock_pending
    assert board.current.is_empty


def test_lines_observer_reports_totals():
    counts = []
    b = make_board(on_lines=counts.append)
    b.grid[0, :] = Tetromino.I
    b.clear_full_lines()
    b.grid[0, :] = Tetromino.I
    b.grid[1, :] = Tetromino.I
    b.clear_full_lines()
    assert counts == [1, 3]


# ── Spawn, hold and lock ─────────────────────────────────────────────────

def test_start_spawns_pair_and_leaves_board_paused():
    statuses = []
    b = make_board(on_status=statuses.append)
    b.start()
    try:
        assert b.running and b.paused
        assert not b.current.is_empty and not b.next.is_empty
        assert b.held.is_empty
        assert b.cursor == b.spawn_cursor(b.current)
        assert statuses == [STATUS_PAUSED]
        b.start()
        assert statuses == [STATUS_PAUSED]
    finally:
        b.stop()


def test_spawn_places_top_cell_on_top_row(started_board):
    top_row = max(row for _, row in started_board.occupied_cells())
    assert top_row == started_board.height - 1


def test_pause_and_resume_publish_status():
    statuses = []
    b = make_board(on_status=statuses.append)
    b.resume()
    assert statuses == []
    b.start()
    try:
        b.resume()
        b.toggle_pause()
        assert statuses == [STATUS_PAUSED, STATUS_PLAYING, STATUS_PAUSED]
    finally:
        b.stop()


def test_hold_promotes_next_then_is_exclusive(started_board):
    b = started_board
    first = b.current.kind
    upcoming = b.next.kind

    assert b.hold() is True
    assert b.held.kind == first
    assert b.current.kind == upcoming
    assert b.hold_used

    state = (b.held.copy(), b.current.copy(), b.next.copy(), b.cursor)
    assert b.hold() is False
    assert (b.held.copy(), b.current.copy(), b.next.copy(), b.cursor) == state


def test_hold_swaps_after_next_lock(started_board):
    b = started_board
    first = b.current.kind
    b.hold()
    b.hard_drop()
    assert not b.hold_used

    active = b.current.kind
    assert b.hold() is True
    assert b.held.kind == active
    assert b.current.kind == first
    assert b.current.rotation == 0
    assert b.cursor == b.spawn_cursor(b.current)


def test_lock_emits_snapshot_of_resulting_board():
    snapshots = []
    b = make_board(on_lock=snapshots.append)
    b.start()
    try:
        b.hard_drop()
        assert len(snapshots) == 1
        assert snapshots[0] == b.snapshot()
        assert any(snapshots[0].cells)
    finally:
        b.stop()


def test_soft_drop_locks_when_blocked(started_board):
    b = started_board
    assert b.try_move(Piece(Tetromino.O), 0, 1)
    assert b.soft_drop() is False
    assert b.grid[0, 0] == Tetromino.O
    assert b.grid[1, 1] == Tetromino.O
    assert not b.current.is_empty
    assert b.cursor == b.spawn_cursor(b.current)


# ── Game over ────────────────────────────────────────────────────────────

def test_blocked_spawn_ends_the_game(started_board):
    b = started_board
    b.grid[15:, :] = Tetromino.S
    events = []
    b.on_game_over = lambda: events.append("over")

    assert b.spawn_piece() is False
    assert b.game_over
    assert not b.running
    assert b.current.is_empty
    assert events == ["over"]

    grid = b.get_grid()
    b.on_tick()
    b.handle_input(Action.HARD_DROP)
    np.testing.assert_array_equal(b.grid, grid)


def test_game_over_is_announced_after_final_lock_event():
    events = []
    statuses = []
    b = make_board(
        on_lock=lambda snap: events.append("lock"),
        on_game_over=lambda: events.append("over"),
        on_status=statuses.append,
    )
    b.start()
    try:
        assert b.try_move(Piece(Tetromino.O), 0, 1)
        b.grid[10:, 2:] = Tetromino.Z
        assert b.lock_piece() == 0
        assert events == ["lock", "over"]
        assert statuses[-1] == STATUS_GAME_OVER
    finally:
        b.stop()


def test_restart_requires_pause_and_recovers_from_game_over(started_board):
    b = started_board
    b.resume()
    b.grid[0, :4] = Tetromino.L
    b.restart()
    assert b.grid[0, 0] == Tetromino.L

    b.end_game()
    assert b.game_over and b.paused
    b.restart()
    assert b.running and not b.paused and not b.game_over
    assert not b.grid.any()
    assert b.held.is_empty
    assert not b.current.is_empty
    assert b.lines_cleared == 0
    assert b._ticker is not None and not b._ticker.stopped


def test_input_is_ignored_while_paused(started_board):
    b = started_board
    before = (b.current.copy(), b.cursor)
    assert b.handle_input(Action.LEFT) is False
    assert (b.current.copy(), b.cursor) == before


def test_handle_input_moves_and_reports_sounds():
    sounds = []
    b = make_board(on_sound=sounds.append)
    b.start()
    b.resume()
    try:
        x, y = b.cursor
        assert b.handle_input(Action.LEFT)
        assert b.cursor == (x - 1, y)
        b.handle_input(Action.ROTATE)
        b.handle_input(Action.HARD_DROP)
        assert sounds == ["move", "rotate", "drop"]
    finally:
        b.stop()


# ── Snapshots ────────────────────────────────────────────────────────────

def test_snapshot_round_trip_to_mirror(started_board):
    b = started_board
    b.hold()
    b.move_left()
    b.hard_drop()
    b.rotate()
    snap = b.snapshot()

    mirror = Board(10, 20, interactive=False)
    mirror.apply_snapshot(snap)
    assert mirror.held == b.held
    assert mirror.next == b.next
    assert mirror.current == b.current
    np.testing.assert_array_equal(mirror.grid, b.grid)
    assert mirror.snapshot() == snap


def test_malformed_snapshot_leaves_mirror_untouched(started_board):
    mirror = Board(10, 20, interactive=False)
    mirror.apply_snapshot(started_board.snapshot())
    before = mirror.snapshot()

    bad = Board(4, 4, interactive=False).snapshot()
    try:
        mirror.apply_snapshot(bad)
    except ValueError:
        pass
    else:
        raise AssertionError("expected ValueError")
    assert mirror.snapshot() == before


def test_mirror_restart_clears_everything(started_board):
    mirror = Board(10, 20, interactive=False)
    started_board.hard_drop()
    mirror.apply_snapshot(started_board.snapshot())
    mirror.restart()
    assert not mirror.grid.any()
    assert mirror.current.is_empty and mirror.next.is_empty and mirror.held.is_empty


def test_mirror_never_starts():
    mirror = Board(10, 20, interactive=False)
    mirror.start()
    assert not mirror.running
    assert mirror._ticker is None


# ── Concurrency ──────────────────────────────────────────────────────────

def test_ticks_and_input_interleave_safely():
    b = make_board(interval=0.005, initial_delay=0.005)
    b.start()
    b.resume()
    errors = []

    def press_keys():
        actions = [Action.LEFT, Action.RIGHT, Action.ROTATE, Action.HOLD, Action.SOFT_DROP]
        deadline = time.monotonic() + 0.4
        i = 0
        try:
            while time.monotonic() < deadline:
                b.handle_input(actions[i % len(actions)])
                i += 1
        except Exception as e:  # noqa: BLE001
            errors.append(e)

    worker = threading.Thread(target=press_keys)
    worker.start()
    worker.join()
    b.stop()

    assert errors == []
    with b.lock:
        assert not np.all(b.grid != 0, axis=1).any()
        assert b.grid.min() >= 0 and b.grid.max() <= max(Tetromino)


# ── Lock delay ───────────────────────────────────────────────────────────

def _settling_board(**kwargs):
    b = make_board(lock_delay=0.3, **kwargs)
    b.start()
    b.resume()
    return b


def _tick_in_background(b):
    worker = threading.Thread(target=b.on_tick)
    worker.start()
    time.sleep(0.1)
    return worker


def test_nudge_during_settle_avoids_the_lock():
    locks = []
    b = _settling_board(on_lock=locks.append)
    try:
        b.grid[0:2, 0:2] = Tetromino.Z
        assert b.try_move(Piece(Tetromino.O), 0, 3)

        worker = _tick_in_background(b)
        assert b.move_right() and b.move_right()
        worker.join(2.0)

        assert locks == []
        assert b.current == Piece(Tetromino.O)
        assert b.cursor == (2, 2)
        assert not b.grid[2:].any()
    finally:
        b.stop()


def test_settle_ends_at_rest_when_not_nudged():
    locks = []
    b = _settling_board(on_lock=locks.append)
    try:
        assert b.try_move(Piece(Tetromino.O), 0, 1)
        worker = _tick_in_background(b)
        worker.join(2.0)
        assert len(locks) == 1
        assert b.grid[0, 0] == Tetromino.O and b.grid[1, 1] == Tetromino.O
    finally:
        b.stop()


def test_settle_leaves_a_freshly_spawned_piece_alone():
    b = _settling_board()
    try:
        assert b.try_move(Piece(Tetromino.O), 0, 1)
        worker = _tick_in_background(b)
        b.hard_drop()
        spawned = (b.current.copy(), b.cursor)
        worker.join(2.0)

        assert (b.current.copy(), b.cursor) == spawned
        assert b.cursor == b.spawn_cursor(b.current)
        assert int(np.count_nonzero(b.grid)) == 4
    finally:
        b.stop()


def test_settle_leaves_a_held_swap_alone():
    b = _settling_board()
    try:
        assert b.try_move(Piece(Tetromino.O), 0, 1)
        worker = _tick_in_background(b)
        assert b.hold()
        swapped_in = (b.current.copy(), b.cursor)
        worker.join(2.0)

        assert (b.current.copy(), b.cursor) == swapped_in
        assert b.held.kind == Tetromino.O
        assert not b.grid.any()
    finally:
        b.stop()
