import random

from tetris2p.game.pieces import PLAYABLE_KINDS, Piece, Tetromino, random_kind, rotation_count


def test_empty_piece_has_no_cells():
    piece = Piece()
    assert piece.is_empty
    assert piece.cells() == ()
    assert piece.rotated().cells() == ()


def test_playable_kinds_have_four_distinct_cells_in_every_rotation():
    for kind in PLAYABLE_KINDS:
        piece = Piece(kind)
        for _ in range(rotation_count(kind)):
            assert len(set(piece.cells())) == 4
            piece = piece.rotated()


def test_square_has_single_rotation():
    assert rotation_count(Tetromino.O) == 1
    square = Piece(Tetromino.O)
    assert square.rotated() == square


def test_four_rotations_return_to_spawn_orientation():
    for kind in PLAYABLE_KINDS:
        piece = Piece(kind)
        rotated = piece
        for _ in range(4):
            rotated = rotated.rotated()
        assert rotated == piece


def test_rotated_returns_new_piece_and_keeps_original():
    piece = Piece(Tetromino.I)
    candidate = piece.rotated()
    assert candidate is not piece
    assert piece.rotation == 0
    assert candidate.rotation == 1
    assert sorted(candidate.cells()) == [(-2, 0), (-1, 0), (0, 0), (1, 0)]


def test_set_kind_resets_rotation():
    piece = Piece(Tetromino.T, rotation=3)
    piece.set_kind(Tetromino.L)
    assert piece.kind == Tetromino.L
    assert piece.rotation == 0


def test_assign_copies_into_same_slot():
    slot = Piece()
    slot_id = id(slot)
    slot.assign(Piece(Tetromino.S, rotation=2))
    assert id(slot) == slot_id
    assert slot == Piece(Tetromino.S, rotation=2)


def test_min_and_max_y():
    piece = Piece(Tetromino.I)
    assert piece.min_y() == -1
    assert piece.max_y() == 2


def test_random_kind_never_empty_and_covers_all_kinds():
    rng = random.Random(7)
    drawn = {random_kind(rng) for _ in range(500)}
    assert Tetromino.EMPTY not in drawn
    assert drawn == set(PLAYABLE_KINDS)
