from __future__ import annotations

import random
import time

import pytest

from tetris2p.game.board import Board


def make_board(**kwargs) -> Board:
    """Interactive board whose ticker never fires during a test."""
    kwargs.setdefault("interval", 60.0)
    kwargs.setdefault("initial_delay", 60.0)
    kwargs.setdefault("rng", random.Random(1234))
    return Board(10, 20, **kwargs)


def wait_until(predicate, timeout: float = 2.0, step: float = 0.01) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(step)
    return predicate()


@pytest.fixture
def board():
    b = make_board()
    yield b
    b.stop()


@pytest.fixture
def started_board():
    b = make_board()
    b.start()
    yield b
    b.stop()
