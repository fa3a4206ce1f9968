"""Tetris2P: two-player networked Tetris."""
