"""
Interactive two-player mode.

Builds the local and mirror boards, the TetrisClient and the renderer from
the config dict, then runs the pygame event loop. Board mutations happen
on this thread (keyboard) and on the ticker thread (descent); the board
lock serializes them.
"""

from __future__ import annotations

import collections
import random
from typing import Any

try:
    import pygame
except ImportError:
    pygame = None  # type: ignore[assignment]

from tetris2p.game.board import Action, Board
from tetris2p.net.client import DEFAULT_HOST, DEFAULT_PORT, TetrisClient
from tetris2p.renderer import TetrisRenderer


# ── Keyboard mapping ─────────────────────────────────────────────────────
# Arrows or WASD to move / rotate, Space for hard drop, Shift or H to hold
KEY_MAP: dict[int, Action] = {}
if pygame is not None:
    KEY_MAP = {
        pygame.K_UP: Action.ROTATE,
        pygame.K_w: Action.ROTATE,
        pygame.K_LEFT: Action.LEFT,
        pygame.K_a: Action.LEFT,
        pygame.K_RIGHT: Action.RIGHT,
        pygame.K_d: Action.RIGHT,
        pygame.K_DOWN: Action.SOFT_DROP,
        pygame.K_s: Action.SOFT_DROP,
        pygame.K_SPACE: Action.HARD_DROP,
        pygame.K_LSHIFT: Action.HOLD,
        pygame.K_RSHIFT: Action.HOLD,
        pygame.K_h: Action.HOLD,
    }


def build_boards(config: dict[str, Any]) -> tuple[Board, Board]:
    """Create the local (interactive) and mirror boards from config.

    Args:
        config: Config dict loaded from settings.yaml.

    Returns:
        (local_board, mirror_board)
    """
    width = config.get("board_width", 10)
    height = config.get("board_height", 20)
    seed = config.get("seed")
    local = Board(
        width,
        height,
        interval=config.get("tick_interval_ms", 600) / 1000.0,
        initial_delay=config.get("initial_delay_ms", 700) / 1000.0,
        lock_delay=config.get("lock_delay_ms", 0) / 1000.0,
        rng=random.Random(seed),
    )
    mirror = Board(width, height, interactive=False)
    return local, mirror


class SoundPlayer:
    """Plays short effects for board sound events; silent when muted or
    when no sound files are configured."""

    def __init__(self, paths: dict[str, str]) -> None:
        self.enabled = True
        self._sounds: dict[str, Any] = {}
        try:
            pygame.mixer.init()
        except pygame.error as e:
            print(f"[Client] audio disabled: {e}", flush=True)
            return
        for event, path in paths.items():
            try:
                self._sounds[event] = pygame.mixer.Sound(path)
            except (pygame.error, FileNotFoundError) as e:
                print(f"[Client] could not load sound {path}: {e}", flush=True)

    def play(self, event: str) -> None:
        sound = self._sounds.get(event)
        if self.enabled and sound is not None:
            sound.play()


def play(config: dict[str, Any]) -> None:
    """Run the game window until the player quits.

    Controls:
      - Left/Right or A/D: move piece
      - Up or W: rotate
      - Down or S: move down one row
      - Space: hard drop
      - Shift or H: hold
      - P: pause / resume, R: restart (while paused), M: mute, Q: quit
      - Enter: type a chat line or a /command

    Args:
        config: Config dict loaded from settings.yaml.
    """
    if pygame is None:
        raise ImportError("pygame is required for play mode. Install it: pip install pygame")

    local, mirror = build_boards(config)
    chat: collections.deque[str] = collections.deque(maxlen=50)
    status = {"text": ""}
    state = {"running": True}

    def stop_running() -> None:
        state["running"] = False

    local.on_status = lambda text: status.__setitem__("text", text)
    client = TetrisClient(
        local,
        mirror,
        host=config.get("host", DEFAULT_HOST),
        port=config.get("port", DEFAULT_PORT),
        display=chat.append,
        on_quit=stop_running,
    )

    renderer = TetrisRenderer(local, mirror, cell_size=config.get("cell_size", 24))
    fps = config.get("fps", 60)
    # pygame must be initialized before the mixer and event queue are used
    renderer.render(fps)
    sounds = SoundPlayer(config.get("sounds", {}) or {})
    local.on_sound = sounds.play
    local.start()
    chat.append("Press P to play. Type /start to host or /connect to join.")

    draft: str | None = None
    while state["running"]:
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                client.quit()
                break
            if event.type != pygame.KEYDOWN:
                continue

            if draft is not None:
                if event.key == pygame.K_RETURN:
                    line, draft = draft, None
                    client.handle_message_from_ui(line)
                elif event.key == pygame.K_ESCAPE:
                    draft = None
                elif event.key == pygame.K_BACKSPACE:
                    draft = draft[:-1]
                elif event.unicode and event.unicode.isprintable():
                    draft += event.unicode
                continue

            if event.key == pygame.K_RETURN:
                draft = ""
            elif event.key == pygame.K_q:
                client.quit()
                break
            elif event.key == pygame.K_p:
                local.toggle_pause()
            elif event.key == pygame.K_r:
                local.restart()
            elif event.key == pygame.K_m:
                sounds.enabled = not sounds.enabled
            elif event.key in KEY_MAP:
                local.handle_input(KEY_MAP[event.key])

        if not state["running"]:
            break
        renderer.render(fps, status=status["text"], chat=list(chat), input_text=draft)

    renderer.close()
