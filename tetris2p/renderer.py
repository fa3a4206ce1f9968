"""
Pygame renderer for a Tetris2P session.

Draws the local board and the opponent's mirror side by side, a sidebar
with the next / held previews, line count and status, and a chat log with
the input line underneath.
"""

from __future__ import annotations

from typing import Iterable

try:
    import pygame
except ImportError:
    pygame = None  # type: ignore[assignment]

from tetris2p.game.board import Board
from tetris2p.game.pieces import PIECE_COLORS, Piece


# ── Color constants ───────────────────────────────────────────────────────
BACKGROUND_COLOR = (16, 16, 32)
GRID_LINE_COLOR = (60, 60, 60)
BORDER_COLOR = (200, 200, 200)
TEXT_COLOR = (255, 255, 255)
DIM_TEXT_COLOR = (170, 170, 170)
EMPTY_CELL_COLOR = (40, 40, 40)
INPUT_BG_COLOR = (30, 30, 50)


class TetrisRenderer:
    """Pygame-based renderer for one local board and one mirror board.

    Layout (left to right): local board, sidebar, mirror board; the chat
    area spans the full width below.

    Attributes:
        local: The interactive board.
        mirror: The opponent's mirror board.
        cell_size: Pixel size of each grid cell.
        screen: Pygame display surface (created on first render).
    """

    SIDEBAR_WIDTH_CELLS: int = 6
    CHAT_LINES: int = 6

    def __init__(self, local: Board, mirror: Board, cell_size: int = 24) -> None:
        """Initialize the renderer.

        Does NOT create the Pygame window yet; that happens on the first
        call to render().

        Args:
            local: The local interactive board.
            mirror: The mirror board.
            cell_size: Size of each grid cell in pixels.
        """
        if pygame is None:
            raise ImportError("pygame is required for rendering. Install it: pip install pygame")

        self.local = local
        self.mirror = mirror
        self.cell_size = cell_size

        self.board_pixel_width = cell_size * local.width
        self.board_pixel_height = cell_size * local.height
        self.sidebar_width = cell_size * self.SIDEBAR_WIDTH_CELLS
        self.chat_height = 20 * (self.CHAT_LINES + 1) + 10
        self.window_width = 2 * self.board_pixel_width + self.sidebar_width
        self.window_height = self.board_pixel_height + self.chat_height

        self.screen: pygame.Surface | None = None
        self._clock: pygame.time.Clock | None = None
        self._font: pygame.font.Font | None = None
        self._initialized: bool = False

    def render(
        self,
        fps: int = 60,
        status: str = "",
        chat: Iterable[str] = (),
        input_text: str | None = None,
    ) -> None:
        """Draw both boards, the sidebar and the chat area.

        Args:
            fps: Target frames per second for the display clock.
            status: Status line of the local board.
            chat: Most recent chat / system lines, oldest first.
            input_text: Text being typed, or None when not typing.
        """
        if not self._initialized:
            self._init_pygame()

        self.screen.fill(BACKGROUND_COLOR)
        mirror_x = self.board_pixel_width + self.sidebar_width
        self._draw_board(self.local, 0)
        self._draw_board(self.mirror, mirror_x)
        self._draw_sidebar(status)
        self._draw_chat(list(chat), input_text)

        pygame.display.flip()
        self._clock.tick(fps)

    def _init_pygame(self) -> None:
        pygame.init()
        self.screen = pygame.display.set_mode((self.window_width, self.window_height))
        pygame.display.set_caption("Tetris2P")
        self._clock = pygame.time.Clock()
        self._font = pygame.font.SysFont("monospace", 16)
        self._initialized = True

    def _draw_cell(self, x: int, y: int, size: int, color: tuple[int, int, int]) -> None:
        pygame.draw.rect(self.screen, color, (x, y, size, size))
        darker = tuple(max(0, c - 40) for c in color)
        pygame.draw.rect(self.screen, darker, (x, y, size, size), 1)

    def _draw_board(self, board: Board, x_offset: int) -> None:
        """Draw a board's locked cells and its current piece.

        Row 0 of the grid is the bottom, so it is drawn last on screen.
        """
        with board.lock:
            grid = board.get_grid()
            piece_cells = board.occupied_cells()
            piece_color = PIECE_COLORS[board.current.kind]

        for row in range(board.height):
            screen_y = (board.height - 1 - row) * self.cell_size
            for col in range(board.width):
                x = x_offset + col * self.cell_size
                cell_value = int(grid[row, col])
                if cell_value != 0:
                    self._draw_cell(x, screen_y, self.cell_size, PIECE_COLORS[cell_value])
                else:
                    pygame.draw.rect(
                        self.screen, EMPTY_CELL_COLOR, (x, screen_y, self.cell_size, self.cell_size)
                    )
                pygame.draw.rect(
                    self.screen, GRID_LINE_COLOR, (x, screen_y, self.cell_size, self.cell_size), 1
                )

        for col, row in piece_cells:
            if 0 <= row < board.height and 0 <= col < board.width:
                self._draw_cell(
                    x_offset + col * self.cell_size,
                    (board.height - 1 - row) * self.cell_size,
                    self.cell_size,
                    piece_color,
                )

        pygame.draw.rect(
            self.screen,
            BORDER_COLOR,
            (x_offset, 0, self.board_pixel_width, self.board_pixel_height),
            2,
        )

    def _draw_sidebar(self, status: str) -> None:
        """Draw next / hold previews, line count and status text."""
        x = self.board_pixel_width + 10
        with self.local.lock:
            next_piece = self.local.next.copy()
            held_piece = self.local.held.copy()
            hold_used = self.local.hold_used
            lines = self.local.lines_cleared

        self._draw_piece_preview(next_piece, x, 10, "NEXT")
        self._draw_piece_preview(held_piece, x, 140, "HOLD (used)" if hold_used else "HOLD")
        self._draw_text("LINES", x, 280)
        self._draw_text(str(lines), x, 300)
        self._draw_text(status.strip(), x, 340, DIM_TEXT_COLOR)

    def _draw_piece_preview(self, piece: Piece, x_offset: int, y_offset: int, label: str) -> None:
        preview_cell = self.cell_size * 2 // 3
        box_size = preview_cell * 5
        self._draw_text(label, x_offset, y_offset)

        box_y = y_offset + 20
        pygame.draw.rect(self.screen, EMPTY_CELL_COLOR, (x_offset, box_y, box_size, box_size))
        pygame.draw.rect(self.screen, BORDER_COLOR, (x_offset, box_y, box_size, box_size), 1)
        if piece.is_empty:
            return

        # Pivot column in the middle of the 5x5 box; rows centered on the
        # piece's vertical extent since y offsets point up.
        center_x = x_offset + 2 * preview_cell
        span = piece.min_y() + piece.max_y()
        center_y = box_y + (box_size - preview_cell + span * preview_cell) // 2
        for dx, dy in piece.cells():
            self._draw_cell(
                center_x + dx * preview_cell,
                center_y - dy * preview_cell,
                preview_cell,
                PIECE_COLORS[piece.kind],
            )

    def _draw_chat(self, lines: list[str], input_text: str | None) -> None:
        top = self.board_pixel_height + 5
        for i, line in enumerate(lines[-self.CHAT_LINES:]):
            self._draw_text(line, 8, top + i * 20, DIM_TEXT_COLOR)

        input_y = top + self.CHAT_LINES * 20
        pygame.draw.rect(self.screen, INPUT_BG_COLOR, (0, input_y, self.window_width, 22))
        if input_text is not None:
            self._draw_text("say: " + input_text + "_", 8, input_y + 2)
        else:
            self._draw_text("[Enter] to chat or type /commands", 8, input_y + 2, DIM_TEXT_COLOR)

    def _draw_text(self, text: str, x: int, y: int, color: tuple[int, int, int] = TEXT_COLOR) -> None:
        surface = self._font.render(text, True, color)
        self.screen.blit(surface, (x, y))

    def close(self) -> None:
        """Shut down Pygame and close the window."""
        if self._initialized:
            pygame.quit()
            self._initialized = False
