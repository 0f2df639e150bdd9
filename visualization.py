# visualization.py
"""
Handles the visualization of the board and the observer's belief using Pygame.
"""
import logging
import pygame
import numpy as np
from constants import (
    ABSENCE_COLOR, BACKGROUND_COLOR, CELL_PADDING, CELL_SIZE, FPS, GRID_COLOR,
    PARTICLE_COLOR, PARTICLE_RADIUS_RATIO, PRESENCE_COLOR, ROCK_COLOR,
    UI_BACKGROUND_ALPHA, UI_PANEL_WIDTH, VISIBLE_BORDER_WIDTH, VISIBLE_COLOR
)
from typing import Optional, Tuple

from typing import TYPE_CHECKING
if TYPE_CHECKING:
    from memory import Memory


# --- Data Contracts ---
#
# class Visualizer:
#   - __init__(self, height: int, width: int, params: Optional[dict] = None):
#     - Inputs:
#       - height, width: int, board dimensions in cells.
#       - params: Optional dictionary of parameters shown in the side panel.
#     - Side Effects: Initializes Pygame and creates a display surface.
#
#   - draw(self, memory: "Memory") -> bool:
#     - Inputs:
#       - memory: The history; its active board and observer are drawn and
#         edited.
#     - Outputs:
#       - bool: False if the user has quit, True otherwise.
#     - Side Effects: Renders board, belief and UI, handles Pygame events,
#       and edits the active board or moves through time on user input.

EDIT_MODES = ("particle", "rock", "visible")


def belief_color(probability: float) -> Tuple[int, int, int]:
    """
    Interpolates between absence and presence color.

    The square root spreads small probabilities over more of the color range.
    """
    weight = float(np.sqrt(np.clip(probability, 0.0, 1.0)))
    return tuple(
        int(a * (1.0 - weight) + p * weight)
        for a, p in zip(ABSENCE_COLOR, PRESENCE_COLOR)
    )


class Visualizer:
    """
    Renders the board with the belief heat map and a small control panel.
    """
    def __init__(self, height: int, width: int, params: Optional[dict] = None):
        """
        Initializes Pygame and the display window.
        """
        pygame.init()
        pygame.font.init()

        self.rows = int(height)
        self.cols = int(width)
        self.grid_width = self.cols * (CELL_SIZE + CELL_PADDING) + CELL_PADDING
        self.grid_height = self.rows * (CELL_SIZE + CELL_PADDING) + CELL_PADDING
        window_height = max(self.grid_height, 360)
        self.screen = pygame.display.set_mode((self.grid_width + UI_PANEL_WIDTH, window_height))

        self.ui_panel_surface = pygame.Surface((UI_PANEL_WIDTH, window_height), pygame.SRCALPHA)
        self.ui_panel_surface.fill((40, 40, 40, UI_BACKGROUND_ALPHA))

        pygame.display.set_caption("Particles with probabilities")
        self.clock = pygame.time.Clock()

        try:
            self.font_title = pygame.font.SysFont("Segoe UI", 16, bold=True)
            self.font_main = pygame.font.SysFont("Segoe UI", 14)
            self.font_main_bold = pygame.font.SysFont("Segoe UI", 14, bold=True)
        except pygame.error:
            logging.warning("Segoe UI font not found, falling back to default sans-serif.")
            self.font_title = pygame.font.SysFont(None, 20, bold=True)
            self.font_main = pygame.font.SysFont(None, 18)
            self.font_main_bold = pygame.font.SysFont(None, 18, bold=True)

        self.mode = "particle"
        self.hovered_cell: Optional[Tuple[int, int]] = None

        # --- UI Color Palette ---
        self.text_color_title = (255, 255, 255)
        self.text_color_key = (200, 200, 200)
        self.text_color_value = (255, 255, 255)
        self.param_box_color = (60, 60, 60, 160)
        self.param_box_spacing = 4

        self.params = params if params is not None else {}

        logging.info(
            f"Visualizer initialized with Pygame display "
            f"({self.grid_width + UI_PANEL_WIDTH}x{window_height})."
        )

    def _cell_rect(self, row: int, col: int) -> pygame.Rect:
        x = CELL_PADDING + col * (CELL_SIZE + CELL_PADDING)
        y = CELL_PADDING + row * (CELL_SIZE + CELL_PADDING)
        return pygame.Rect(x, y, CELL_SIZE, CELL_SIZE)

    def _get_cell_from_pos(self, pos: Tuple[int, int]) -> Optional[Tuple[int, int]]:
        """
        Converts a screen position to board cell coordinates if over the grid.
        """
        x, y = pos
        col = (x - CELL_PADDING) // (CELL_SIZE + CELL_PADDING)
        row = (y - CELL_PADDING) // (CELL_SIZE + CELL_PADDING)
        if 0 <= row < self.rows and 0 <= col < self.cols and self._cell_rect(row, col).collidepoint(pos):
            return (int(row), int(col))
        return None

    def _draw_board(self, memory: "Memory"):
        """Paints every cell by its belief, then rocks, particles and visibility."""
        board = memory.board
        belief = memory.observer.total_field()
        particle_radius = int(CELL_SIZE * PARTICLE_RADIUS_RATIO)

        for row in range(self.rows):
            for col in range(self.cols):
                rect = self._cell_rect(row, col)
                cell = (row, col)
                if board.is_rock(cell):
                    pygame.draw.rect(self.screen, ROCK_COLOR, rect)
                    continue

                pygame.draw.rect(self.screen, belief_color(belief[row, col]), rect)

                if board.is_particle(cell):
                    pygame.draw.circle(self.screen, PARTICLE_COLOR, rect.center, particle_radius)
                    count = board.particle_count(cell)
                    if count > 1:
                        text_surf = self.font_main_bold.render(str(count), True, self.text_color_title)
                        self.screen.blit(text_surf, text_surf.get_rect(center=rect.center))

                if board.is_visible(cell):
                    pygame.draw.rect(self.screen, VISIBLE_COLOR, rect, VISIBLE_BORDER_WIDTH)

                if self.hovered_cell == cell:
                    pygame.draw.rect(self.screen, (255, 255, 0), rect, 2)

    def _draw_panel(self, memory: "Memory"):
        """Renders the status entries in a list of individual, transparent boxes."""
        observer = memory.observer
        hovered = "-"
        if self.hovered_cell is not None:
            hovered = f"{observer.probability(self.hovered_cell):.3f}"

        entries = [
            ("Mode", self.mode.title()),
            ("Universes", str(len(observer))),
            ("History", f"{len(memory.history) + memory.moment}/{len(memory.history)}"),
            ("Belief at cursor", hovered),
            ("Keys", "P/R/V mode, Right step, Left back, Esc quit"),
        ]
        for key, value in self.params.items():
            display_value = f"{value:.2f}" if isinstance(value, float) else str(value)
            entries.append((key.replace('_', ' ').title(), display_value))

        box_v_padding = 8
        line_height = self.font_main.get_linesize()
        key_value_gap = 12
        panel_x = self.grid_width + 10
        panel_width = UI_PANEL_WIDTH - 20
        current_y = 10

        key_max_width = (panel_width - key_value_gap) / 2 - box_v_padding
        value_max_width = key_max_width
        key_column_right_x = panel_x + box_v_padding + key_max_width
        value_column_left_x = key_column_right_x + key_value_gap

        for key, value in entries:
            key_surfs = self._render_text_wrapped(key, self.font_main_bold, key_max_width, self.text_color_key)
            value_surfs = self._render_text_wrapped(value, self.font_main, value_max_width, self.text_color_value)

            num_lines = max(len(key_surfs), len(value_surfs))
            box_height = num_lines * line_height + (box_v_padding * 2)

            box_rect = pygame.Rect(panel_x, current_y, panel_width, box_height)
            pygame.draw.rect(self.screen, self.param_box_color, box_rect, border_radius=6)

            text_start_y = current_y + box_v_padding
            line_y = text_start_y
            for surf in key_surfs:
                self.screen.blit(surf, surf.get_rect(topright=(key_column_right_x, line_y)))
                line_y += line_height

            line_y = text_start_y
            for surf in value_surfs:
                self.screen.blit(surf, surf.get_rect(topleft=(value_column_left_x, line_y)))
                line_y += line_height

            current_y += box_height + self.param_box_spacing

    def _render_text_wrapped(
        self, text: str, font: pygame.font.Font, max_width: int, color: tuple
    ) -> list:
        """
        Renders text, wrapping it to a new line if it exceeds max_width.
        Returns a list of rendered surfaces, one for each line.
        """
        words = text.split(' ')
        lines = []
        current_line = ""

        for word in words:
            test_line = f"{current_line} {word}".strip()
            if font.size(test_line)[0] <= max_width:
                current_line = test_line
            else:
                lines.append(current_line)
                current_line = word

        lines.append(current_line)
        return [font.render(line, True, color) for line in lines if line]

    def _apply_edit(self, memory: "Memory", cell: Tuple[int, int]):
        """Applies the active edit mode to the active board."""
        board = memory.board
        if self.mode == "rock":
            changed = board.switch_rock(cell)
        elif self.mode == "particle":
            changed = board.switch_particle(cell)
        else:
            changed = board.switch_visible(cell)
        if changed:
            memory.future_changed()
        else:
            logging.info(f"Cannot switch {self.mode} at {cell}.")

    def draw(self, memory: "Memory") -> bool:
        """
        Draws board and UI, and handles events.

        Returns:
            bool: False if the application should exit, True otherwise.
        """
        mouse_pos = pygame.mouse.get_pos()
        self.hovered_cell = self._get_cell_from_pos(mouse_pos)

        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                logging.info("Quit event received. Shutting down visualizer.")
                return False

            if event.type == pygame.KEYDOWN:
                if event.key == pygame.K_ESCAPE:
                    logging.info("ESC key pressed. Shutting down visualizer.")
                    return False
                if event.key == pygame.K_p:
                    self.mode = "particle"
                elif event.key == pygame.K_r:
                    self.mode = "rock"
                elif event.key == pygame.K_v:
                    self.mode = "visible"
                elif event.key == pygame.K_RIGHT:
                    memory.advance()
                elif event.key == pygame.K_LEFT:
                    memory.step_backward()

            if event.type == pygame.MOUSEBUTTONDOWN and event.button == 1:
                if self.hovered_cell is not None:
                    self._apply_edit(memory, self.hovered_cell)

        self.screen.fill(BACKGROUND_COLOR)
        pygame.draw.rect(self.screen, GRID_COLOR, pygame.Rect(0, 0, self.grid_width, self.grid_height))
        self._draw_board(memory)

        self.screen.blit(self.ui_panel_surface, (self.grid_width, 0))
        self._draw_panel(memory)

        pygame.display.flip()
        self.clock.tick(FPS)
        return True

    def close(self):
        """Shuts down Pygame."""
        pygame.font.quit()
        pygame.quit()
