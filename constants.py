# constants.py
"""
Application-level constants.

These values are static and do not change between runs. They are
fundamental to the belief engine and its presentation, such as the size
bound of the hypothesis ensemble, numerical tolerances, the integer codes
of the world files, or rendering properties.
"""

# --- Belief engine ---
# Upper bound on the number of hypotheses kept after every shrink.
MAX_UNIVERSES = 15
# Decimal places kept when comparing fields for structural equality.
# Guards against floating noise only, not a probabilistic binning.
EQUALITY_DECIMALS = 15
# Added inside the logarithm of the entropy so that log(0) never happens.
ENTROPY_EPSILON = 1e-60
# Share of a cell's mass that moves into each reachable neighbor per step.
DIFFUSION_SHARE = 0.25
# Cardinal steps (row, col) in the order neighbors are reported.
DIRECTIONS = ((0, 1), (0, -1), (1, 0), (-1, 0))

# --- World file codes ---
EMPTY = 0
PARTICLE = 1
ROCK = 2
VISIBLE = 3
WORLD_CODES = (EMPTY, PARTICLE, ROCK, VISIBLE)

# --- History ---
# The number of snapshots the undo history keeps.
HISTORY_STEPS = 20

# --- Visualization settings ---
FPS = 30
CELL_SIZE = 48
CELL_PADDING = 2
UI_PANEL_WIDTH = 260
BACKGROUND_COLOR = (24, 24, 24) # Dark Gray
UI_BACKGROUND_ALPHA = 100

GRID_COLOR = (203, 255, 231)
PARTICLE_COLOR = (110, 125, 255)
ROCK_COLOR = (90, 50, 60)
VISIBLE_COLOR = (255, 200, 100)
# A cell is painted between these two colors by its occupancy belief.
ABSENCE_COLOR = (255, 255, 255)
PRESENCE_COLOR = (140, 40, 50)
PARTICLE_RADIUS_RATIO = 0.3
VISIBLE_BORDER_WIDTH = 4
