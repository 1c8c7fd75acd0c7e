"""
Configuration constants.

Centralizes all magic numbers and configuration values used throughout the codebase.
Organized by functional area for easy maintenance.
"""

from biomeforge.types import ColorRGBA, RandomSeed

# =============================================================================
# GENERAL
# =============================================================================

RANDOM_SEED: RandomSeed = 20240611

# =============================================================================
# RASTERIZATION
# =============================================================================

# Clipped-area size (cells) at which fills switch to the row-parallel path.
PARALLEL_PIXEL_THRESHOLD = 50_000

# Worker pool size for row-parallel rasterization. None = derive from CPU count.
RASTER_MAX_WORKERS: int | None = None

# Minimum rows handed to a single worker. Smaller bands cost more in
# scheduling than they save.
RASTER_MIN_ROWS_PER_BAND = 8

# Startup calibration of the parallel threshold
CALIBRATION_SIZES: tuple[int, ...] = (10_000, 25_000, 50_000, 100_000, 200_000)
CALIBRATION_WARMUP_ITERS = 2
CALIBRATION_BENCH_ITERS = 5
CALIBRATION_SAFETY_MARGIN = 0.8  # Apply parallel slightly below the measured crossover

# =============================================================================
# PLACEMENT
# =============================================================================

# Sampling stride for footprint "all empty" checks
FOOTPRINT_SAMPLE_STRIDE = 2

# Scatter retry budget: (requested count + 1) * this value
PLACEMENT_ATTEMPTS_PER_REGION = 30

# Smallest step between candidate centers when fanning out true-desert slots
TRUE_DESERT_MIN_SEARCH_STEP = 4

# =============================================================================
# WORLD SIZES
# =============================================================================

CUSTOM_WORLD_SIZE_KEY = "custom"
DEFAULT_WORLD_SIZE_KEY = "small"

# key -> (width, height, description)
WORLD_SIZES: dict[str, tuple[int, int, str]] = {
    "small": (4200, 1200, "Small world"),
    "medium": (6400, 1800, "Medium world"),
    "large": (8400, 2400, "Large world"),
}

# =============================================================================
# LAYERS
# =============================================================================

# Vertical layers as percentages of world height, top to bottom.
# key -> (start_percent, end_percent, short_name, description)
DEFAULT_LAYERS: dict[str, tuple[int, int, str, str]] = {
    "space": (0, 10, "SP", "Thin air above the surface"),
    "surface": (10, 30, "SF", "Surface terrain"),
    "underground": (30, 40, "UG", "Shallow underground"),
    "cavern": (40, 85, "CV", "Deep caverns"),
    "hell": (85, 100, "HL", "Molten underworld"),
}

# =============================================================================
# REGIONS
# =============================================================================

# Reserved grid value for cells no stage has claimed yet
UNASSIGNED_REGION_ID = 0

# Region catalog: (id, key, name, overlay color)
DEFAULT_REGIONS: tuple[tuple[int, str, str, ColorRGBA], ...] = (
    (1, "space", "Space", (20, 24, 48, 255)),
    (2, "ocean", "Ocean", (30, 90, 200, 255)),
    (3, "forest", "Forest", (34, 139, 34, 255)),
    (4, "jungle", "Jungle", (20, 100, 40, 255)),
    (5, "snow", "Snow", (230, 240, 250, 255)),
    (6, "desert", "Desert", (230, 200, 110, 255)),
    (7, "desert_true", "True Desert", (200, 160, 70, 255)),
    (8, "crimson", "Crimson", (170, 30, 40, 255)),
    (9, "hell", "Hell", (90, 20, 10, 255)),
    (10, "stone", "Stone", (110, 110, 110, 255)),
)

# Fallback overlay color for ids missing from the catalog
UNKNOWN_REGION_COLOR: ColorRGBA = (128, 128, 128, 255)

# =============================================================================
# SNAPSHOTS
# =============================================================================

SNAPSHOT_VERSION = 1
SNAPSHOT_SUFFIX = ".lwd"
