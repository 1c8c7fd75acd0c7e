from __future__ import annotations

# =============================================================================
# SPATIAL TYPES
# =============================================================================

type TileCoord = int  # Always integer cell position

# World coordinates - absolute cell positions on the region grid
type WorldTilePos = tuple[TileCoord, TileCoord]  # Example: (5, 3) = column 5, row 3

# Dimensions
type WorldDimensions = tuple[int, int]  # Example: (4200, 1200) = width x height

# Horizontal placement slot: (center column, width in cells)
type Slot = tuple[TileCoord, int]

# =============================================================================
# REGION TYPES
# =============================================================================

# Small unsigned identifier stored in each grid cell. 0 is reserved.
type RegionId = int

# Overlay color used by presentation layers
type ColorRGBA = tuple[int, int, int, int]  # Example: (34, 139, 34, 255)

# =============================================================================
# GENERATION TYPES
# =============================================================================

# Master seed for a generation run
type RandomSeed = int

# Position of a sub-step in the flattened schedule of all stages
type FlatStepIndex = int
