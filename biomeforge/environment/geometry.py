"""Composable 2D shapes over the integer cell lattice.

Shapes answer one question: is cell (x, y) inside? Every shape also reports
an axis-aligned bounding box so rasterization only has to visit a small
window of the grid.

Membership is computed with numpy broadcasting. `Shape.mask(xs, ys)` takes
a row vector of x coordinates and a column vector of y coordinates and
returns a boolean block; `contains(x, y)` is the scalar case of the same
computation, so the two can never disagree.

Shapes combine with `union`, `intersect` and `subtract` (or the `|`, `&`
and `-` operators):

    band = Rect(0, 120, 4200, 1020)
    jungle = Ellipse(900.0, 600.0, 252.0, 600.0).intersect(band)
    jungle.contains(900, 500)   # True

Shapes are immutable and safe to evaluate from several threads at once.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

import numpy as np

if TYPE_CHECKING:
    from biomeforge.types import ColorRGBA


# =============================================================================
# BOUNDING BOX
# =============================================================================


@dataclass(frozen=True)
class BoundingBox:
    """Axis-aligned integer box, half-open on the max side.

    Cells with x_min <= x < x_max and y_min <= y < y_max are inside.
    """

    x_min: int
    y_min: int
    x_max: int
    y_max: int

    @property
    def width(self) -> int:
        return max(self.x_max - self.x_min, 0)

    @property
    def height(self) -> int:
        return max(self.y_max - self.y_min, 0)

    @property
    def area(self) -> int:
        return self.width * self.height

    def union(self, other: BoundingBox) -> BoundingBox:
        """Smallest box covering both boxes."""
        return BoundingBox(
            min(self.x_min, other.x_min),
            min(self.y_min, other.y_min),
            max(self.x_max, other.x_max),
            max(self.y_max, other.y_max),
        )

    def intersect(self, other: BoundingBox) -> BoundingBox:
        """Overlap of both boxes. May be empty."""
        return BoundingBox(
            max(self.x_min, other.x_min),
            max(self.y_min, other.y_min),
            min(self.x_max, other.x_max),
            min(self.y_max, other.y_max),
        )

    def clip(self, width: int, height: int) -> BoundingBox:
        """Clip the box to a grid of the given dimensions."""
        return self.intersect(BoundingBox(0, 0, width, height))

    def is_empty(self) -> bool:
        return self.x_min >= self.x_max or self.y_min >= self.y_max


# =============================================================================
# SHAPE PARAMETERS AND RECORDS
# =============================================================================


class ShapeKind(Enum):
    RECT = "rect"
    ELLIPSE = "ellipse"
    TRAPEZOID = "trapezoid"
    COLUMN = "column"
    COMPOSITE = "composite"


@dataclass(frozen=True)
class ShapeParams:
    """Parameters that describe (and for primitives, rebuild) a shape.

    Attributes:
        kind: Which shape family the values belong to.
        values: Named numeric parameters, e.g. {"cx": 10.0, "rx": 4.0, ...}.
        description: Free text for composite shapes, which cannot be rebuilt.
    """

    kind: ShapeKind
    values: dict[str, float] = field(default_factory=dict)
    description: str = ""

    def math_description(self) -> str:
        """Human-readable membership formula."""
        v = self.values
        match self.kind:
            case ShapeKind.RECT:
                return (
                    f"x∈[{v['x0']:.0f},{v['x1']:.0f}), "
                    f"y∈[{v['y0']:.0f},{v['y1']:.0f})"
                )
            case ShapeKind.ELLIPSE:
                return (
                    f"(x-{v['cx']:.0f})²/{v['rx']:.0f}² + "
                    f"(y-{v['cy']:.0f})²/{v['ry']:.0f}² ≤ 1"
                )
            case ShapeKind.TRAPEZOID:
                return (
                    f"y∈[{v['y_top']:.0f},{v['y_bot']:.0f}), "
                    f"top [{v['top_x0']:.0f},{v['top_x1']:.0f}), "
                    f"bottom [{v['bot_x0']:.0f},{v['bot_x1']:.0f})"
                )
            case ShapeKind.COLUMN:
                return (
                    f"x={v['x']:.0f}, y∈[{v['y_start']:.0f},{v['y_end']:.0f})"
                )
            case _:
                return self.description

    def to_shape(self) -> Shape:
        """Rebuild the primitive shape these parameters describe.

        Raises:
            ValueError: If the parameters describe a composite shape.
        """
        v = self.values
        match self.kind:
            case ShapeKind.RECT:
                return Rect(int(v["x0"]), int(v["y0"]), int(v["x1"]), int(v["y1"]))
            case ShapeKind.ELLIPSE:
                return Ellipse(v["cx"], v["cy"], v["rx"], v["ry"])
            case ShapeKind.TRAPEZOID:
                return Trapezoid(
                    int(v["y_top"]),
                    int(v["y_bot"]),
                    v["top_x0"],
                    v["top_x1"],
                    v["bot_x0"],
                    v["bot_x1"],
                )
            case ShapeKind.COLUMN:
                return Column(int(v["x"]), int(v["y_start"]), int(v["y_end"]))
            case _:
                raise ValueError(
                    f"Composite shape cannot be rebuilt: {self.description}"
                )


@dataclass(frozen=True)
class ShapeRecord:
    """One fill operation, kept for inspection and preview tooling.

    Attributes:
        label: Human-readable label, e.g. "left ocean" or "desert surface #2".
        bbox: Bounding box of the filled shape (unclipped).
        color: Preview color of the region that was written.
        params: Parameters of the shape that was filled.
    """

    label: str
    bbox: BoundingBox
    color: ColorRGBA
    params: ShapeParams


# =============================================================================
# SHAPE BASE CLASS
# =============================================================================


class Shape(ABC):
    """Abstract base class for cell-membership shapes."""

    @abstractmethod
    def mask(self, xs: np.ndarray, ys: np.ndarray) -> np.ndarray:
        """Evaluate membership for a block of cells.

        Args:
            xs: Integer x coordinates, typically shape (1, n).
            ys: Integer y coordinates, typically shape (m, 1).

        Returns:
            Boolean array of the broadcast shape of xs and ys.
        """
        raise NotImplementedError

    @abstractmethod
    def bounding_box(self) -> BoundingBox:
        """Axis-aligned box that bounds which cells fills visit.

        Boxes are half-open. They contain every member cell except, for
        an ellipse whose right or bottom extent is an integer, the cells on
        that extreme column or row.
        """
        raise NotImplementedError

    def params(self) -> ShapeParams:
        """Parameters describing this shape."""
        return ShapeParams(ShapeKind.COMPOSITE, description=self.describe())

    def describe(self) -> str:
        """Short description used for records of composite shapes."""
        return type(self).__name__

    def contains(self, x: int, y: int) -> bool:
        """Return True if cell (x, y) lies inside the shape."""
        return bool(self.mask(np.asarray(x), np.asarray(y)))

    def union(self, other: Shape) -> Union:
        return Union(self, other)

    def intersect(self, other: Shape) -> Intersect:
        return Intersect(self, other)

    def subtract(self, other: Shape) -> Subtract:
        return Subtract(self, other)

    def __or__(self, other: Shape) -> Union:
        return Union(self, other)

    def __and__(self, other: Shape) -> Intersect:
        return Intersect(self, other)

    def __sub__(self, other: Shape) -> Subtract:
        return Subtract(self, other)


# =============================================================================
# PRIMITIVES
# =============================================================================


@dataclass(frozen=True)
class Rect(Shape):
    """Axis-aligned rectangle x0 <= x < x1, y0 <= y < y1.

    Swapped corners are normalized on construction.
    """

    x0: int
    y0: int
    x1: int
    y1: int

    def __post_init__(self) -> None:
        if self.x0 > self.x1:
            x0, x1 = self.x1, self.x0
            object.__setattr__(self, "x0", x0)
            object.__setattr__(self, "x1", x1)
        if self.y0 > self.y1:
            y0, y1 = self.y1, self.y0
            object.__setattr__(self, "y0", y0)
            object.__setattr__(self, "y1", y1)

    @classmethod
    def from_center(cls, cx: int, y0: int, width: int, y1: int) -> Rect:
        """Build a rectangle of the given width centered on column cx."""
        half = width // 2
        return cls(cx - half, y0, cx - half + width, y1)

    def mask(self, xs: np.ndarray, ys: np.ndarray) -> np.ndarray:
        return (xs >= self.x0) & (xs < self.x1) & (ys >= self.y0) & (ys < self.y1)

    def bounding_box(self) -> BoundingBox:
        return BoundingBox(self.x0, self.y0, self.x1, self.y1)

    def params(self) -> ShapeParams:
        return ShapeParams(
            ShapeKind.RECT,
            {"x0": self.x0, "y0": self.y0, "x1": self.x1, "y1": self.y1},
        )

    def describe(self) -> str:
        return f"Rect[{self.x0},{self.x1})x[{self.y0},{self.y1})"


@dataclass(frozen=True)
class Ellipse(Shape):
    """Ellipse (x-cx)²/rx² + (y-cy)²/ry² <= 1.

    Radii are stored as absolute values. A zero radius contains nothing.
    """

    cx: float
    cy: float
    rx: float
    ry: float

    def __post_init__(self) -> None:
        object.__setattr__(self, "rx", abs(self.rx))
        object.__setattr__(self, "ry", abs(self.ry))

    def mask(self, xs: np.ndarray, ys: np.ndarray) -> np.ndarray:
        if self.rx <= 0.0 or self.ry <= 0.0:
            return np.zeros(np.broadcast_shapes(np.shape(xs), np.shape(ys)), dtype=bool)
        dx = (xs - self.cx) / self.rx
        dy = (ys - self.cy) / self.ry
        return dx * dx + dy * dy <= 1.0

    def bounding_box(self) -> BoundingBox:
        # Fills skip the extreme column when cx + rx is an integer, since the
        # exclusive bound then equals it. Same for cy + ry.
        return BoundingBox(
            math.floor(self.cx - self.rx),
            math.floor(self.cy - self.ry),
            math.ceil(self.cx + self.rx),
            math.ceil(self.cy + self.ry),
        )

    def params(self) -> ShapeParams:
        return ShapeParams(
            ShapeKind.ELLIPSE,
            {"cx": self.cx, "cy": self.cy, "rx": self.rx, "ry": self.ry},
        )

    def describe(self) -> str:
        return f"Ellipse({self.cx:.0f},{self.cy:.0f} r={self.rx:.0f}x{self.ry:.0f})"


@dataclass(frozen=True)
class Trapezoid(Shape):
    """Horizontal trapezoid spanning rows y_top <= y < y_bot.

    The left and right edges are linearly interpolated from the top row
    (top_x0, top_x1) to the bottom row (bot_x0, bot_x1). A row contains
    left <= x < right.
    """

    y_top: int
    y_bot: int
    top_x0: float
    top_x1: float
    bot_x0: float
    bot_x1: float

    @classmethod
    def from_center(
        cls,
        cx: float,
        y_top: int,
        y_bot: int,
        top_half_width: float,
        bottom_half_width: float,
    ) -> Trapezoid:
        """Build a trapezoid symmetric about column cx."""
        return cls(
            y_top,
            y_bot,
            cx - top_half_width,
            cx + top_half_width,
            cx - bottom_half_width,
            cx + bottom_half_width,
        )

    def mask(self, xs: np.ndarray, ys: np.ndarray) -> np.ndarray:
        if self.y_top >= self.y_bot:
            return np.zeros(np.broadcast_shapes(np.shape(xs), np.shape(ys)), dtype=bool)
        rows_inside = (ys >= self.y_top) & (ys < self.y_bot)
        t = (ys - self.y_top) / (self.y_bot - self.y_top)
        left = self.top_x0 + (self.bot_x0 - self.top_x0) * t
        right = self.top_x1 + (self.bot_x1 - self.top_x1) * t
        return rows_inside & (xs >= left) & (xs < right)

    def bounding_box(self) -> BoundingBox:
        return BoundingBox(
            math.floor(min(self.top_x0, self.bot_x0)),
            self.y_top,
            math.ceil(max(self.top_x1, self.bot_x1)),
            self.y_bot,
        )

    def params(self) -> ShapeParams:
        return ShapeParams(
            ShapeKind.TRAPEZOID,
            {
                "y_top": self.y_top,
                "y_bot": self.y_bot,
                "top_x0": self.top_x0,
                "top_x1": self.top_x1,
                "bot_x0": self.bot_x0,
                "bot_x1": self.bot_x1,
            },
        )


@dataclass(frozen=True)
class Column(Shape):
    """Single-cell-wide vertical segment x, y_start <= y < y_end."""

    x: int
    y_start: int
    y_end: int

    def mask(self, xs: np.ndarray, ys: np.ndarray) -> np.ndarray:
        return (xs == self.x) & (ys >= self.y_start) & (ys < self.y_end)

    def bounding_box(self) -> BoundingBox:
        return BoundingBox(self.x, self.y_start, self.x + 1, self.y_end)

    def params(self) -> ShapeParams:
        return ShapeParams(
            ShapeKind.COLUMN,
            {"x": self.x, "y_start": self.y_start, "y_end": self.y_end},
        )


# =============================================================================
# COMBINATORS
# =============================================================================


@dataclass(frozen=True)
class Union(Shape):
    """Cells in either operand."""

    a: Shape
    b: Shape

    def mask(self, xs: np.ndarray, ys: np.ndarray) -> np.ndarray:
        return self.a.mask(xs, ys) | self.b.mask(xs, ys)

    def bounding_box(self) -> BoundingBox:
        return self.a.bounding_box().union(self.b.bounding_box())

    def describe(self) -> str:
        return f"({self.a.describe()} ∪ {self.b.describe()})"


@dataclass(frozen=True)
class Intersect(Shape):
    """Cells in both operands."""

    a: Shape
    b: Shape

    def mask(self, xs: np.ndarray, ys: np.ndarray) -> np.ndarray:
        return self.a.mask(xs, ys) & self.b.mask(xs, ys)

    def bounding_box(self) -> BoundingBox:
        return self.a.bounding_box().intersect(self.b.bounding_box())

    def describe(self) -> str:
        return f"({self.a.describe()} ∩ {self.b.describe()})"


@dataclass(frozen=True)
class Subtract(Shape):
    """Cells in the first operand but not the second.

    The bounding box is the first operand's box.
    """

    a: Shape
    b: Shape

    def mask(self, xs: np.ndarray, ys: np.ndarray) -> np.ndarray:
        return self.a.mask(xs, ys) & ~self.b.mask(xs, ys)

    def bounding_box(self) -> BoundingBox:
        return self.a.bounding_box()

    def describe(self) -> str:
        return f"({self.a.describe()} − {self.b.describe()})"
