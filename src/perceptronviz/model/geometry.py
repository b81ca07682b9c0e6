"""
Boundary Geometry & Viewport
============================
Where does the current decision line cross the visible chart area, and which
area should the chart show?

Functions:
    boundary_line: Clip w1*x + w2*y + bias = 0 to a Viewport.
    autoscale: Padded bounding box around the samples.
    zoom, pan: Pure rectangle transforms for interactive navigation.
"""
from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Optional, Sequence

from perceptronviz.model.dataset import Sample
from perceptronviz.model.weights import WeightVector
from perceptronviz.utils import is_finite

logger = logging.getLogger(__name__)

PADDING_FRACTION = 0.2
MIN_PADDING = 0.1
DEDUP_TOLERANCE = 1e-3
# Edge-hit slack and padding floor, relative to the viewport or data magnitude
EDGE_TOLERANCE = 1e-9
RELATIVE_PADDING = 1e-9


@dataclass(frozen=True)
class Point:
    """A point in the chart plane."""
    x: float
    y: float

    def is_close(self, other: Point, tolerance: float = DEDUP_TOLERANCE) -> bool:
        return abs(self.x - other.x) <= tolerance and abs(self.y - other.y) <= tolerance


@dataclass(frozen=True)
class Viewport:
    x_min: float
    x_max: float
    y_min: float
    y_max: float

    def __post_init__(self) -> None:
        if not is_finite(self.x_min, self.x_max, self.y_min, self.y_max):
            raise ValueError(f"Viewport bounds must be finite: {self}")
        if not (self.x_min < self.x_max and self.y_min < self.y_max):
            raise ValueError(f"Viewport is degenerate: {self}")

    @property
    def width(self) -> float:
        return self.x_max - self.x_min

    @property
    def height(self) -> float:
        return self.y_max - self.y_min

    @property
    def center(self) -> Point:
        return Point((self.x_min + self.x_max) / 2.0, (self.y_min + self.y_max) / 2.0)

    def contains_x(self, x: float) -> bool:
        return self.x_min <= x <= self.x_max

    def contains_y(self, y: float) -> bool:
        return self.y_min <= y <= self.y_max

    def contains(self, point: Point) -> bool:
        return self.contains_x(point.x) and self.contains_y(point.y)


def _snap(value: float, low: float, high: float, slack: float) -> Optional[float]:
    """Clamp ``value`` into [low, high] if it misses the interval by at most ``slack``."""
    if not (low - slack <= value <= high + slack):
        return None
    return min(max(value, low), high)


def boundary_line(weights: WeightVector, viewport: Viewport) -> Optional[tuple[Point, Point]]:
    """
    Clip the decision boundary to the viewport.

    Args:
        weights: Current perceptron weights.
        viewport: Visible rectangle.

    Returns:
        The two endpoints of the visible segment, or None when the weights are
        degenerate (w1 == w2 == 0) or the line misses the rectangle.

    Notes:
        Candidates are computed in a fixed order: left edge, right edge, bottom
        (y_min), top (y_max). A free coordinate that lands within
        EDGE_TOLERANCE * max(width, height) of the viewport is clamped onto it,
        so a line through a corner is not lost to rounding. Near-duplicates (a
        corner hit from two edges) are merged, and the first two survivors are
        returned.
    """
    w1, w2, bias = weights.as_tuple()

    if w1 == 0.0 and w2 == 0.0:
        return None

    slack = EDGE_TOLERANCE * max(viewport.width, viewport.height)

    if w2 == 0.0:
        # Vertical line x = -bias / w1
        x = _snap(-bias / w1, viewport.x_min, viewport.x_max, slack)
        if x is None:
            return None
        return Point(x, viewport.y_min), Point(x, viewport.y_max)

    candidates: list[Point] = []
    for x in (viewport.x_min, viewport.x_max):
        y = _snap(-(w1 * x + bias) / w2, viewport.y_min, viewport.y_max, slack)
        if y is not None:
            candidates.append(Point(x, y))

    if w1 != 0.0:
        for y in (viewport.y_min, viewport.y_max):
            x = _snap(-(w2 * y + bias) / w1, viewport.x_min, viewport.x_max, slack)
            if x is not None:
                candidates.append(Point(x, y))

    unique: list[Point] = []
    for point in candidates:
        if not any(point.is_close(seen) for seen in unique):
            unique.append(point)

    if len(unique) < 2:
        return None
    return unique[0], unique[1]


def autoscale(samples: Sequence[Sample], current: Viewport) -> Viewport:
    """
    Fit the viewport to the samples with 20% padding on each side.

    The padding never drops below 0.1, nor below RELATIVE_PADDING times the
    largest coordinate magnitude, so that samples sharing one coordinate still
    produce a non-degenerate rectangle at any scale. ``current`` is returned for
    an empty sample list, or when the padded box cannot be represented (bounds
    overflowing to infinity).
    """
    if not samples:
        return current

    xs = [s.x for s in samples]
    ys = [s.y for s in samples]
    x_min, x_max = min(xs), max(xs)
    y_min, y_max = min(ys), max(ys)

    x_pad = _padding(x_min, x_max)
    y_pad = _padding(y_min, y_max)
    try:
        return Viewport(x_min - x_pad, x_max + x_pad, y_min - y_pad, y_max + y_pad)
    except ValueError as e:
        logger.warning(f"Cannot fit the view to the data, keeping {current}: {e}")
        return current


def _padding(low: float, high: float) -> float:
    magnitude = max(abs(low), abs(high))
    return max(PADDING_FRACTION * (high - low), MIN_PADDING, RELATIVE_PADDING * magnitude)


def zoom(viewport: Viewport, scale_x: float, scale_y: float, center_x: float, center_y: float) -> Viewport:
    """
    Scale the rectangle about (center_x, center_y).

    A scale below 1 zooms in, above 1 zooms out.

    Raises:
        ValueError: on non-positive or non-finite arguments.
    """
    if not is_finite(scale_x, scale_y, center_x, center_y):
        raise ValueError("Zoom arguments must be finite.")
    if scale_x <= 0.0 or scale_y <= 0.0:
        raise ValueError(f"Zoom factors must be positive, got ({scale_x}, {scale_y}).")

    return Viewport(
        x_min=center_x - (center_x - viewport.x_min) * scale_x,
        x_max=center_x + (viewport.x_max - center_x) * scale_x,
        y_min=center_y - (center_y - viewport.y_min) * scale_y,
        y_max=center_y + (viewport.y_max - center_y) * scale_y,
    )


def pan(viewport: Viewport, dx: float, dy: float) -> Viewport:
    """Translate the rectangle by (dx, dy)."""
    if not is_finite(dx, dy):
        raise ValueError("Pan offsets must be finite.")
    return Viewport(viewport.x_min + dx, viewport.x_max + dx, viewport.y_min + dy, viewport.y_max + dy)
