"""
Weight Vector & Centroid Seeding
================================
WeightVector is the read-only snapshot of the perceptron parameters.
initialize_weights() seeds a separating line halfway between the class means so
that a visualized training run starts close to a solution.
"""
from __future__ import annotations

from dataclasses import dataclass
import logging
import math

import numpy as np

from perceptronviz.model.dataset import LabeledDataset
from perceptronviz.utils import is_finite

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WeightVector:
    w1: float
    w2: float
    bias: float

    def activation(self, x: float, y: float) -> float:
        return self.w1 * x + self.w2 * y + self.bias

    def predict(self, x: float, y: float) -> int:
        """Step function: +1 on the boundary or above it, -1 below."""
        return 1 if self.activation(x, y) >= 0 else -1

    @property
    def is_finite(self) -> bool:
        return is_finite(self.w1, self.w2, self.bias)

    def as_tuple(self) -> tuple[float, float, float]:
        return self.w1, self.w2, self.bias


def initialize_weights(dataset: LabeledDataset, current: WeightVector) -> WeightVector:
    """
    Place the decision boundary equidistant between the two class centroids.

    Args:
        dataset: Parsed training data.
        current: Weights to fall back to.

    Returns:
        Unit normal (w1, w2) pointing from the negative to the positive centroid
        and the bias that puts the midpoint on the line. ``current`` is returned
        unchanged if a class is empty or the centroids coincide.
    """
    points, labels = dataset.as_arrays()
    positive = points[labels == 1]
    negative = points[labels == -1]
    if len(positive) == 0 or len(negative) == 0:
        logger.debug("Centroid seeding skipped: one class has no samples.")
        return current

    c_pos = positive.mean(axis=0)
    c_neg = negative.mean(axis=0)
    direction = c_pos - c_neg
    norm = float(np.hypot(direction[0], direction[1]))
    if norm == 0.0 or not math.isfinite(norm):
        logger.debug("Centroid seeding skipped: class centroids coincide.")
        return current

    w1, w2 = (direction / norm).tolist()
    mid_x, mid_y = ((c_pos + c_neg) / 2.0).tolist()
    bias = -(w1 * mid_x + w2 * mid_y)
    return WeightVector(w1=w1, w2=w2, bias=bias)
