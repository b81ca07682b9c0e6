"""
Configuration & Defaults
========================
This module serves as the central registry for global constants.

Why is this file needed?
------------------------
1. Single source: the engine, the store and the command-line runner all read
   their defaults and allowed ranges from here.
2. Validation: TrainingConfig knows how to bring user supplied values back into
   the ranges offered by the training controls.

Exports:
    TrainingConfig: learning rate, epoch limit and pause between timed steps.
    DEFAULT_WEIGHTS, DEFAULT_VIEWPORT, DEFAULT_PRESET
"""
from __future__ import annotations

from dataclasses import dataclass, replace

from perceptronviz.utils import clamp

DEFAULT_LEARNING_RATE: float = 0.1
LEARNING_RATE_RANGE: tuple[float, float] = (0.01, 1.0)

DEFAULT_MAX_EPOCHS: int = 100
MAX_EPOCHS_RANGE: tuple[int, int] = (1, 500)

# Seconds between two steps of a timed run
DEFAULT_PAUSE_DURATION: float = 0.5
PAUSE_DURATION_RANGE: tuple[float, float] = (0.0, 2.0)

# (w1, w2, bias) before any dataset is loaded
DEFAULT_WEIGHTS: tuple[float, float, float] = (1.0, 1.0, 0.0)

# (x_min, x_max, y_min, y_max) shown while the dataset is empty
DEFAULT_VIEWPORT: tuple[float, float, float, float] = (-1.0, 2.0, -1.0, 2.0)

DEFAULT_PRESET: str = "AND Gate"


@dataclass(frozen=True)
class TrainingConfig:
    learning_rate: float = DEFAULT_LEARNING_RATE
    max_epochs: int = DEFAULT_MAX_EPOCHS
    pause_duration: float = DEFAULT_PAUSE_DURATION

    def clamped(self) -> TrainingConfig:
        """Return a copy with every value inside its allowed range."""
        return replace(
            self,
            learning_rate=clamp(self.learning_rate, LEARNING_RATE_RANGE),
            max_epochs=int(clamp(int(self.max_epochs), MAX_EPOCHS_RANGE)),
            pause_duration=clamp(self.pause_duration, PAUSE_DURATION_RANGE),
        )
