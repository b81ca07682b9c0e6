"""
Session Store
=============
The single object the rendering layer talks to.

Why is this file needed?
------------------------
1. Facade: it wires the Ingestor, the Training Engine and the viewport helpers
   into the query/command API used by the chart, the data editor and the
   training controls.
2. Notifications: engine events are re-emitted as Qt signals, and every change
   also emits an immutable SessionSnapshot, so views never hold references to
   mutable state.
3. Boundary: commands return an Outcome. Invalid input is logged and reported,
   never raised to the caller.
"""
from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Optional

import numpy as np
from PySide6.QtCore import QObject, Signal

from perceptronviz.config import DEFAULT_VIEWPORT, TrainingConfig
from perceptronviz.controller.scheduler import QtScheduler
from perceptronviz.model import explain
from perceptronviz.model.dataset import LabeledDataset, Sample, parse_training_data
from perceptronviz.model.errors import Outcome, ParseWarning
from perceptronviz.model.geometry import Point, Viewport, autoscale, boundary_line, pan, zoom
from perceptronviz.model.presets import load_preset_text, preset_names
from perceptronviz.model.training import (
    EngineEvent, EpochSummary, EventKind, RunState, Scheduler, StepRecord, TrainingEngine
)
from perceptronviz.model.weights import WeightVector
from perceptronviz.utils import is_finite, safe_get

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionSnapshot:
    """Everything a renderer needs for one frame."""
    dataset: LabeledDataset
    parse_warnings: tuple[ParseWarning, ...]
    weights: WeightVector
    viewport: Viewport
    boundary: Optional[tuple[Point, Point]]
    history: tuple[StepRecord, ...]
    epoch_summaries: tuple[EpochSummary, ...]
    run_state: RunState
    epoch: int
    total_errors: int
    config: TrainingConfig
    test_input: Optional[Point]


class Store(QObject):
    """Central session state with signals for chart/controls sync."""
    dataset_changed = Signal(object)
    weights_changed = Signal(object)
    viewport_changed = Signal(object)
    config_changed = Signal(object)
    step_performed = Signal(object)
    run_state_changed = Signal(str)
    run_finished = Signal(object)
    snapshot_changed = Signal(object)

    def __init__(
        self,
        rng: Optional[np.random.Generator] = None,
        scheduler: Optional[Scheduler] = None,
        config: Optional[TrainingConfig] = None,
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        self._scheduler = scheduler if scheduler is not None else QtScheduler(self)
        self.engine = TrainingEngine(config=config, rng=rng, scheduler=self._scheduler)

        self._csv_text = ""
        self._parse_warnings: tuple[ParseWarning, ...] = ()
        self._viewport = Viewport(*DEFAULT_VIEWPORT)
        self._test_input: Optional[Point] = None
        self.engine.subscribe(self._on_engine_event)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def get_dataset(self) -> LabeledDataset:
        return self.engine.dataset

    def get_csv_text(self) -> str:
        return self._csv_text

    def get_parse_warnings(self) -> tuple[ParseWarning, ...]:
        return self._parse_warnings

    def get_weights(self) -> WeightVector:
        return self.engine.weights

    def get_viewport(self) -> Viewport:
        return self._viewport

    def get_history(self) -> tuple[StepRecord, ...]:
        return self.engine.history

    def get_epoch_summaries(self) -> tuple[EpochSummary, ...]:
        return self.engine.epoch_summaries

    def get_run_state(self) -> RunState:
        return self.engine.state

    def get_config(self) -> TrainingConfig:
        return self.engine.config

    def predict(self, x: float, y: float) -> int:
        return self.engine.predict(x, y)

    def classify(self, x: float, y: float) -> str:
        """Display name of the class predicted for (x, y)."""
        return self.engine.dataset.display_name_for(self.predict(x, y))

    def boundary_line(self) -> Optional[tuple[Point, Point]]:
        return boundary_line(self.engine.weights, self._viewport)

    def boundary_equation(self) -> str:
        dataset = self.engine.dataset
        return explain.boundary_equation(self.engine.weights, dataset.x_axis_name, dataset.y_axis_name)

    def current_sample_index(self) -> Optional[int]:
        """Row of the sample used by the latest step, for highlighting."""
        record = self.engine.last_record
        if record is None or safe_get(self.engine.dataset.samples, record.sample_index) is None:
            return None
        return record.sample_index

    def current_sample(self) -> Optional[Sample]:
        return safe_get(self.engine.dataset.samples, self.current_sample_index())

    def epoch_progress(self) -> str:
        return explain.epoch_progress(self.engine.epoch, self.engine.config.max_epochs, self.engine.state)

    def get_test_input(self) -> Optional[Point]:
        return self._test_input

    def test_input_prediction(self) -> Optional[tuple[str, str]]:
        """(display label, activation breakdown) for the test input, if one is set."""
        if self._test_input is None:
            return None
        x, y = self._test_input.x, self._test_input.y
        return self.classify(x, y), explain.activation_breakdown(self.engine.weights, x, y)

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            dataset=self.engine.dataset,
            parse_warnings=self._parse_warnings,
            weights=self.engine.weights,
            viewport=self._viewport,
            boundary=self.boundary_line(),
            history=self.engine.history,
            epoch_summaries=self.engine.epoch_summaries,
            run_state=self.engine.state,
            epoch=self.engine.epoch,
            total_errors=self.engine.total_errors,
            config=self.engine.config,
            test_input=self._test_input,
        )

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------
    def load_text(self, csv_text: str) -> Outcome:
        """Parse new training data; cancels any run and re-seeds weights and viewport."""
        result = parse_training_data(csv_text)
        self._csv_text = csv_text
        self._parse_warnings = tuple(result.warnings)
        self.engine.set_dataset(result.dataset)
        self._set_viewport(autoscale(result.dataset.samples, self._viewport))

        message = f"Parsed {len(result.dataset)} data points"
        if result.warnings:
            message += f", skipped {len(result.warnings)} rows"
        logger.info(message)
        return Outcome.success(message)

    def load_preset(self, name: str) -> Outcome:
        text = load_preset_text(name)
        if text is None:
            message = f"Unknown dataset '{name}'. Available: {', '.join(preset_names())}"
            logger.warning(message)
            return Outcome.invalid(message)
        logger.info(f"Loading preset dataset '{name}'.")
        return self.load_text(text)

    def set_weights(self, w1: float, w2: float, bias: float) -> Outcome:
        return self.engine.set_weights(w1, w2, bias)

    def set_learning_rate(self, learning_rate: float) -> Outcome:
        return self.engine.set_learning_rate(learning_rate)

    def set_max_epochs(self, max_epochs: int) -> Outcome:
        return self.engine.set_max_epochs(max_epochs)

    def set_pause_duration(self, seconds: float) -> Outcome:
        return self.engine.set_pause_duration(seconds)

    def start_run(self) -> Outcome:
        return self.engine.start_run()

    def stop_run(self) -> Outcome:
        return self.engine.stop_run()

    def step_once(self) -> Outcome:
        return self.engine.step_once()

    def reset(self) -> Outcome:
        return self.engine.reset()

    def set_test_input(self, x: Optional[float], y: Optional[float]) -> Outcome:
        if x is None or y is None:
            self._test_input = None
        elif not is_finite(x, y):
            return Outcome.invalid(f"Test input must be finite, got ({x}, {y}).")
        else:
            self._test_input = Point(float(x), float(y))
        self.snapshot_changed.emit(self.snapshot())
        return Outcome.success()

    def zoom(self, scale_x: float, scale_y: float, center_x: Optional[float] = None,
             center_y: Optional[float] = None) -> Outcome:
        center = self._viewport.center
        cx = center.x if center_x is None else center_x
        cy = center.y if center_y is None else center_y
        try:
            viewport = zoom(self._viewport, scale_x, scale_y, cx, cy)
        except ValueError as e:
            logger.warning(f"Zoom rejected: {e}")
            return Outcome.invalid(str(e))
        self._set_viewport(viewport)
        return Outcome.success()

    def pan(self, dx: float, dy: float) -> Outcome:
        try:
            viewport = pan(self._viewport, dx, dy)
        except ValueError as e:
            logger.warning(f"Pan rejected: {e}")
            return Outcome.invalid(str(e))
        self._set_viewport(viewport)
        return Outcome.success()

    def reset_viewport(self) -> Outcome:
        """Fit the view to the data again."""
        self._set_viewport(autoscale(self.engine.dataset.samples, self._viewport))
        return Outcome.success()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _set_viewport(self, viewport: Viewport) -> None:
        self._viewport = viewport
        self.viewport_changed.emit(viewport)
        self.snapshot_changed.emit(self.snapshot())

    def _on_engine_event(self, event: EngineEvent) -> None:
        kind = event.kind
        if kind == EventKind.STEP_PERFORMED:
            self.step_performed.emit(event.outcome)
        elif kind == EventKind.STATE_CHANGED:
            self.run_state_changed.emit(str(self.engine.state))
        elif kind in (EventKind.WEIGHTS_CHANGED, EventKind.RESET):
            self.weights_changed.emit(self.engine.weights)
        elif kind == EventKind.CONFIG_CHANGED:
            self.config_changed.emit(self.engine.config)
        elif kind == EventKind.DATASET_CHANGED:
            self.dataset_changed.emit(self.engine.dataset)
        elif kind == EventKind.RUN_FINISHED:
            self.run_finished.emit(event.outcome)
        self.snapshot_changed.emit(self.snapshot())
