"""
Training Engine
===============
Owns the weight vector and drives the online perceptron update rule.

Why is this file needed?
------------------------
1. State Management: weights, step history and the run state live here and are
   mutated only by engine commands. Callers get read-only snapshots.
2. Scheduling: a timed run is a chain of single-shot timers obtained from an
   injected Scheduler. The engine keeps the pending handle so that stopping or
   resetting cancels it, and every callback carries a run token so that a timer
   that already fired into the event queue is ignored after cancellation.
3. Reproducibility: the per-epoch shuffle uses an injected numpy Generator.

Classes:
    RunState: Idle | Stepping | Running | Converged | Stopped.
    StepRecord: Immutable description of one training step.
    EpochSummary: Total errors at the end of an epoch (progress chart).
    EngineEvent: Change notification delivered to subscribers.
    TrainingEngine: The stateful core.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from enum import StrEnum
import logging
import math
from typing import Callable, Optional, Protocol

import numpy as np

from perceptronviz.config import DEFAULT_WEIGHTS, TrainingConfig
from perceptronviz.model.dataset import LabeledDataset, Sample
from perceptronviz.model.errors import Outcome, Status
from perceptronviz.model.weights import WeightVector, initialize_weights
from perceptronviz.utils import is_finite

logger = logging.getLogger(__name__)


class RunState(StrEnum):
    IDLE = "idle"
    STEPPING = "stepping"
    RUNNING = "running"
    CONVERGED = "converged"
    STOPPED = "stopped"


FINISHED_STATES = (RunState.CONVERGED, RunState.STOPPED)


@dataclass(frozen=True)
class StepRecord:
    step_index: int  # 1-based
    total_errors_after_step: int
    was_misclassified: bool
    sample: Sample
    sample_index: int  # position of the sample in the dataset
    predicted_label: int
    actual_label: int
    weights_before: WeightVector
    weights_after: WeightVector
    learning_rate_used: float
    epoch: int  # 1-based

    @property
    def error(self) -> int:
        """actual - predicted: -2, 0 or +2."""
        return self.actual_label - self.predicted_label


@dataclass(frozen=True)
class EpochSummary:
    epoch: int
    total_errors: int


class EventKind(StrEnum):
    STEP_PERFORMED = "step performed"
    STATE_CHANGED = "state changed"
    WEIGHTS_CHANGED = "weights changed"
    CONFIG_CHANGED = "config changed"
    DATASET_CHANGED = "dataset changed"
    RESET = "reset"
    RUN_FINISHED = "run finished"


@dataclass(frozen=True)
class EngineEvent:
    kind: EventKind
    outcome: Optional[Outcome] = None


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def schedule(self, delay: float, callback: Callable[[], None]) -> TimerHandle: ...


Listener = Callable[[EngineEvent], None]


class TrainingEngine:
    """
    Stateful perceptron trainer.

    Every public command returns an Outcome; nothing is raised for conditions
    the user can trigger from the training controls.
    """

    def __init__(
        self,
        dataset: Optional[LabeledDataset] = None,
        config: Optional[TrainingConfig] = None,
        weights: Optional[WeightVector] = None,
        rng: Optional[np.random.Generator] = None,
        scheduler: Optional[Scheduler] = None,
    ) -> None:
        self._dataset = dataset if dataset is not None else LabeledDataset()
        self._config = (config or TrainingConfig()).clamped()
        self._weights = weights if weights is not None else WeightVector(*DEFAULT_WEIGHTS)
        self._rng = rng if rng is not None else np.random.default_rng()
        self._scheduler = scheduler

        self._points, self._labels = self._dataset.as_arrays()
        self._state = RunState.IDLE
        self._history: list[StepRecord] = []
        self._epoch_summaries: list[EpochSummary] = []
        self._order: list[int] = []
        self._cursor = 0
        self._epoch = 0
        self._step_index = 0

        self._pending: Optional[TimerHandle] = None
        self._run_token = 0
        self._in_step = False
        self._listeners: list[Listener] = []

        self._restart_sequence()
        self._weights = initialize_weights(self._dataset, self._weights)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    @property
    def dataset(self) -> LabeledDataset:
        return self._dataset

    @property
    def weights(self) -> WeightVector:
        return self._weights

    @property
    def config(self) -> TrainingConfig:
        return self._config

    @property
    def state(self) -> RunState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state == RunState.RUNNING

    @property
    def history(self) -> tuple[StepRecord, ...]:
        return tuple(self._history)

    @property
    def last_record(self) -> Optional[StepRecord]:
        return self._history[-1] if self._history else None

    @property
    def epoch(self) -> int:
        """Number of completed epochs in the current run."""
        return self._epoch

    @property
    def epoch_summaries(self) -> tuple[EpochSummary, ...]:
        return tuple(self._epoch_summaries)

    @property
    def step_index(self) -> int:
        return self._step_index

    @property
    def total_errors(self) -> int:
        return self._count_errors(self._weights)

    def predict(self, x: float, y: float) -> int:
        return self._weights.predict(x, y)

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------
    def subscribe(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def unsubscribe(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self, kind: EventKind, outcome: Optional[Outcome] = None) -> None:
        event = EngineEvent(kind, outcome)
        for listener in list(self._listeners):
            listener(event)

    def _set_state(self, state: RunState) -> None:
        if state == self._state:
            return
        logger.debug(f"Run state: {self._state} -> {state}")
        self._state = state
        self._notify(EventKind.STATE_CHANGED)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------
    def set_dataset(self, dataset: LabeledDataset) -> Outcome:
        """Replace the training data. Any pending run is cancelled and the engine reset."""
        self._dataset = dataset
        self._points, self._labels = dataset.as_arrays()
        self._notify(EventKind.DATASET_CHANGED)
        return self.reset()

    def set_weights(self, w1: float, w2: float, bias: float) -> Outcome:
        if self.is_running:
            return self._reject("Weights cannot be edited during a timed run.")
        if not is_finite(w1, w2, bias):
            return self._invalid(f"Weights must be finite, got ({w1}, {w2}, {bias}).")
        self._weights = WeightVector(float(w1), float(w2), float(bias))
        self._notify(EventKind.WEIGHTS_CHANGED)
        return Outcome.success()

    def set_learning_rate(self, learning_rate: float) -> Outcome:
        return self._update_config(learning_rate=learning_rate)

    def set_max_epochs(self, max_epochs: int) -> Outcome:
        return self._update_config(max_epochs=max_epochs)

    def set_pause_duration(self, seconds: float) -> Outcome:
        return self._update_config(pause_duration=seconds)

    def _update_config(self, **changes: float) -> Outcome:
        if self.is_running:
            return self._reject("Training settings are locked during a timed run.")
        for name, value in changes.items():
            if not isinstance(value, (int, float)) or not math.isfinite(value):
                return self._invalid(f"{name} must be a finite number, got {value!r}.")

        requested = replace(self._config, **changes)
        self._config = requested.clamped()
        message = ""
        if self._config != requested:
            message = f"Clamped {changes} to {self._config}."
            logger.warning(message)
        self._notify(EventKind.CONFIG_CHANGED)
        return Outcome.success(message)

    def reset(self) -> Outcome:
        """Return to Idle: clear history, reshuffle and re-seed the weights from the centroids."""
        was_running = self.is_running
        self._cancel_pending()
        self._restart_sequence()
        self._weights = initialize_weights(self._dataset, self._weights)
        self._set_state(RunState.IDLE)
        if was_running:
            self._notify(EventKind.RUN_FINISHED, Outcome.success("Run cancelled by reset."))
        logger.info(f"Training reset ({len(self._dataset)} samples, weights {self._weights.as_tuple()}).")
        self._notify(EventKind.RESET)
        return Outcome.success()

    def step_once(self) -> Outcome:
        """Perform a single manual training step."""
        if self.is_running:
            return self._reject("Manual stepping is disabled while a timed run is active.")
        if self._in_step:
            return self._reject("A step is already in progress.")
        if self._dataset.is_empty:
            return self._reject("No training data loaded.")
        if self._state in FINISHED_STATES:
            return self._reject(f"Training has {self._state}; reset to train again.")

        self._set_state(RunState.STEPPING)
        outcome = self._perform_step()
        self._notify_weights(outcome)
        self._notify(EventKind.STEP_PERFORMED, outcome)
        return outcome

    def start_run(self) -> Outcome:
        """Start a paced sequence of steps on the injected scheduler."""
        if self._scheduler is None:
            return self._reject("No scheduler available for timed training.")
        if self.is_running:
            return self._reject("Training is already running.")
        if self._dataset.is_empty:
            return self._reject("No training data loaded.")
        if self._state in FINISHED_STATES:
            return self._reject(f"Training has {self._state}; reset to train again.")

        self._restart_sequence()
        self._set_state(RunState.RUNNING)
        logger.info(
            f"Training started: lr={self._config.learning_rate}, "
            f"max_epochs={self._config.max_epochs}, pause={self._config.pause_duration}s"
        )
        self._schedule_next(self._run_token)
        return Outcome.success("Training started.")

    def stop_run(self) -> Outcome:
        if not self.is_running:
            return self._reject("No timed run to stop.")
        self._cancel_pending()
        self._set_state(RunState.STOPPED)
        logger.info(f"Training stopped after {self._step_index} steps.")
        outcome = Outcome.success("Training stopped.")
        self._notify(EventKind.RUN_FINISHED, outcome)
        return outcome

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _reject(self, message: str) -> Outcome:
        logger.warning(message)
        return Outcome.precondition(message)

    def _invalid(self, message: str) -> Outcome:
        logger.warning(message)
        return Outcome.invalid(message)

    def _notify_weights(self, outcome: Outcome) -> None:
        # Emitted once the step has settled, so listeners see the final run state
        if outcome.record is not None and outcome.record.was_misclassified:
            self._notify(EventKind.WEIGHTS_CHANGED)

    def _shuffled_order(self) -> list[int]:
        return self._rng.permutation(len(self._dataset)).tolist()

    def _restart_sequence(self) -> None:
        self._history.clear()
        self._epoch_summaries.clear()
        self._step_index = 0
        self._epoch = 0
        self._cursor = 0
        self._order = self._shuffled_order()

    def _count_errors(self, weights: WeightVector) -> int:
        if self._labels.size == 0:
            return 0
        # Same operand order as WeightVector.activation so the signs agree exactly
        activation = weights.w1 * self._points[:, 0] + weights.w2 * self._points[:, 1] + weights.bias
        predicted = np.where(activation >= 0, 1, -1)
        return int(np.count_nonzero(predicted != self._labels))

    def _schedule_next(self, token: int) -> None:
        self._pending = self._scheduler.schedule(self._config.pause_duration, lambda: self._on_timer(token))

    def _cancel_pending(self) -> None:
        # Invalidate callbacks that may already be queued
        self._run_token += 1
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None

    def _on_timer(self, token: int) -> None:
        if token != self._run_token or self._state != RunState.RUNNING:
            return
        self._pending = None

        outcome = self._perform_step()
        finished = self._state != RunState.RUNNING
        self._notify_weights(outcome)
        self._notify(EventKind.STEP_PERFORMED, outcome)

        if finished:
            logger.info(f"Training finished ({outcome.status}) after {self._step_index} steps.")
            self._notify(EventKind.RUN_FINISHED, outcome)
        elif token == self._run_token and self._state == RunState.RUNNING:
            # A listener may have stopped or reset the run
            self._schedule_next(token)

    def _halt(self, state: RunState) -> None:
        self._cancel_pending()
        self._set_state(state)

    def _perform_step(self) -> Outcome:
        self._in_step = True
        try:
            return self._advance()
        finally:
            self._in_step = False

    def _advance(self) -> Outcome:
        if self._cursor >= len(self._order):
            self._epoch += 1
            self._order = self._shuffled_order()
            self._cursor = 0
            if self._epoch >= self._config.max_epochs:
                self._halt(RunState.STOPPED)
                message = f"Reached the maximum of {self._config.max_epochs} epochs."
                logger.info(message)
                return Outcome(Status.MAX_EPOCHS_REACHED, message)

        sample_index = self._order[self._cursor]
        self._cursor += 1
        sample = self._dataset[sample_index]

        before = self._weights
        learning_rate = self._config.learning_rate
        predicted = before.predict(sample.x, sample.y)
        misclassified = predicted != sample.label

        after = before
        if misclassified:
            error = sample.label - predicted
            after = WeightVector(
                w1=before.w1 + learning_rate * error * sample.x,
                w2=before.w2 + learning_rate * error * sample.y,
                bias=before.bias + learning_rate * error,
            )
            if not after.is_finite:
                self._halt(RunState.STOPPED)
                message = f"Update on sample {sample_index} produced non-finite weights {after.as_tuple()}."
                logger.warning(message)
                return Outcome(Status.NUMERIC_INSTABILITY, message)

        self._weights = after
        self._step_index += 1
        total_errors = self._count_errors(after)

        record = StepRecord(
            step_index=self._step_index,
            total_errors_after_step=total_errors,
            was_misclassified=misclassified,
            sample=sample,
            sample_index=sample_index,
            predicted_label=predicted,
            actual_label=sample.label,
            weights_before=before,
            weights_after=after,
            learning_rate_used=learning_rate,
            epoch=self._epoch + 1,
        )
        self._history.append(record)
        logger.debug(
            f"Step {record.step_index}: sample #{sample_index} ({sample.x}, {sample.y}) -> "
            f"predicted {predicted}, actual {sample.label}, total errors {total_errors}"
        )

        if self._cursor >= len(self._order) or total_errors == 0:
            self._epoch_summaries.append(EpochSummary(record.epoch, total_errors))

        if total_errors == 0:
            self._halt(RunState.CONVERGED)
            logger.info(f"Converged after {self._step_index} steps in epoch {record.epoch}.")
            return Outcome(Status.CONVERGED, "All samples classified correctly.", record)
        return Outcome.success(record=record)
