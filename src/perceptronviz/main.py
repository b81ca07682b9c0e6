"""
Application Initialization
==========================
Headless runner: builds the Store on a Qt event loop, loads a bundled dataset
and plays a timed training run, logging every step.

Why is this file needed?
------------------------
It acts as the "Dependency Injection" root. It:
1. Configures logging.
2. Creates the QCoreApplication whose event loop drives the step timers.
3. Instantiates the Store and applies the command-line settings.
4. Quits the event loop once the run converges, stops or hits the epoch limit.
"""
import argparse
import logging
import sys
from typing import Optional, Sequence

import numpy as np
from PySide6.QtCore import QCoreApplication

from perceptronviz.app.store import Store
from perceptronviz.config import (
    DEFAULT_LEARNING_RATE, DEFAULT_MAX_EPOCHS, DEFAULT_PAUSE_DURATION, DEFAULT_PRESET
)
from perceptronviz.logging_config import setup_logging
from perceptronviz.model import explain
from perceptronviz.model.errors import Outcome
from perceptronviz.model.presets import preset_names

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="perceptronviz",
        description="Train a two-input perceptron on a bundled dataset, step by step.",
    )
    parser.add_argument("--preset", default=DEFAULT_PRESET, help="Bundled dataset to train on.")
    parser.add_argument("--list-presets", action="store_true", help="Print the bundled datasets and exit.")
    parser.add_argument("--learning-rate", type=float, default=DEFAULT_LEARNING_RATE)
    parser.add_argument("--max-epochs", type=int, default=DEFAULT_MAX_EPOCHS)
    parser.add_argument("--pause", type=float, default=DEFAULT_PAUSE_DURATION,
                        help="Seconds between two training steps.")
    parser.add_argument("--seed", type=int, default=None, help="Seed for the per-epoch shuffle.")
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    parser.add_argument("--log-file", default=None)
    parser.add_argument("--step-details", action="store_true",
                        help="Log every training step, independent of --log-level.")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    if args.list_presets:
        for name in preset_names():
            print(name)
        return 0

    setup_logging(level=args.log_level, log_file=args.log_file, step_details=args.step_details)

    app = QCoreApplication.instance() or QCoreApplication(sys.argv[:1])
    store = Store(rng=np.random.default_rng(args.seed))

    outcome = store.load_preset(args.preset)
    if not outcome.ok:
        print(outcome.message, file=sys.stderr)
        return 2

    for setter, value in (
        (store.set_learning_rate, args.learning_rate),
        (store.set_max_epochs, args.max_epochs),
        (store.set_pause_duration, args.pause),
    ):
        result = setter(value)
        if not result.ok:
            print(result.message, file=sys.stderr)
            return 2

    def on_step(step: Outcome) -> None:
        if step.record is not None:
            logger.info(explain.step_summary(step.record))

    final: list[Outcome] = []

    def on_finished(result: Outcome) -> None:
        final.append(result)
        app.quit()

    store.step_performed.connect(on_step)
    store.run_finished.connect(on_finished)

    started = store.start_run()
    if not started.ok:
        print(started.message, file=sys.stderr)
        return 2

    app.exec()

    dataset = store.get_dataset()
    print(store.epoch_progress())
    print(f"Weights: w1={store.get_weights().w1:.4f}, w2={store.get_weights().w2:.4f}, "
          f"bias={store.get_weights().bias:.4f}")
    print(f"Boundary: {store.boundary_equation()}")
    segment = store.boundary_line()
    if segment is not None:
        start, end = segment
        print(f"Visible segment: ({start.x:.3f}, {start.y:.3f}) -> ({end.x:.3f}, {end.y:.3f})")
    for entry in explain.legend_entries(dataset):
        print(entry)
    return 0 if final and final[0].ok else 1


if __name__ == "__main__":
    sys.exit(main())
