import numpy as np
import pytest

from perceptronviz.config import TrainingConfig
from perceptronviz.model.dataset import LabeledDataset, Sample, parse_training_data
from perceptronviz.model.errors import Status
from perceptronviz.model.training import EventKind, RunState, TrainingEngine
from perceptronviz.model.weights import WeightVector, initialize_weights


def single_sample(x, y, label):
    return LabeledDataset(samples=(Sample(x, y, label),))


def step_until_finished(engine, limit=100_000):
    outcome = None
    for _ in range(limit):
        outcome = engine.step_once()
        if engine.state in (RunState.CONVERGED, RunState.STOPPED):
            break
    return outcome


def test_correct_prediction_leaves_weights_unchanged(rng):
    engine = TrainingEngine(single_sample(1.0, 1.0, 1), TrainingConfig(learning_rate=0.1), rng=rng)
    engine.set_weights(1.0, 1.0, -1.5)

    outcome = engine.step_once()

    record = outcome.record
    assert record is not None
    assert not record.was_misclassified
    assert record.predicted_label == 1
    assert record.error == 0
    assert engine.weights == WeightVector(1.0, 1.0, -1.5)
    assert record.weights_before == record.weights_after


def test_misclassified_origin_only_moves_bias(rng):
    engine = TrainingEngine(single_sample(0.0, 0.0, -1), TrainingConfig(learning_rate=0.1), rng=rng)
    engine.set_weights(1.0, 1.0, 0.5)

    outcome = engine.step_once()

    record = outcome.record
    assert record.was_misclassified
    assert record.predicted_label == 1
    assert record.actual_label == -1
    assert record.error == -2
    assert engine.weights.w1 == 1.0
    assert engine.weights.w2 == 1.0
    assert engine.weights.bias == pytest.approx(0.3)
    assert record.learning_rate_used == 0.1
    # Still misclassified with bias 0.3
    assert record.total_errors_after_step == 1
    assert engine.state == RunState.STEPPING


@pytest.mark.parametrize("learning_rate", [0.01, 0.1, 0.5, 1.0])
def test_and_gate_converges_from_zero_weights(and_gate, learning_rate):
    engine = TrainingEngine(
        and_gate, TrainingConfig(learning_rate=learning_rate, max_epochs=100),
        rng=np.random.default_rng(0),
    )
    engine.set_weights(0.0, 0.0, 0.0)

    outcome = step_until_finished(engine)

    assert engine.state == RunState.CONVERGED
    assert outcome.status == Status.CONVERGED
    assert engine.total_errors == 0
    assert engine.history[-1].total_errors_after_step == 0
    assert engine.epoch < 100


def test_total_errors_are_recounted_over_whole_dataset(and_gate, rng):
    engine = TrainingEngine(and_gate, rng=rng)
    engine.set_weights(0.0, 0.0, 0.0)

    for _ in range(3):
        outcome = engine.step_once()
        if engine.state == RunState.CONVERGED:
            break
        after = outcome.record.weights_after
        expected = sum(after.predict(s.x, s.y) != s.label for s in and_gate)
        assert outcome.record.total_errors_after_step == expected


def test_non_separable_data_stops_at_max_epochs(xor_gate, rng):
    engine = TrainingEngine(xor_gate, TrainingConfig(max_epochs=3), rng=rng)

    outcome = step_until_finished(engine)

    assert outcome.status == Status.MAX_EPOCHS_REACHED
    assert engine.state == RunState.STOPPED
    assert len(engine.history) == 3 * len(xor_gate)
    assert [s.epoch for s in engine.epoch_summaries] == [1, 2, 3]
    assert engine.step_once().status == Status.PRECONDITION_NOT_MET


def test_each_epoch_presents_every_sample_once(xor_gate, rng):
    engine = TrainingEngine(xor_gate, TrainingConfig(max_epochs=5), rng=rng)
    step_until_finished(engine)

    for epoch in range(1, 6):
        indices = [r.sample_index for r in engine.history if r.epoch == epoch]
        assert sorted(indices) == [0, 1, 2, 3]


def test_seeded_shuffle_is_reproducible(xor_gate):
    orders = []
    for _ in range(2):
        engine = TrainingEngine(xor_gate, TrainingConfig(max_epochs=4), rng=np.random.default_rng(99))
        step_until_finished(engine)
        orders.append([r.sample_index for r in engine.history])
    assert orders[0] == orders[1]


def test_step_on_empty_dataset_is_rejected(rng):
    engine = TrainingEngine(rng=rng)

    outcome = engine.step_once()

    assert outcome.status == Status.PRECONDITION_NOT_MET
    assert not outcome.ok
    assert engine.state == RunState.IDLE
    assert engine.history == ()


def test_numeric_overflow_keeps_prior_weights(rng):
    engine = TrainingEngine(single_sample(1e308, 0.0, -1), TrainingConfig(learning_rate=1.0), rng=rng)
    engine.set_weights(1.0, 0.0, 0.0)

    outcome = engine.step_once()

    assert outcome.status == Status.NUMERIC_INSTABILITY
    assert engine.weights == WeightVector(1.0, 0.0, 0.0)
    assert engine.state == RunState.STOPPED
    assert engine.history == ()


def test_reset_returns_to_idle_with_seeded_weights(and_gate, rng):
    engine = TrainingEngine(and_gate, rng=rng)
    engine.set_weights(0.0, 0.0, 0.0)
    step_until_finished(engine)

    outcome = engine.reset()

    assert outcome.ok
    assert engine.state == RunState.IDLE
    assert engine.history == ()
    assert engine.epoch_summaries == ()
    assert engine.step_index == 0
    assert engine.weights == initialize_weights(and_gate, WeightVector(0.0, 0.0, 0.0))


def test_step_indices_are_sequential(xor_gate, rng):
    engine = TrainingEngine(xor_gate, TrainingConfig(max_epochs=2), rng=rng)
    step_until_finished(engine)

    assert [r.step_index for r in engine.history] == list(range(1, 9))


def test_timed_run_converges(and_gate, rng, scheduler):
    engine = TrainingEngine(and_gate, TrainingConfig(pause_duration=0.3), rng=rng, scheduler=scheduler)
    engine.set_weights(0.0, 0.0, 0.0)
    events = []
    engine.subscribe(events.append)

    assert engine.start_run().ok
    assert engine.state == RunState.RUNNING
    assert scheduler.queue[0].delay == 0.3

    scheduler.run_until_idle()

    assert engine.state == RunState.CONVERGED
    finished = [e for e in events if e.kind == EventKind.RUN_FINISHED]
    assert len(finished) == 1
    assert finished[0].outcome.status == Status.CONVERGED
    steps = [e for e in events if e.kind == EventKind.STEP_PERFORMED]
    assert len(steps) == len(engine.history)


def test_timed_run_stops_at_max_epochs(xor_gate, rng, scheduler):
    engine = TrainingEngine(xor_gate, TrainingConfig(max_epochs=2), rng=rng, scheduler=scheduler)

    engine.start_run()
    scheduler.run_until_idle()

    assert engine.state == RunState.STOPPED
    assert len(engine.history) == 8
    assert scheduler.queue == []


def test_stop_prevents_queued_step(xor_gate, rng, scheduler):
    engine = TrainingEngine(xor_gate, rng=rng, scheduler=scheduler)
    engine.start_run()
    scheduler.fire_next()
    queued = scheduler.queue[-1]

    assert engine.stop_run().ok

    assert queued.cancelled
    # Simulate a timer that was already dispatched before cancellation
    queued.callback()
    assert len(engine.history) == 1
    assert engine.state == RunState.STOPPED


def test_manual_step_rejected_while_running(xor_gate, rng, scheduler):
    engine = TrainingEngine(xor_gate, rng=rng, scheduler=scheduler)
    engine.start_run()

    outcome = engine.step_once()

    assert outcome.status == Status.PRECONDITION_NOT_MET
    assert engine.history == ()
    assert engine.start_run().status == Status.PRECONDITION_NOT_MET


def test_start_run_requires_scheduler(xor_gate, rng):
    engine = TrainingEngine(xor_gate, rng=rng)

    assert engine.start_run().status == Status.PRECONDITION_NOT_MET
    assert engine.state == RunState.IDLE


def test_start_run_clears_manual_history(xor_gate, rng, scheduler):
    engine = TrainingEngine(xor_gate, rng=rng, scheduler=scheduler)
    engine.step_once()
    engine.step_once()

    engine.start_run()

    assert engine.history == ()
    assert engine.state == RunState.RUNNING


def test_reset_cancels_run(xor_gate, rng, scheduler):
    engine = TrainingEngine(xor_gate, rng=rng, scheduler=scheduler)
    events = []
    engine.subscribe(events.append)
    engine.start_run()
    pending = scheduler.queue[-1]

    engine.reset()

    assert pending.cancelled
    assert engine.state == RunState.IDLE
    assert any(e.kind == EventKind.RUN_FINISHED for e in events)


def test_set_dataset_resets(and_gate, xor_gate, rng):
    engine = TrainingEngine(xor_gate, rng=rng)
    engine.step_once()

    engine.set_dataset(and_gate)

    assert engine.dataset is and_gate
    assert engine.history == ()
    assert engine.state == RunState.IDLE


def test_stop_without_run_is_rejected(rng):
    assert TrainingEngine(rng=rng).stop_run().status == Status.PRECONDITION_NOT_MET


def test_learning_rate_is_clamped(rng):
    engine = TrainingEngine(rng=rng)

    outcome = engine.set_learning_rate(5.0)

    assert outcome.ok
    assert engine.config.learning_rate == 1.0
    assert outcome.message


def test_non_finite_settings_are_rejected(rng):
    engine = TrainingEngine(rng=rng)

    assert engine.set_pause_duration(float("nan")).status == Status.INVALID_ARGUMENT
    assert engine.set_weights(float("inf"), 0.0, 0.0).status == Status.INVALID_ARGUMENT


def test_settings_locked_while_running(xor_gate, rng, scheduler):
    engine = TrainingEngine(xor_gate, rng=rng, scheduler=scheduler)
    engine.start_run()

    assert engine.set_max_epochs(10).status == Status.PRECONDITION_NOT_MET
    assert engine.set_weights(1.0, 1.0, 1.0).status == Status.PRECONDITION_NOT_MET


def test_convergence_records_partial_epoch_summary(rng):
    dataset = parse_training_data("0,0,-1,a\n1,1,1,b").dataset
    engine = TrainingEngine(dataset, rng=rng)

    outcome = engine.step_once()

    # Centroid seeding already separates the two points
    assert outcome.status == Status.CONVERGED
    assert engine.epoch_summaries[-1].total_errors == 0
    assert engine.epoch_summaries[-1].epoch == 1


def test_reset_from_weights_listener_on_converging_step(rng):
    engine = TrainingEngine(single_sample(0.0, 0.0, -1), TrainingConfig(learning_rate=1.0), rng=rng)
    engine.set_weights(1.0, 1.0, 0.5)
    kinds = []

    def on_event(event):
        kinds.append(event.kind)
        if event.kind == EventKind.WEIGHTS_CHANGED:
            engine.reset()

    engine.subscribe(on_event)
    outcome = engine.step_once()

    assert outcome.status == Status.CONVERGED
    assert engine.state == RunState.IDLE
    assert engine.history == ()
    assert kinds.index(EventKind.WEIGHTS_CHANGED) < kinds.index(EventKind.STEP_PERFORMED)


def test_stop_from_weights_listener_finishes_run_once(xor_gate, rng, scheduler):
    engine = TrainingEngine(xor_gate, rng=rng, scheduler=scheduler)
    events = []

    def on_event(event):
        events.append(event)
        if event.kind == EventKind.WEIGHTS_CHANGED and engine.is_running:
            engine.stop_run()

    engine.subscribe(on_event)
    engine.start_run()
    scheduler.run_until_idle()

    finished = [e for e in events if e.kind == EventKind.RUN_FINISHED]
    assert engine.state == RunState.STOPPED
    assert len(finished) == 1
    assert finished[0].outcome.message == "Training stopped."
    assert engine.history[-1].was_misclassified
