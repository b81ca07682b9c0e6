"""Human-readable formulas shown next to the chart while teaching."""
from __future__ import annotations

from perceptronviz.model.dataset import LabeledDataset
from perceptronviz.model.training import RunState, StepRecord
from perceptronviz.model.weights import WeightVector


def boundary_equation(weights: WeightVector, x_name: str = "X1", y_name: str = "X2") -> str:
    return f"{weights.w1:.1f}×{x_name} + {weights.w2:.1f}×{y_name} + {weights.bias:.1f} = 0"


def activation_breakdown(weights: WeightVector, x: float, y: float) -> str:
    """E.g. '1.00×0.50 + 1.00×0.50 + 0.00 = 1.00'."""
    return (
        f"{weights.w1:.2f}×{x:.2f} + {weights.w2:.2f}×{y:.2f} + {weights.bias:.2f} "
        f"= {weights.activation(x, y):.2f}"
    )


def weight_update_lines(record: StepRecord) -> list[str]:
    """
    Spell out the update rule for one step.

    Each line reads ``old + (rate × err × input) = new``; the bias uses input 1.
    """
    if not record.was_misclassified:
        return ["No weight updates needed - prediction was correct!"]

    lr = record.learning_rate_used
    err = record.error
    old, new = record.weights_before, record.weights_after
    header = (
        f"Error = {record.actual_label} - ({record.predicted_label}) = {err}"
    )
    rows = [
        ("W1", old.w1, f"{record.sample.x:.1f}", new.w1),
        ("W2", old.w2, f"{record.sample.y:.1f}", new.w2),
        ("Bias", old.bias, "1", new.bias),
    ]
    return [header] + [
        f"{name}: {before:.2f} + ({lr:.2f} × {err} × {inp}) = {after:.2f}"
        for name, before, inp, after in rows
    ]


def step_summary(record: StepRecord) -> str:
    verdict = "Error" if record.was_misclassified else "Correct"
    return (
        f"Step {record.step_index}: ({record.sample.x:.1f}, {record.sample.y:.1f}) → "
        f"{record.actual_label}, predicted {record.predicted_label} ({verdict}), "
        f"total errors {record.total_errors_after_step}"
    )


def epoch_progress(epoch: int, max_epochs: int, state: RunState) -> str:
    if state == RunState.CONVERGED:
        return f"Converged in epoch {epoch + 1}"
    if state == RunState.STOPPED:
        return f"Stopped at epoch {min(epoch + 1, max_epochs)}/{max_epochs}"
    if state == RunState.IDLE:
        return "Ready to train"
    return f"Epoch {epoch + 1}/{max_epochs}"


def legend_entries(dataset: LabeledDataset) -> list[str]:
    return [
        f"{dataset.output_name}: -1 ({dataset.negative_display_name})",
        f"{dataset.output_name}: +1 ({dataset.positive_display_name})",
    ]
