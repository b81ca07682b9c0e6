"""
Dataset Ingestor
================
Turns the free-form CSV text typed into the data editor into typed samples.

Row format: ``x,y,classification,displayLabel[,...]``. An optional header row
(>= 4 fields, first field not a number) supplies the axis and output names.
Malformed rows are skipped and reported as ParseWarning, never fatal.
"""
from __future__ import annotations

from dataclasses import dataclass, field
import logging
import math
from typing import Optional, TYPE_CHECKING

import numpy as np

from perceptronviz.model.errors import ParseWarning

if TYPE_CHECKING:
    import numpy.typing as npt

logger = logging.getLogger(__name__)

DEFAULT_X_AXIS_NAME = "X1"
DEFAULT_Y_AXIS_NAME = "X2"
DEFAULT_OUTPUT_NAME = "Classification"
DEFAULT_NEGATIVE_NAME = "FALSE"
DEFAULT_POSITIVE_NAME = "TRUE"

MIN_FIELDS = 4
VALID_LABELS = (-1, 1)


@dataclass(frozen=True)
class Sample:
    """A single training example with coordinates and classification label."""
    x: float
    y: float
    label: int


@dataclass(frozen=True)
class LabeledDataset:
    samples: tuple[Sample, ...] = ()
    x_axis_name: str = DEFAULT_X_AXIS_NAME
    y_axis_name: str = DEFAULT_Y_AXIS_NAME
    output_name: str = DEFAULT_OUTPUT_NAME
    negative_display_name: str = DEFAULT_NEGATIVE_NAME
    positive_display_name: str = DEFAULT_POSITIVE_NAME

    def __len__(self) -> int:
        return len(self.samples)

    def __iter__(self):
        return iter(self.samples)

    def __getitem__(self, index: int) -> Sample:
        return self.samples[index]

    @property
    def is_empty(self) -> bool:
        return not self.samples

    def display_name_for(self, label: int) -> str:
        return self.positive_display_name if label > 0 else self.negative_display_name

    def with_label(self, label: int) -> list[Sample]:
        return [s for s in self.samples if s.label == label]

    def as_arrays(self) -> tuple[npt.NDArray[np.float64], npt.NDArray[np.int64]]:
        """Return (points, labels) with shapes (n, 2) and (n,)."""
        points = np.array([(s.x, s.y) for s in self.samples], dtype=np.float64).reshape(-1, 2)
        labels = np.array([s.label for s in self.samples], dtype=np.int64)
        return points, labels


@dataclass
class ParseResult:
    dataset: LabeledDataset
    warnings: list[ParseWarning] = field(default_factory=list)


def _parse_float(text: str) -> Optional[float]:
    try:
        value = float(text)
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def _split(line: str) -> list[str]:
    return [part.strip() for part in line.split(",")]


def _is_header(fields: list[str]) -> bool:
    if len(fields) < MIN_FIELDS:
        return False
    try:
        float(fields[0])
    except ValueError:
        return True
    return False


def parse_training_data(text: str) -> ParseResult:
    """
    Parse CSV text into a LabeledDataset.

    Args:
        text: Raw editor contents. Blank lines are dropped, fields are trimmed.

    Returns:
        ParseResult with the dataset and one ParseWarning per skipped row.
    """
    lines = [line.strip() for line in text.splitlines()]
    lines = [line for line in lines if line]

    x_name, y_name, output_name = DEFAULT_X_AXIS_NAME, DEFAULT_Y_AXIS_NAME, DEFAULT_OUTPUT_NAME
    start = 0
    if lines and _is_header(_split(lines[0])):
        header = _split(lines[0])
        x_name = header[0] or DEFAULT_X_AXIS_NAME
        y_name = header[1] or DEFAULT_Y_AXIS_NAME
        output_name = header[2] or DEFAULT_OUTPUT_NAME
        start = 1

    samples: list[Sample] = []
    warnings: list[ParseWarning] = []
    display_names: dict[int, str] = {}

    for number, line in enumerate(lines[start:], start=start + 1):
        fields = _split(line)
        if len(fields) < MIN_FIELDS:
            warnings.append(ParseWarning(number, line, f"expected at least {MIN_FIELDS} fields, got {len(fields)}"))
            continue

        x = _parse_float(fields[0])
        y = _parse_float(fields[1])
        if x is None or y is None:
            warnings.append(ParseWarning(number, line, "coordinates must be finite numbers"))
            continue

        try:
            label = int(fields[2])
        except ValueError:
            warnings.append(ParseWarning(number, line, f"classification {fields[2]!r} is not an integer"))
            continue
        if label not in VALID_LABELS:
            warnings.append(ParseWarning(number, line, f"classification must be -1 or 1, got {label}"))
            continue

        # First row of each class names it
        display_names.setdefault(label, fields[3])
        samples.append(Sample(x=x, y=y, label=label))

    for warning in warnings:
        logger.warning(f"Skipped row {warning}")

    dataset = LabeledDataset(
        samples=tuple(samples),
        x_axis_name=x_name,
        y_axis_name=y_name,
        output_name=output_name,
        negative_display_name=display_names.get(-1, DEFAULT_NEGATIVE_NAME),
        positive_display_name=display_names.get(1, DEFAULT_POSITIVE_NAME),
    )
    logger.debug(f"Parsed {len(samples)} samples ({len(warnings)} rows skipped).")
    return ParseResult(dataset=dataset, warnings=warnings)
