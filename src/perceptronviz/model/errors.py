"""
Result Taxonomy
===============
Recoverable conditions are reported to callers as values, never raised past the
engine boundary.

Classes:
    ParseWarning: A malformed CSV row that was skipped.
    Status: Kind of outcome of an engine or store command.
    Outcome: Status + message (+ the StepRecord when a step was performed).
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from perceptronviz.model.training import StepRecord


@dataclass(frozen=True)
class ParseWarning:
    line_number: int  # 1-based, counted over non-blank lines
    line: str
    reason: str

    def __str__(self) -> str:
        return f"line {self.line_number}: {self.reason} ({self.line!r})"


class Status(StrEnum):
    OK = "ok"
    CONVERGED = "converged"
    MAX_EPOCHS_REACHED = "max epochs reached"
    PRECONDITION_NOT_MET = "precondition not met"
    NUMERIC_INSTABILITY = "numeric instability"
    INVALID_ARGUMENT = "invalid argument"


_SUCCESS = (Status.OK, Status.CONVERGED, Status.MAX_EPOCHS_REACHED)


@dataclass(frozen=True)
class Outcome:
    status: Status
    message: str = ""
    record: Optional[StepRecord] = None

    @property
    def ok(self) -> bool:
        return self.status in _SUCCESS

    @classmethod
    def success(cls, message: str = "", record: Optional[StepRecord] = None) -> Outcome:
        return cls(Status.OK, message, record)

    @classmethod
    def precondition(cls, message: str) -> Outcome:
        return cls(Status.PRECONDITION_NOT_MET, message)

    @classmethod
    def invalid(cls, message: str) -> Outcome:
        return cls(Status.INVALID_ARGUMENT, message)
