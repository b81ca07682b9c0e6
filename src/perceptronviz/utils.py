import math
from typing import Optional, Sequence, TypeVar

T = TypeVar("T")


def safe_get(items: Sequence[T], index: Optional[int]) -> Optional[T]:
    """Return items[index], or None when the index is missing or out of range."""
    if index is None or not 0 <= index < len(items):
        return None
    return items[index]


def is_finite(*values: float) -> bool:
    """True if every value is a finite float."""
    return all(math.isfinite(v) for v in values)


def clamp(value: float, bounds: tuple[float, float]) -> float:
    low, high = bounds
    return max(low, min(high, value))
