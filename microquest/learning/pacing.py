"""
Tool: Pacing Calibrator
Purpose: Track how long quests really take compared with their estimates

Each completion with a measured duration contributes one ratio
(actual / estimated). The accuracy ratio is the plain arithmetic mean of the
most recent ratios - not exponential smoothing - so a single bad day washes
out after a handful of quests. With no samples the ratio is 1.0.

The ratio has exactly one consumer: the pacing block of the next
decomposition request.
"""

from copy import deepcopy
from statistics import mean
from typing import TYPE_CHECKING, Optional

from . import DEFAULT_PACING_WINDOW

if TYPE_CHECKING:
    from microquest.progression.models import User


def task_ratio(actual_min: Optional[float], est_min: Optional[float]) -> Optional[float]:
    """Ratio for one task, or None if it can't be measured."""
    if actual_min is None or not est_min or est_min <= 0:
        return None
    return actual_min / est_min


def record_sample(
    samples: list[float], ratio: Optional[float], window: int = DEFAULT_PACING_WINDOW
) -> list[float]:
    """Append a ratio, keeping only the most recent `window` samples."""
    if ratio is None:
        return list(samples[-window:])
    return (list(samples) + [ratio])[-window:]


def accuracy_ratio(samples: list[float], window: int = DEFAULT_PACING_WINDOW) -> float:
    recent = samples[-window:]
    if not recent:
        return 1.0
    return mean(recent)


def calibrate(
    user: "User",
    actual_min: Optional[float],
    est_min: Optional[float],
    window: int = DEFAULT_PACING_WINDOW,
) -> "User":
    """
    Fold one completion into the user's accuracy ratio.

    Args:
        user: Current user (not modified)
        actual_min: Measured duration in minutes
        est_min: Estimated duration in minutes
        window: Number of recent samples averaged

    Returns:
        Updated copy of the user
    """
    updated = deepcopy(user)
    ratio = task_ratio(actual_min, est_min)
    if ratio is None:
        return updated

    updated.recent_ratios = record_sample(user.recent_ratios, ratio, window)
    updated.recent_accuracy_ratio = accuracy_ratio(updated.recent_ratios, window)
    return updated


__all__ = ["accuracy_ratio", "calibrate", "record_sample", "task_ratio"]
