# task_api/efficiency.py
"""Efficiency score derived from estimated versus actual hours."""

MAX_EFFICIENCY = 500.0


def efficiency(estimated: float, actual: float) -> float:
    """Return the efficiency percentage for a task.

    No estimate gives 0. Work not yet logged (actual == 0) counts as on
    track, 100. Otherwise estimated/actual as a percentage, clamped to
    [0, MAX_EFFICIENCY].
    """
    if estimated <= 0:
        return 0.0
    if actual == 0:
        return 100.0
    score = (estimated / actual) * 100
    return max(0.0, min(score, MAX_EFFICIENCY))
