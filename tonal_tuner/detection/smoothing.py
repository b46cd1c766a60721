"""Two-regime low-pass filter for successive frequency estimates."""

from typing import Optional

DEFAULT_SMOOTHING_FACTOR: float = 0.4
SAME_NOTE_RATIO = (0.97, 1.03)  # Estimates within 3% are the same note


def smooth_frequency(
    current: float,
    previous: Optional[float],
    smoothing_factor: float = DEFAULT_SMOOTHING_FACTOR,
) -> float:
    """Blend a new estimate into the previous one when they are close.

    Within the same-note band the result is
    ``previous * (1 - smoothing_factor) + current * smoothing_factor``.
    Outside it the new estimate is returned unchanged, so note and octave
    jumps are not lagged.
    """
    if previous is None or previous == 0:
        return current

    ratio = current / previous
    low, high = SAME_NOTE_RATIO
    if low < ratio < high:
        return previous * (1.0 - smoothing_factor) + current * smoothing_factor

    return current
