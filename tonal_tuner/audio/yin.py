"""YIN fundamental frequency estimation.

Based on "YIN, a fundamental frequency estimator for speech and music"
(de Cheveigné and Kawahara). The difference function is computed directly,
one lag at a time, which costs O(max_period**2) per buffer.

The period search takes the first dip of the cumulative mean normalized
difference that falls below the threshold, walked forward to that dip's
local minimum. It does not look for a global minimum over the whole range,
since that changes which octave is reported on transients.
"""

from __future__ import annotations
import math
from typing import ClassVar, Optional, Tuple

import numpy as np

from ..logger import get_logger
from ..note_types import PitchEstimate, RejectReason
from ..core.interfaces import IPitchEstimator

logger = get_logger(__name__)

DEFAULT_THRESHOLD: float = 0.25
MIN_FREQUENCY: float = 27.5  # A0
MAX_FREQUENCY: float = 2000.0
INTERPOLATION_EPSILON: float = 1e-10


def period_bounds(
    buffer_length: int,
    sample_rate: float,
    min_frequency: float = MIN_FREQUENCY,
    max_frequency: float = MAX_FREQUENCY,
) -> Tuple[int, int]:
    """Return (min_period, max_period) in samples for a buffer.

    max_period is capped at half the buffer so every lag has a full window
    to compare against. The range is empty when max_period < min_period.
    """
    min_period = math.ceil(sample_rate / max_frequency)
    max_period = min(math.floor(sample_rate / min_frequency), buffer_length // 2)
    return min_period, max_period


def difference_function(samples: np.ndarray, max_period: int) -> np.ndarray:
    """Squared difference d(tau) over a window of max_period samples, for tau in [0, max_period)."""
    window = samples[:max_period]
    diff = np.empty(max_period, dtype=np.float64)
    for tau in range(max_period):
        delta = window - samples[tau : tau + max_period]
        diff[tau] = np.dot(delta, delta)
    return diff


def cumulative_mean_normalized_difference(diff: np.ndarray) -> np.ndarray:
    """d'(0) = 1, d'(tau) = d(tau) * tau / sum(d[1..tau]); 1 where that sum is zero."""
    cmnd = np.array(diff, dtype=np.float64, copy=True)
    if cmnd.size == 0:
        return cmnd
    cmnd[0] = 1.0

    running_sum = np.cumsum(cmnd[1:])
    taus = np.arange(1, cmnd.size, dtype=np.float64)
    with np.errstate(divide="ignore", invalid="ignore"):
        cmnd[1:] = np.where(running_sum == 0.0, 1.0, cmnd[1:] * taus / running_sum)
    return cmnd


def absolute_threshold(cmnd: np.ndarray, min_period: int, threshold: float) -> Optional[int]:
    """Lag of the first dip below threshold, settled on that dip's local minimum.

    Returns None if no lag at or above min_period crosses the threshold.
    """
    below = np.flatnonzero(cmnd[min_period:] < threshold)
    if below.size == 0:
        return None

    tau = min_period + int(below[0])
    while tau + 1 < cmnd.size and cmnd[tau + 1] < cmnd[tau]:
        tau += 1
    return tau


def parabolic_interpolation(cmnd: np.ndarray, tau: int) -> float:
    """Refine an integer lag to the vertex of the parabola through its neighbours.

    The integer lag is returned unchanged at a buffer edge or when the
    parabola is degenerate.
    """
    if not 0 < tau < cmnd.size - 1:
        return float(tau)

    s0, s1, s2 = float(cmnd[tau - 1]), float(cmnd[tau]), float(cmnd[tau + 1])
    denominator = 2.0 * (2.0 * s1 - s2 - s0)
    if abs(denominator) > INTERPOLATION_EPSILON:
        return tau + (s2 - s0) / denominator
    return float(tau)


def estimate_pitch(
    buffer: np.ndarray,
    sample_rate: float,
    threshold: float = DEFAULT_THRESHOLD,
    min_frequency: float = MIN_FREQUENCY,
    max_frequency: float = MAX_FREQUENCY,
) -> Tuple[Optional[PitchEstimate], Optional[RejectReason]]:
    """Run YIN on one buffer.

    Returns:
        (estimate, None) on success, or (None, reason) when no pitch was found

    Raises:
        ValueError: If sample_rate is not positive
    """
    if sample_rate <= 0:
        raise ValueError("Sample rate must be positive")

    samples = np.asarray(buffer, dtype=np.float64).ravel()
    min_period, max_period = period_bounds(samples.size, sample_rate, min_frequency, max_frequency)
    if max_period < min_period:
        logger.debug(
            f"Buffer of {samples.size} samples at {sample_rate}Hz cannot cover "
            f"{min_frequency}-{max_frequency}Hz"
        )
        return None, RejectReason.NO_FUNDAMENTAL

    cmnd = cumulative_mean_normalized_difference(difference_function(samples, max_period))

    tau = absolute_threshold(cmnd, min_period, threshold)
    if tau is None:
        return None, RejectReason.NO_FUNDAMENTAL

    better_tau = parabolic_interpolation(cmnd, tau)
    if better_tau <= 0:
        return None, RejectReason.INVALID_FREQUENCY_RANGE

    frequency = sample_rate / better_tau
    clarity = 1.0 - float(cmnd[tau])

    if frequency < min_frequency or frequency > max_frequency:
        logger.debug(f"Rejected {frequency:.2f}Hz outside {min_frequency}-{max_frequency}Hz")
        return None, RejectReason.INVALID_FREQUENCY_RANGE

    return PitchEstimate(frequency=frequency, clarity=clarity), None


def detect_pitch(
    buffer: np.ndarray,
    sample_rate: float,
    threshold: float = DEFAULT_THRESHOLD,
    min_frequency: float = MIN_FREQUENCY,
    max_frequency: float = MAX_FREQUENCY,
) -> Optional[PitchEstimate]:
    """Estimate the fundamental frequency of a buffer, or None if there is none."""
    estimate, _ = estimate_pitch(buffer, sample_rate, threshold, min_frequency, max_frequency)
    return estimate


class YinPitchEstimator(IPitchEstimator):
    """Configured YIN estimator used by the analysis loop."""

    DEFAULT_THRESHOLD: ClassVar[float] = DEFAULT_THRESHOLD
    MIN_FREQUENCY: ClassVar[float] = MIN_FREQUENCY
    MAX_FREQUENCY: ClassVar[float] = MAX_FREQUENCY

    def __init__(
        self,
        threshold: float = DEFAULT_THRESHOLD,
        min_frequency: float = MIN_FREQUENCY,
        max_frequency: float = MAX_FREQUENCY,
    ) -> None:
        """Initialize the estimator.

        Args:
            threshold: Absolute threshold on the normalized difference (0.0 to 1.0)
            min_frequency: Lowest frequency to report, in Hz
            max_frequency: Highest frequency to report, in Hz

        Raises:
            ValueError: If the frequency range is empty or not positive
        """
        if min_frequency <= 0 or max_frequency <= min_frequency:
            raise ValueError(
                f"Invalid frequency range: {min_frequency}-{max_frequency}Hz"
            )
        self.threshold = threshold
        self._min_frequency = float(min_frequency)
        self._max_frequency = float(max_frequency)
        self.last_reject_reason: Optional[RejectReason] = None

    def estimate(self, buffer: np.ndarray, sample_rate: float) -> Optional[PitchEstimate]:
        """Estimate the pitch of one buffer, recording why it failed if it did."""
        estimate, reason = estimate_pitch(
            buffer,
            sample_rate,
            threshold=self._threshold,
            min_frequency=self._min_frequency,
            max_frequency=self._max_frequency,
        )
        self.last_reject_reason = reason
        return estimate

    def reset(self) -> None:
        self.last_reject_reason = None

    @property
    def threshold(self) -> float:
        """Get the YIN absolute threshold."""
        return self._threshold

    @threshold.setter
    def threshold(self, value: float) -> None:
        """Set the YIN absolute threshold."""
        if not 0.0 < value <= 1.0:
            raise ValueError("threshold must be in (0.0, 1.0]")
        self._threshold = float(value)

    @property
    def min_frequency(self) -> float:
        return self._min_frequency

    @property
    def max_frequency(self) -> float:
        return self._max_frequency
