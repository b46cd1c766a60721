"""Silence rejection for sample buffers."""

import numpy as np

DEFAULT_SIGNAL_THRESHOLD: float = 0.003  # Library default
LIVE_SIGNAL_THRESHOLD: float = 0.008  # Used by the analysis loop


def rms(buffer: np.ndarray) -> float:
    """Root-mean-square amplitude of a buffer; 0.0 for an empty buffer."""
    samples = np.asarray(buffer, dtype=np.float64)
    if samples.size == 0:
        return 0.0
    return float(np.sqrt(np.mean(samples**2)))


def has_signal(buffer: np.ndarray, threshold: float = DEFAULT_SIGNAL_THRESHOLD) -> bool:
    """Return True if the buffer's RMS amplitude is strictly above threshold."""
    return rms(buffer) > threshold
