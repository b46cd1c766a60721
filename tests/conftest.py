import numpy as np
import pytest

from tonal_tuner.note_types import PitchEstimate
from tonal_tuner.core.interfaces import IPitchEstimator
from tonal_tuner.tunings import get_tuning_by_id

SAMPLE_RATE = 44100
BUFFER_SIZE = 4096
E2_FREQ = 82.41


def sine(frequency, num_samples=BUFFER_SIZE, sample_rate=SAMPLE_RATE, amplitude=0.5):
    t = np.arange(num_samples, dtype=np.float64) / sample_rate
    return (amplitude * np.sin(2 * np.pi * frequency * t)).astype(np.float32)


class FixedEstimator(IPitchEstimator):
    """Returns whatever frequency/clarity the test sets; None frequency means no pitch."""

    def __init__(self, frequency=110.0, clarity=0.95):
        self.frequency = frequency
        self.clarity = clarity
        self.calls = 0

    def estimate(self, buffer, sample_rate):
        self.calls += 1
        if self.frequency is None:
            return None
        return PitchEstimate(frequency=self.frequency, clarity=self.clarity)

    def reset(self):
        pass


@pytest.fixture
def guitar_standard():
    return get_tuning_by_id("guitar-standard")


@pytest.fixture
def e2_buffer():
    return sine(E2_FREQ)


@pytest.fixture
def silence():
    return np.zeros(BUFFER_SIZE, dtype=np.float32)
