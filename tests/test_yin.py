import numpy as np
import pytest

from tonal_tuner.note_types import RejectReason
from tonal_tuner.audio.yin import (
    YinPitchEstimator,
    absolute_threshold,
    cumulative_mean_normalized_difference,
    detect_pitch,
    difference_function,
    estimate_pitch,
    parabolic_interpolation,
    period_bounds,
)

from conftest import BUFFER_SIZE, SAMPLE_RATE, sine


@pytest.mark.parametrize("frequency", [82.41, 110.0, 196.0, 329.63, 440.0])
def test_detects_sine_frequency(frequency):
    estimate = detect_pitch(sine(frequency), SAMPLE_RATE)

    assert estimate is not None
    assert estimate.frequency == pytest.approx(frequency, abs=0.5)
    assert estimate.clarity > 0.9


def test_detects_110hz_at_48khz():
    estimate = detect_pitch(sine(110.0, sample_rate=48000), 48000)
    assert estimate is not None
    assert abs(estimate.frequency - 110.0) < 0.5


def test_detects_fundamental_with_harmonics():
    buffer = sine(110.0, amplitude=0.4) + sine(220.0, amplitude=0.2) + sine(330.0, amplitude=0.1)
    estimate = detect_pitch(buffer, SAMPLE_RATE)
    assert estimate is not None
    assert estimate.frequency == pytest.approx(110.0, abs=1.0)


def test_is_idempotent():
    buffer = sine(146.83)
    assert detect_pitch(buffer, SAMPLE_RATE) == detect_pitch(buffer, SAMPLE_RATE)


def test_silence_has_no_pitch():
    estimate, reason = estimate_pitch(np.zeros(BUFFER_SIZE), SAMPLE_RATE)
    assert estimate is None
    assert reason is RejectReason.NO_FUNDAMENTAL


def test_noise_has_no_pitch():
    rng = np.random.default_rng(0)
    noise = rng.uniform(-0.5, 0.5, BUFFER_SIZE)
    assert detect_pitch(noise, SAMPLE_RATE) is None


def test_buffer_too_short_for_range():
    # max_period = 16 < min_period = 23
    estimate, reason = estimate_pitch(sine(440.0, num_samples=32), SAMPLE_RATE)
    assert estimate is None
    assert reason is RejectReason.NO_FUNDAMENTAL


def test_invalid_sample_rate():
    with pytest.raises(ValueError):
        detect_pitch(sine(440.0), 0)


def test_period_bounds():
    assert period_bounds(4096, 44100) == (23, 1603)
    # Capped at half the buffer
    assert period_bounds(2048, 44100) == (23, 1024)
    assert period_bounds(4096, 44100, min_frequency=80.0, max_frequency=1000.0) == (45, 551)


def test_difference_function_is_zero_at_period():
    # Period of exactly 50 samples
    t = np.arange(400)
    samples = np.sin(2 * np.pi * t / 50)
    diff = difference_function(samples, 200)

    assert diff[0] == 0.0
    assert diff[50] == pytest.approx(0.0, abs=1e-9)
    assert diff[25] > 100.0


def test_cmnd_first_value_is_one():
    cmnd = cumulative_mean_normalized_difference(np.array([0.0, 4.0, 2.0, 6.0]))
    # running sums 4, 6, 12
    np.testing.assert_allclose(cmnd, [1.0, 1.0, 2.0 * 2 / 6, 6.0 * 3 / 12])


def test_cmnd_zero_running_sum_is_one():
    cmnd = cumulative_mean_normalized_difference(np.array([0.0, 0.0, 2.0, 2.0]))
    np.testing.assert_allclose(cmnd, [1.0, 1.0, 2.0, 1.5])

    np.testing.assert_array_equal(cumulative_mean_normalized_difference(np.zeros(5)), np.ones(5))


def test_absolute_threshold_takes_first_dip_not_global_minimum():
    cmnd = np.array([1.0, 0.9, 0.2, 0.1, 0.15, 0.05, 0.3])
    assert absolute_threshold(cmnd, 1, 0.25) == 3


def test_absolute_threshold_respects_min_period():
    cmnd = np.array([1.0, 0.1, 0.9, 0.2, 0.3])
    assert absolute_threshold(cmnd, 2, 0.25) == 3


def test_absolute_threshold_without_dip():
    assert absolute_threshold(np.array([1.0, 0.8, 0.6, 0.7]), 1, 0.25) is None


def test_parabolic_interpolation_vertex():
    # Parabola through (0, 1.0), (1, 0.2), (2, 0.4) has its vertex at 1.3
    assert parabolic_interpolation(np.array([1.0, 0.2, 0.4]), 1) == pytest.approx(1.3)


def test_parabolic_interpolation_degenerate_falls_back_to_integer_lag():
    assert parabolic_interpolation(np.array([1.0, 0.5, 0.5, 0.5]), 2) == 2.0


def test_parabolic_interpolation_at_edges():
    cmnd = np.array([1.0, 0.2, 0.4])
    assert parabolic_interpolation(cmnd, 0) == 0.0
    assert parabolic_interpolation(cmnd, 2) == 2.0


def test_estimator_records_reject_reason():
    estimator = YinPitchEstimator()
    assert estimator.estimate(np.zeros(BUFFER_SIZE), SAMPLE_RATE) is None
    assert estimator.last_reject_reason is RejectReason.NO_FUNDAMENTAL

    assert estimator.estimate(sine(220.0), SAMPLE_RATE) is not None
    assert estimator.last_reject_reason is None


def test_estimator_frequency_range():
    # 60Hz has a period longer than the 80Hz lag limit
    estimator = YinPitchEstimator(min_frequency=80.0, max_frequency=500.0)
    assert estimator.estimate(sine(60.0), SAMPLE_RATE) is None
    assert estimator.estimate(sine(220.0), SAMPLE_RATE).frequency == pytest.approx(220.0, abs=0.5)


def test_estimator_validation():
    with pytest.raises(ValueError):
        YinPitchEstimator(min_frequency=0)
    with pytest.raises(ValueError):
        YinPitchEstimator(min_frequency=500.0, max_frequency=100.0)
    with pytest.raises(ValueError):
        YinPitchEstimator(threshold=0.0)

    estimator = YinPitchEstimator()
    estimator.threshold = 0.1
    assert estimator.threshold == 0.1
    with pytest.raises(ValueError):
        estimator.threshold = 1.5
