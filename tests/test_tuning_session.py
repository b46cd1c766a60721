import numpy as np
import pytest

from tonal_tuner.core.interfaces import IBufferSource
from tonal_tuner.core.timers import ManualClock
from tonal_tuner.audio.audio_providers import ArrayBufferSource
from tonal_tuner.detection.pitch_analyzer import PitchAnalyzer
from tonal_tuner.services.tuning_session import TuningSession
from tonal_tuner.tunings import get_tuning_by_id

from conftest import E2_FREQ, SAMPLE_RATE, sine

HOP = 735


class FailingSource(IBufferSource):
    def __init__(self, fail_after=0):
        self.reads = 0
        self.fail_after = fail_after
        self.closed = False

    def read(self):
        self.reads += 1
        if self.reads > self.fail_after:
            raise IOError("device unplugged")
        return sine(220.0)

    def reset(self):
        pass

    def close(self):
        self.closed = True

    @property
    def sample_rate(self):
        return SAMPLE_RATE

    @property
    def buffer_size(self):
        return 4096


def e2_then_silence(tone_seconds=1.0, silence_seconds=2.0):
    tone = sine(E2_FREQ, num_samples=int(SAMPLE_RATE * tone_seconds))
    return np.concatenate([tone, np.zeros(int(SAMPLE_RATE * silence_seconds), dtype=np.float32)])


def manual_session(source, tuning=None):
    clock = ManualClock()
    session = TuningSession(
        source,
        tuning=tuning,
        analyzer_factory=lambda provider: PitchAnalyzer(tuning_provider=provider, clock=clock),
    )
    return session, clock


def run_to_end(session, clock, step=HOP / SAMPLE_RATE):
    cycles = 0
    while session.run_cycle():
        clock.advance(step)
        cycles += 1
    return cycles


def test_replay_detects_then_clears(guitar_standard):
    source = ArrayBufferSource(e2_then_silence(), SAMPLE_RATE, hop_size=HOP)
    session, clock = manual_session(source, guitar_standard)
    received = []

    assert session.start(received.append, background=False)
    assert session.is_listening
    run_to_end(session, clock)

    pitches = [p for p in received if p is not None]
    assert pitches
    assert {str(p.note) for p in pitches} == {"E2"}
    assert received[-1] is None
    assert received.count(None) == 1
    assert not session.is_listening
    assert session.error is None


def test_detected_pitch_reflects_latest_state(guitar_standard):
    source = ArrayBufferSource(sine(E2_FREQ, num_samples=SAMPLE_RATE), SAMPLE_RATE, hop_size=HOP)
    session, clock = manual_session(source, guitar_standard)
    session.start(background=False)

    assert session.detected_pitch is None
    session.run_cycle()
    assert str(session.detected_pitch.note) == "E2"
    session.stop()


def test_source_error_stops_session():
    source = FailingSource(fail_after=2)
    session, clock = manual_session(source)
    errors = []
    session.analyzer.events.on_error(errors.append)

    session.start(background=False)
    assert session.run_cycle()
    assert session.run_cycle()
    assert not session.run_cycle()

    assert session.error == "device unplugged"
    assert errors == ["device unplugged"]
    assert not session.is_listening


def test_restart_clears_error():
    source = FailingSource(fail_after=0)
    session, _ = manual_session(source)
    session.start(background=False)
    session.run_cycle()
    assert session.error

    source.fail_after = 100
    session.start(background=False)
    assert session.error is None


def test_set_tuning_takes_effect_next_cycle():
    source = ArrayBufferSource(sine(110.0, num_samples=SAMPLE_RATE), SAMPLE_RATE, hop_size=HOP)
    session, _ = manual_session(source)
    received = []
    session.start(received.append, background=False)

    session.run_cycle()
    assert received[-1].string_index is None

    session.set_tuning(get_tuning_by_id("bass-standard"))
    session.run_cycle()
    # 110Hz is a whole tone above the G2 string
    assert str(received[-1].note) == "G2"
    assert received[-1].string_index == 3
    assert received[-1].cents == pytest.approx(200, abs=8)

    assert session.set_tuning_by_id("guitar-standard").id == "guitar-standard"
    session.run_cycle()
    assert str(received[-1].note) == "A2"
    session.stop()


def test_set_unknown_tuning():
    session, _ = manual_session(ArrayBufferSource(np.zeros(8192), SAMPLE_RATE))
    with pytest.raises(ValueError):
        session.set_tuning_by_id("banjo-open-g")


def test_start_twice_and_stop_idempotent():
    source = ArrayBufferSource(np.zeros(SAMPLE_RATE), SAMPLE_RATE, hop_size=HOP)
    session, _ = manual_session(source)

    assert session.start(background=False)
    assert not session.start(background=False)
    session.stop()
    session.stop()
    assert not session.is_listening
    assert not session.run_cycle()


def test_restart_after_stop(guitar_standard):
    source = ArrayBufferSource(sine(E2_FREQ, num_samples=4 * 4096), SAMPLE_RATE)
    session, _ = manual_session(source, guitar_standard)
    received = []

    session.start(received.append, background=False)
    assert session.run_cycle()
    session.stop()

    assert session.start(received.append, background=False)
    assert session.run_cycle()
    assert session.is_listening
    assert len(received) == 2
    assert str(received[-1].note) == "E2"
    session.stop()


def test_restart_starts_a_fresh_buffer():
    source = ArrayBufferSource(np.arange(16, dtype=np.float32), SAMPLE_RATE, buffer_size=8, hop_size=2)
    session, _ = manual_session(source)
    session.start(background=False)
    np.testing.assert_array_equal(source.read(), np.arange(8))
    session.stop()

    # After a restart the next read is a full buffer of unseen samples
    session.start(background=False)
    np.testing.assert_array_equal(source.read(), np.arange(8, 16))
    session.stop()


def test_stop_keeps_source_open():
    source = FailingSource(fail_after=100)
    session, _ = manual_session(source)
    session.start(background=False)
    session.stop()
    assert not source.closed


def test_closed_session_cannot_restart():
    source = FailingSource(fail_after=100)
    session, _ = manual_session(source)
    session.start(background=False)
    session.close()
    session.close()

    assert source.closed
    assert not session.is_listening
    assert not session.start(background=False)


def test_context_manager_closes_source():
    source = FailingSource(fail_after=100)
    with manual_session(source)[0] as session:
        session.start(background=False)
        assert session.run_cycle()
    assert source.closed
    assert not session.is_listening


def test_stop_from_callback_silences_later_callbacks(guitar_standard):
    source = ArrayBufferSource(sine(E2_FREQ, num_samples=SAMPLE_RATE), SAMPLE_RATE, hop_size=HOP)
    session, _ = manual_session(source, guitar_standard)
    later = []
    session.start(lambda pitch: session.stop(), background=False)
    session.analyzer.add_callback(later.append)

    session.run_cycle()
    assert later == []
    assert not session.is_listening


def test_no_callbacks_after_stop(guitar_standard):
    source = ArrayBufferSource(sine(E2_FREQ, num_samples=SAMPLE_RATE), SAMPLE_RATE, hop_size=HOP)
    session, _ = manual_session(source, guitar_standard)
    received = []
    session.start(received.append, background=False)
    session.run_cycle()
    session.stop()

    count = len(received)
    session.analyzer.process_buffer(sine(E2_FREQ), SAMPLE_RATE)
    assert len(received) == count


def test_stop_from_callback(guitar_standard):
    source = ArrayBufferSource(sine(E2_FREQ, num_samples=SAMPLE_RATE), SAMPLE_RATE, hop_size=HOP)
    session, _ = manual_session(source, guitar_standard)
    received = []

    def on_pitch(pitch):
        received.append(pitch)
        session.stop()

    session.start(on_pitch, background=False)
    session.run_cycle()
    assert not session.run_cycle()
    assert len(received) == 1


def test_background_session_runs_until_source_ends(guitar_standard):
    source = ArrayBufferSource(sine(E2_FREQ, num_samples=SAMPLE_RATE // 2), SAMPLE_RATE, hop_size=HOP)
    session = TuningSession(source, tuning=guitar_standard, frame_rate=1000.0)
    received = []

    assert session.start(received.append)
    assert session.wait(timeout=10.0)
    assert not session.is_listening
    assert received and str(received[0].note) == "E2"
    session.stop()


def test_invalid_frame_rate():
    with pytest.raises(ValueError):
        TuningSession(ArrayBufferSource(np.zeros(8192), SAMPLE_RATE), frame_rate=0)
