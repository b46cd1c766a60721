"""Per-cycle pitch analysis with a hold window.

Each call to ``PitchAnalyzer.process_buffer`` is one cycle of the loop:

    buffer -> signal gate -> YIN -> smoother -> note resolver -> observers

A detection stays visible for ``hold_time`` seconds after the signal goes
away. Once the hold window has passed, a clear is scheduled ``clear_delay``
seconds out; if no new detection cancels it first, observers get a
pitch-lost event and the engine state is reset.
"""

from __future__ import annotations
import threading
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, ClassVar, Optional

import numpy as np

from ..logger import get_logger
from ..note_types import DetectedPitch, NoteMatch, RejectReason, Tuning
from ..note_utils import find_closest_tuning_note, frequency_to_chromatic_note
from ..audio.signal_gate import LIVE_SIGNAL_THRESHOLD, has_signal
from ..audio.yin import YinPitchEstimator
from ..core.events import PitchCallback, PitchEvents
from ..core.interfaces import IPitchEstimator
from ..core.timers import Clock, ScheduledTask, SystemClock, TaskScheduler
from .smoothing import DEFAULT_SMOOTHING_FACTOR, smooth_frequency

logger = get_logger(__name__)

TuningProvider = Callable[[], Optional[Tuning]]


class ListeningState(Enum):
    """Externally visible state of the analysis loop."""

    IDLE = "idle"  # No session
    NO_SIGNAL = "no signal"
    DETECTED = "detected"
    HOLDING = "holding"  # Signal dropped, last detection still shown


@dataclass
class EngineState:
    """Cross-cycle memory of the analysis loop."""

    previous_frequency: Optional[float] = None
    last_pitch: Optional[DetectedPitch] = None
    last_detection_time: Optional[float] = None
    pending_clear: Optional[ScheduledTask] = None


def resolve_note(frequency: float, tuning: Optional[Tuning]) -> NoteMatch:
    """Resolve against a tuning's strings, or chromatically when tuning is None."""
    if tuning is None:
        return frequency_to_chromatic_note(frequency)
    return find_closest_tuning_note(frequency, tuning)


class PitchAnalyzer:
    """Turns raw sample buffers into stabilized, labelled pitches."""

    MIN_CLARITY: ClassVar[float] = 0.65
    NOTE_HOLD_TIME: ClassVar[float] = 1.5  # Seconds
    CLEAR_DELAY: ClassVar[float] = 0.1  # Seconds

    def __init__(
        self,
        tuning_provider: Optional[TuningProvider] = None,
        estimator: Optional[IPitchEstimator] = None,
        clock: Optional[Clock] = None,
        events: Optional[PitchEvents] = None,
        signal_threshold: float = LIVE_SIGNAL_THRESHOLD,
        min_clarity: float = MIN_CLARITY,
        smoothing_factor: float = DEFAULT_SMOOTHING_FACTOR,
        hold_time: float = NOTE_HOLD_TIME,
        clear_delay: float = CLEAR_DELAY,
    ) -> None:
        """Initialize the analyzer.

        Args:
            tuning_provider: Returns the active tuning at the start of each
                cycle, or None for chromatic resolution
            estimator: Pitch estimator, or None for a default YinPitchEstimator
            clock: Time source for the hold window and clear timer
            events: Observers of pitch-detected / pitch-lost events
            signal_threshold: RMS level a buffer must exceed to be analysed
            min_clarity: Lowest clarity accepted as a detection
            smoothing_factor: Weight of a new estimate within the same-note band
            hold_time: Seconds a detection stays visible after the signal drops
            clear_delay: Seconds between the end of the hold window and the clear

        Raises:
            ValueError: If a parameter is out of range
        """
        self._tuning_provider: TuningProvider = tuning_provider or (lambda: None)
        self._estimator = estimator or YinPitchEstimator()
        self._scheduler = TaskScheduler(clock or SystemClock())
        self.events = events or PitchEvents()
        # A listener may stop the analyzer; later listeners must not see the pitch
        self.events.set_guard(lambda: self.is_running)

        self.signal_threshold = signal_threshold
        self.min_clarity = min_clarity
        self.smoothing_factor = smoothing_factor
        self.hold_time = hold_time
        self.clear_delay = clear_delay

        self._engine = EngineState()
        self._state = ListeningState.IDLE
        self._active_tuning: Optional[Tuning] = None
        self._last_reject_reason: Optional[RejectReason] = None
        self._lock = threading.RLock()

    # Session lifecycle

    def start(self) -> None:
        """Begin a session with empty engine state."""
        with self._lock:
            self._reset_engine()
            self._estimator.reset()
            self._active_tuning = self._tuning_provider()
            self._state = ListeningState.NO_SIGNAL
            logger.info(f"Analysis started ({self._describe_tuning(self._active_tuning)})")

    def stop(self) -> None:
        """End the session. Safe to call repeatedly; nothing is emitted afterwards."""
        with self._lock:
            if self._state is ListeningState.IDLE:
                return
            self._scheduler.cancel_all()
            self._reset_engine()
            self._estimator.reset()
            self._state = ListeningState.IDLE
            logger.info("Analysis stopped")

    @property
    def is_running(self) -> bool:
        return self._state is not ListeningState.IDLE

    # Cycle

    def process_buffer(self, buffer: np.ndarray, sample_rate: float) -> Optional[DetectedPitch]:
        """Run one analysis cycle.

        Args:
            buffer: Mono samples in [-1, 1]
            sample_rate: Sample rate of the buffer in Hz

        Returns:
            The pitch emitted this cycle, or None if nothing new was emitted
        """
        with self._lock:
            if not self.is_running:
                return None

            self._scheduler.run_due()
            now = self._scheduler.clock.now()
            tuning = self._snapshot_tuning()

            if not has_signal(buffer, self.signal_threshold):
                self._reject(RejectReason.INSUFFICIENT_SIGNAL, now)
                return None

            estimate = self._estimator.estimate(buffer, sample_rate)
            if estimate is None:
                reason = getattr(self._estimator, "last_reject_reason", None)
                self._reject(reason or RejectReason.NO_FUNDAMENTAL, now)
                return None

            logger.debug(f"Estimate: {estimate.frequency:.2f}Hz, clarity {estimate.clarity:.3f}")
            if estimate.clarity < self.min_clarity:
                self._reject(RejectReason.LOW_CLARITY, now)
                return None

            self._cancel_pending_clear()

            frequency = smooth_frequency(
                estimate.frequency, self._engine.previous_frequency, self.smoothing_factor
            )
            match = resolve_note(frequency, tuning)
            pitch = DetectedPitch(
                frequency=frequency,
                clarity=estimate.clarity,
                note=match.note,
                cents=match.cents,
                string_index=match.string_index,
                timestamp=now,
            )

            self._engine.previous_frequency = frequency
            self._engine.last_pitch = pitch
            self._engine.last_detection_time = now
            self._last_reject_reason = None
            if self._state is not ListeningState.DETECTED:
                logger.info(f"Pitch detected: {match.note} ({frequency:.2f}Hz, {match.cents:+d} cents)")
            self._state = ListeningState.DETECTED

            self.events.emit_pitch_detected(pitch)
            return pitch

    def poll(self) -> None:
        """Run due timers without a buffer, for cycles where no audio arrived."""
        with self._lock:
            if self.is_running:
                self._scheduler.run_due()

    # Tuning

    def _snapshot_tuning(self) -> Optional[Tuning]:
        tuning = self._tuning_provider()
        if tuning != self._active_tuning:
            logger.info(f"Tuning changed to {self._describe_tuning(tuning)}")
            self._active_tuning = tuning
            self._engine.previous_frequency = None
        return tuning

    @staticmethod
    def _describe_tuning(tuning: Optional[Tuning]) -> str:
        return "chromatic" if tuning is None else tuning.id

    # Hold window

    def _reject(self, reason: RejectReason, now: float) -> None:
        """Handle a cycle without an accepted detection."""
        self._last_reject_reason = reason
        logger.debug(f"No detection: {reason.value}")

        if self._engine.last_pitch is None:
            self._state = ListeningState.NO_SIGNAL
            return

        self._state = ListeningState.HOLDING
        if now - self._engine.last_detection_time < self.hold_time:
            return

        pending = self._engine.pending_clear
        if pending is None or not pending.pending:
            self._engine.pending_clear = self._scheduler.call_later(
                self.clear_delay, self._clear, name="clear-pitch"
            )

    def _clear(self) -> None:
        last = self._engine.last_pitch
        self._reset_engine()
        self._state = ListeningState.NO_SIGNAL
        logger.info(f"Pitch lost{f' (was {last.note})' if last and last.note else ''}")
        self.events.emit_pitch_lost()

    def _cancel_pending_clear(self) -> None:
        if self._engine.pending_clear is not None:
            self._engine.pending_clear.cancel()
            self._engine.pending_clear = None

    def _reset_engine(self) -> None:
        self._cancel_pending_clear()
        self._engine = EngineState()
        self._last_reject_reason = None

    # State inspection

    @property
    def state(self) -> ListeningState:
        return self._state

    @property
    def detected_pitch(self) -> Optional[DetectedPitch]:
        """The pitch currently visible to observers, if any."""
        return self._engine.last_pitch

    @property
    def engine_state(self) -> EngineState:
        """A copy of the cross-cycle state."""
        with self._lock:
            return replace(self._engine)

    @property
    def last_reject_reason(self) -> Optional[RejectReason]:
        return self._last_reject_reason

    @property
    def clock(self) -> Clock:
        return self._scheduler.clock

    def add_callback(self, callback: PitchCallback) -> None:
        """Register a callback receiving each DetectedPitch, or None when it is lost."""
        self.events.on_pitch(callback)

    # Property getters and setters

    @property
    def signal_threshold(self) -> float:
        return self._signal_threshold

    @signal_threshold.setter
    def signal_threshold(self, value: float) -> None:
        if value < 0:
            raise ValueError("signal_threshold must not be negative")
        self._signal_threshold = float(value)

    @property
    def min_clarity(self) -> float:
        """Get the lowest clarity accepted as a detection."""
        return self._min_clarity

    @min_clarity.setter
    def min_clarity(self, value: float) -> None:
        """Set the lowest clarity accepted as a detection."""
        if not 0.0 <= value <= 1.0:
            raise ValueError("min_clarity must be between 0.0 and 1.0")
        self._min_clarity = float(value)

    @property
    def smoothing_factor(self) -> float:
        return self._smoothing_factor

    @smoothing_factor.setter
    def smoothing_factor(self, value: float) -> None:
        if not 0.0 <= value <= 1.0:
            raise ValueError("smoothing_factor must be between 0.0 and 1.0")
        self._smoothing_factor = float(value)

    @property
    def hold_time(self) -> float:
        """Get the hold window in seconds."""
        return self._hold_time

    @hold_time.setter
    def hold_time(self, value: float) -> None:
        """Set the hold window in seconds."""
        if value < 0:
            raise ValueError("hold_time must not be negative")
        self._hold_time = float(value)

    @property
    def clear_delay(self) -> float:
        return self._clear_delay

    @clear_delay.setter
    def clear_delay(self, value: float) -> None:
        if value < 0:
            raise ValueError("clear_delay must not be negative")
        self._clear_delay = float(value)
