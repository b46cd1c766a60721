"""A tuner session: pulls buffers from a source and drives the analysis loop."""

from __future__ import annotations
import threading
import time
from typing import Callable, Optional

from ..logger import get_logger
from ..note_types import DetectedPitch, Tuning
from ..tunings import get_tuning_by_id
from ..core.events import PitchCallback
from ..core.interfaces import IBufferSource, ITuningSession
from ..detection.pitch_analyzer import PitchAnalyzer

logger = get_logger(__name__)


class TuningSession(ITuningSession):
    """Runs one analysis cycle per frame, at most ``frame_rate`` times a second.

    The active tuning may be changed from any thread; the loop reads it once
    at the start of each cycle. ``stop()`` may also be called from any
    thread, including from inside a pitch callback.
    """

    def __init__(
        self,
        source: IBufferSource,
        tuning: Optional[Tuning] = None,
        frame_rate: float = 60.0,
        analyzer_factory: Optional[Callable[[Callable[[], Optional[Tuning]]], PitchAnalyzer]] = None,
    ) -> None:
        """Initialize the session.

        Args:
            source: Where buffers come from
            tuning: Initial tuning, or None for chromatic
            frame_rate: Upper bound on cycles per second in background mode
            analyzer_factory: Builds the analyzer given the session's tuning getter

        Raises:
            ValueError: If frame_rate is not positive
        """
        if frame_rate <= 0:
            raise ValueError("frame_rate must be positive")

        self._source = source
        self._frame_rate = float(frame_rate)
        self._tuning = tuning
        self._tuning_lock = threading.Lock()

        factory = analyzer_factory or (lambda provider: PitchAnalyzer(tuning_provider=provider))
        self._analyzer = factory(self.get_tuning)

        self._cycle_lock = threading.RLock()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._callback: Optional[PitchCallback] = None
        self._error: Optional[str] = None
        self._closed = False

    # Tuning (any thread)

    def get_tuning(self) -> Optional[Tuning]:
        with self._tuning_lock:
            return self._tuning

    def set_tuning(self, tuning: Optional[Tuning]) -> None:
        """Select the tuning for the next cycle; None switches to chromatic."""
        with self._tuning_lock:
            self._tuning = tuning

    def set_tuning_by_id(self, tuning_id: str) -> Tuning:
        """Select a catalog tuning by id.

        Raises:
            ValueError: If the id is not in the catalog
        """
        tuning = get_tuning_by_id(tuning_id)
        if tuning is None:
            raise ValueError(f"Unknown tuning: {tuning_id}")
        self.set_tuning(tuning)
        return tuning

    # Lifecycle

    def start(
        self,
        callback: Optional[PitchCallback] = None,
        background: bool = True,
    ) -> bool:
        """Start the session.

        Args:
            callback: Receives each DetectedPitch, and None when the pitch is lost
            background: If True, cycles run on a worker thread; otherwise the
                caller drives them with run_cycle()

        Returns:
            True if started, False if the session was already running or is closed
        """
        with self._cycle_lock:
            if self._closed:
                logger.warning("Tuning session is closed")
                return False
            if self.is_listening:
                logger.warning("Tuning session already running")
                return False

            self._error = None
            self._source.reset()
            self._stop_event.clear()
            if callback is not None:
                self._callback = callback
                self._analyzer.add_callback(callback)
            self._analyzer.start()

        if background:
            self._thread = threading.Thread(target=self._run, name="tuning-session", daemon=True)
            self._thread.start()

        logger.info(
            f"Tuning session started at {self._source.sample_rate}Hz, "
            f"{self._source.buffer_size} samples per buffer"
        )
        return True

    def stop(self) -> None:
        """Stop the session. Idempotent; no callback fires after this returns.

        The source stays open so the session can be started again.
        """
        self._stop_event.set()
        with self._cycle_lock:
            was_running = self.is_listening
            self._analyzer.stop()
            if self._callback is not None:
                self._analyzer.events.remove_pitch_callback(self._callback)
                self._callback = None

        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=5.0)
        self._thread = None

        if was_running:
            logger.info("Tuning session stopped")

    def close(self) -> None:
        """Stop the session and release the source. A closed session cannot be restarted."""
        self.stop()
        with self._cycle_lock:
            if not self._closed:
                self._closed = True
                self._source.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def run_cycle(self) -> bool:
        """Read one buffer and analyse it.

        Returns:
            False if the session is not running or has just ended because
            the source is exhausted or failed
        """
        with self._cycle_lock:
            if not self._analyzer.is_running:
                return False

            try:
                buffer = self._source.read()
            except Exception as e:
                self._error = str(e) or e.__class__.__name__
                logger.error(f"Audio source failed: {self._error}", exc_info=True)
                self._analyzer.events.emit_error(self._error)
                self._end()
                return False

            if buffer is None:
                logger.info("Audio source exhausted")
                self._end()
                return False

            self._analyzer.process_buffer(buffer, self._source.sample_rate)
            return True

    def _end(self) -> None:
        self._stop_event.set()
        self._analyzer.stop()

    def _run(self) -> None:
        period = 1.0 / self._frame_rate
        while not self._stop_event.is_set():
            started = time.monotonic()
            if not self.run_cycle():
                break
            remaining = period - (time.monotonic() - started)
            if remaining > 0:
                self._stop_event.wait(remaining)

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until a background session ends. Returns False on timeout."""
        thread = self._thread
        if thread is None:
            return True
        thread.join(timeout)
        return not thread.is_alive()

    # Status

    @property
    def is_listening(self) -> bool:
        return self._analyzer.is_running

    @property
    def error(self) -> Optional[str]:
        """Why the session ended abnormally, if it did."""
        return self._error

    @property
    def detected_pitch(self) -> Optional[DetectedPitch]:
        return self._analyzer.detected_pitch

    @property
    def analyzer(self) -> PitchAnalyzer:
        return self._analyzer

    @property
    def source(self) -> IBufferSource:
        return self._source
