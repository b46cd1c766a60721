"""Event system for Tonal Tuner components."""

from typing import Dict, List, Callable, Any, Optional
from enum import Enum, auto

from ..logger import get_logger
from ..note_types import DetectedPitch

logger = get_logger(__name__)

PitchCallback = Callable[[Optional[DetectedPitch]], None]


class PitchEventType(Enum):
    """Event types for pitch detection."""

    PITCH_DETECTED = auto()
    PITCH_LOST = auto()
    ERROR = auto()


class EventEmitter:
    """Event emitter for Tonal Tuner components."""

    def __init__(self):
        """Initialize the event emitter."""
        self._listeners: Dict[Any, List[Callable]] = {}
        # Checked before each listener; emission stops once it returns False
        self.guard: Optional[Callable[[], bool]] = None

    def on(self, event_type: Any, callback: Callable) -> None:
        """Register a callback for an event type.

        Args:
            event_type: Event type to listen for
            callback: Function to call when the event occurs
        """
        if event_type not in self._listeners:
            self._listeners[event_type] = []

        if callback not in self._listeners[event_type]:
            self._listeners[event_type].append(callback)
            logger.debug(f"Added listener for event {event_type}")

    def off(self, event_type: Any, callback: Callable) -> None:
        """Remove a callback; unknown callbacks are ignored."""
        listeners = self._listeners.get(event_type, [])
        if callback in listeners:
            listeners.remove(callback)
            logger.debug(f"Removed listener for event {event_type}")

    def emit(self, event_type: Any, *args, **kwargs) -> None:
        """Emit an event.

        A listener that raises is logged and skipped; the remaining
        listeners still run.

        Args:
            event_type: Event type to emit
            *args: Positional arguments to pass to listeners
            **kwargs: Keyword arguments to pass to listeners
        """
        if event_type not in self._listeners:
            return

        for callback in list(self._listeners[event_type]):
            if self.guard is not None and not self.guard():
                logger.debug(f"Emission of {event_type} cut short")
                return
            try:
                callback(*args, **kwargs)
            except Exception as e:
                logger.error(f"Error in event listener for {event_type}: {e}", exc_info=True)

    def listener_count(self, event_type: Any) -> int:
        return len(self._listeners.get(event_type, []))

    def clear(self) -> None:
        """Remove all event listeners."""
        self._listeners = {}
        logger.debug("Cleared all event listeners")


class PitchEvents:
    """Event emitter specifically for pitch detection events."""

    def __init__(self):
        """Initialize the pitch detection events."""
        self._emitter = EventEmitter()
        self._pitch_callbacks: Dict[PitchCallback, Callable[[], None]] = {}

    def on_pitch_detected(self, callback: Callable[[DetectedPitch], None]) -> None:
        """Register a callback for new detections."""
        self._emitter.on(PitchEventType.PITCH_DETECTED, callback)

    def on_pitch_lost(self, callback: Callable[[], None]) -> None:
        """Register a callback for the transition to 'no pitch'."""
        self._emitter.on(PitchEventType.PITCH_LOST, callback)

    def on_error(self, callback: Callable[[str], None]) -> None:
        """Register a callback for session errors."""
        self._emitter.on(PitchEventType.ERROR, callback)

    def on_pitch(self, callback: PitchCallback) -> None:
        """Register one callback for both events; it receives None when the pitch is lost.

        Args:
            callback: Function taking a DetectedPitch or None
        """
        if callback in self._pitch_callbacks:
            return
        lost = lambda: callback(None)  # noqa: E731
        self._pitch_callbacks[callback] = lost
        self._emitter.on(PitchEventType.PITCH_DETECTED, callback)
        self._emitter.on(PitchEventType.PITCH_LOST, lost)

    def remove_pitch_callback(self, callback: PitchCallback) -> None:
        """Undo on_pitch for a callback."""
        lost = self._pitch_callbacks.pop(callback, None)
        self._emitter.off(PitchEventType.PITCH_DETECTED, callback)
        if lost is not None:
            self._emitter.off(PitchEventType.PITCH_LOST, lost)

    def set_guard(self, guard: Optional[Callable[[], bool]]) -> None:
        """Stop delivering an event to further listeners once guard() is False."""
        self._emitter.guard = guard

    def emit_pitch_detected(self, pitch: DetectedPitch) -> None:
        """Emit a pitch detected event.

        Args:
            pitch: The stabilized pitch
        """
        self._emitter.emit(PitchEventType.PITCH_DETECTED, pitch)

    def emit_pitch_lost(self) -> None:
        """Emit a pitch lost event."""
        self._emitter.emit(PitchEventType.PITCH_LOST)

    def emit_error(self, message: str) -> None:
        self._emitter.emit(PitchEventType.ERROR, message)

    def clear(self) -> None:
        """Remove all event listeners."""
        self._emitter.clear()
        self._pitch_callbacks = {}
