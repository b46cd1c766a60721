"""Tonal Tuner: real-time pitch detection and note resolution for instrument tuning."""

from .note_types import DetectedPitch, Instrument, Note, NoteMatch, PitchEstimate, Tuning, TuningStatus
from .note_utils import find_closest_tuning_note, frequency_to_chromatic_note
from .tunings import ALL_TUNINGS, get_tuning_by_id, get_tunings_for_instrument
from .audio import YinPitchEstimator, detect_pitch, has_signal
from .detection import ListeningState, PitchAnalyzer, smooth_frequency
from .services import TuningSession

__version__ = "0.1.0"

__all__ = [
    "DetectedPitch",
    "Instrument",
    "Note",
    "NoteMatch",
    "PitchEstimate",
    "Tuning",
    "TuningStatus",
    "find_closest_tuning_note",
    "frequency_to_chromatic_note",
    "ALL_TUNINGS",
    "get_tuning_by_id",
    "get_tunings_for_instrument",
    "YinPitchEstimator",
    "detect_pitch",
    "has_signal",
    "ListeningState",
    "PitchAnalyzer",
    "smooth_frequency",
    "TuningSession",
]
