"""Type definitions for the Tonal Tuner project."""

from typing import Optional, Tuple
from dataclasses import dataclass, field
from enum import Enum


class Instrument(str, Enum):
    """Instruments known to the tuning catalog."""

    CHROMATIC = "chromatic"
    GUITAR = "guitar"
    BASS = "bass"
    UKULELE = "ukulele"


class TuningStatus(Enum):
    """How a pitch relates to its reference note."""

    IN_TUNE = "in tune"
    FLAT = "too low"
    SHARP = "too high"


IN_TUNE_CENTS: int = 5  # Display tolerance


def tuning_status(cents: int, tolerance: int = IN_TUNE_CENTS) -> TuningStatus:
    """Classify a cents offset as in tune, too low or too high."""
    if abs(cents) <= tolerance:
        return TuningStatus.IN_TUNE
    return TuningStatus.FLAT if cents < 0 else TuningStatus.SHARP


@dataclass(frozen=True)
class Note:
    """An equal-tempered note (A4 = 440Hz).

    Build notes with ``note_utils.create_note`` so the frequency is always
    derived from the name and octave.
    """

    name: str  # Pitch class, e.g. 'C#'
    octave: int  # SPN octave, e.g. 4 for middle C
    frequency: float  # Hz

    def __str__(self):
        return f"{self.name}{self.octave}"


@dataclass(frozen=True)
class Tuning:
    """The open-string pitches of an instrument, in playing order."""

    id: str
    name: str
    instrument: Instrument
    strings: Tuple[Note, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class PitchEstimate:
    """Raw estimator output for one analysis cycle."""

    frequency: float  # Hz
    clarity: float  # 1 - normalized difference at the chosen lag


@dataclass(frozen=True)
class NoteMatch:
    """A frequency resolved against a set of candidate notes."""

    note: Note
    cents: int  # Rounded offset from note.frequency
    string_index: Optional[int] = None  # Index into Tuning.strings, None for chromatic


@dataclass(frozen=True)
class DetectedPitch:
    """The stabilized pitch published to observers."""

    frequency: float  # Smoothed frequency in Hz
    clarity: float
    note: Optional[Note]
    cents: int
    string_index: Optional[int] = None
    timestamp: float = 0.0  # Clock time of the detection, in seconds

    @property
    def status(self) -> TuningStatus:
        return tuning_status(self.cents)


class RejectReason(Enum):
    """Why an analysis cycle produced no detection. None of these are fatal."""

    INSUFFICIENT_SIGNAL = "insufficient signal"
    NO_FUNDAMENTAL = "no fundamental found"
    LOW_CLARITY = "low clarity"
    INVALID_FREQUENCY_RANGE = "frequency out of range"
