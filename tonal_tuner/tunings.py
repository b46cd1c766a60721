"""Static catalog of instrument tunings.

Guitar strings are listed low to high (6 to 1), bass strings low to high,
and ukulele strings in re-entrant playing order (4 to 1).
"""

from typing import List, Optional, Sequence, Tuple, Union

from .logger import get_logger
from .note_types import Instrument, Note, Tuning
from .note_utils import create_note

logger = get_logger(__name__)


def _tuning(
    tuning_id: str, name: str, instrument: Instrument, strings: Sequence[Tuple[str, int]]
) -> Tuning:
    return Tuning(
        id=tuning_id,
        name=name,
        instrument=instrument,
        strings=tuple(create_note(note, octave) for note, octave in strings),
    )


GUITAR_TUNINGS: List[Tuning] = [
    _tuning(
        "guitar-standard",
        "Standard",
        Instrument.GUITAR,
        [("E", 2), ("A", 2), ("D", 3), ("G", 3), ("B", 3), ("E", 4)],
    ),
    _tuning(
        "guitar-drop-d",
        "Drop D",
        Instrument.GUITAR,
        [("D", 2), ("A", 2), ("D", 3), ("G", 3), ("B", 3), ("E", 4)],
    ),
    _tuning(
        "guitar-drop-c",
        "Drop C",
        Instrument.GUITAR,
        [("C", 2), ("G", 2), ("C", 3), ("F", 3), ("A", 3), ("D", 4)],
    ),
    _tuning(
        "guitar-half-step-down",
        "Half Step Down",
        Instrument.GUITAR,
        [("D#", 2), ("G#", 2), ("C#", 3), ("F#", 3), ("A#", 3), ("D#", 4)],
    ),
    _tuning(
        "guitar-open-g",
        "Open G",
        Instrument.GUITAR,
        [("D", 2), ("G", 2), ("D", 3), ("G", 3), ("B", 3), ("D", 4)],
    ),
    _tuning(
        "guitar-dadgad",
        "DADGAD",
        Instrument.GUITAR,
        [("D", 2), ("A", 2), ("D", 3), ("G", 3), ("A", 3), ("D", 4)],
    ),
]

BASS_TUNINGS: List[Tuning] = [
    _tuning(
        "bass-standard",
        "Standard",
        Instrument.BASS,
        [("E", 1), ("A", 1), ("D", 2), ("G", 2)],
    ),
    _tuning(
        "bass-drop-d",
        "Drop D",
        Instrument.BASS,
        [("D", 1), ("A", 1), ("D", 2), ("G", 2)],
    ),
    _tuning(
        "bass-half-step-down",
        "Half Step Down",
        Instrument.BASS,
        [("D#", 1), ("G#", 1), ("C#", 2), ("F#", 2)],
    ),
    _tuning(
        "bass-5-string",
        "5-String Standard",
        Instrument.BASS,
        [("B", 0), ("E", 1), ("A", 1), ("D", 2), ("G", 2)],
    ),
]

UKULELE_TUNINGS: List[Tuning] = [
    _tuning(
        "ukulele-standard",
        "Standard (C)",
        Instrument.UKULELE,
        [("G", 4), ("C", 4), ("E", 4), ("A", 4)],
    ),
    _tuning(
        "ukulele-low-g",
        "Low G",
        Instrument.UKULELE,
        [("G", 3), ("C", 4), ("E", 4), ("A", 4)],
    ),
    _tuning(
        "ukulele-d-tuning",
        "D Tuning",
        Instrument.UKULELE,
        [("A", 4), ("D", 4), ("F#", 4), ("B", 4)],
    ),
    _tuning(
        "ukulele-baritone",
        "Baritone",
        Instrument.UKULELE,
        [("D", 3), ("G", 3), ("B", 3), ("E", 4)],
    ),
]

ALL_TUNINGS: List[Tuning] = [*GUITAR_TUNINGS, *BASS_TUNINGS, *UKULELE_TUNINGS]


def get_tuning_by_id(tuning_id: str) -> Optional[Tuning]:
    """Look up a tuning by its id, e.g. 'guitar-drop-d'."""
    for tuning in ALL_TUNINGS:
        if tuning.id == tuning_id:
            return tuning
    logger.debug(f"No tuning with id {tuning_id!r}")
    return None


def get_tunings_for_instrument(instrument: Union[Instrument, str]) -> List[Tuning]:
    """All tunings for an instrument, in catalog order.

    Raises:
        ValueError: If the instrument name is unknown
    """
    instrument = Instrument(instrument)
    return [t for t in ALL_TUNINGS if t.instrument is instrument]


def get_default_tuning_for_instrument(instrument: Union[Instrument, str]) -> Optional[Tuning]:
    """The first catalog tuning of an instrument; None for chromatic."""
    tunings = get_tunings_for_instrument(instrument)
    return tunings[0] if tunings else None


def describe_strings(strings: Sequence[Note]) -> str:
    """Space-separated SPN names, e.g. 'E2 A2 D3 G3 B3 E4'."""
    return " ".join(str(note) for note in strings)
