"""Utility functions for working with musical notes and frequencies.

All math is twelve-tone equal temperament referenced to A4 = 440Hz. Cents
are rounded half up (toward positive infinity), so a deviation of exactly
+0.5 cent reports as +1 and -0.5 cent reports as 0.
"""

import math
from typing import Dict, List, Sequence, Union

from .logger import get_logger
from .note_types import IN_TUNE_CENTS, Note, NoteMatch, Tuning, tuning_status

logger = get_logger(__name__)

A4_FREQ: float = 440.0
A4_OCTAVE: int = 4
A4_INDEX: int = 9  # Position of A in NOTE_NAMES

NOTE_NAMES: List[str] = ["C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B"]

SHARP_TO_FLAT: Dict[str, str] = {
    "C#": "Db",
    "D#": "Eb",
    "F#": "Gb",
    "G#": "Ab",
    "A#": "Bb",
}
FLAT_TO_SHARP: Dict[str, str] = {v: k for k, v in SHARP_TO_FLAT.items()}

STRICT_IN_TUNE_CENTS: int = 3  # Confirmation tolerance
NEEDLE_RANGE_CENTS: int = 50


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def normalize_note_name(name: str) -> str:
    """Return the sharp spelling of a pitch-class name ('Bb' -> 'A#').

    Unknown names are returned unchanged.
    """
    name = name.strip()
    return FLAT_TO_SHARP.get(name, name)


def note_to_frequency(name: str, octave: int) -> float:
    """Equal-temperament frequency of a note, or 0.0 for an unknown name."""
    sharp_name = normalize_note_name(name)
    if sharp_name not in NOTE_NAMES:
        logger.debug(f"Unknown note name: {name!r}")
        return 0.0

    semitones_from_a4 = (octave - A4_OCTAVE) * 12 + (NOTE_NAMES.index(sharp_name) - A4_INDEX)
    return A4_FREQ * 2.0 ** (semitones_from_a4 / 12.0)


def create_note(name: str, octave: int) -> Note:
    """Build a Note whose frequency is derived from its name and octave.

    Raises:
        ValueError: If the name is not a chromatic pitch class
    """
    sharp_name = normalize_note_name(name)
    if sharp_name not in NOTE_NAMES:
        raise ValueError(f"Unknown note name: {name!r}")
    return Note(name=sharp_name, octave=int(octave), frequency=note_to_frequency(sharp_name, octave))


def cents_between(frequency: float, reference: float) -> float:
    """Unrounded pitch difference in cents: 1200 * log2(frequency / reference)."""
    return 1200.0 * math.log2(frequency / reference)


def frequency_to_chromatic_note(frequency: float) -> NoteMatch:
    """Resolve a frequency to the nearest chromatic note and its cents offset.

    Non-positive frequencies resolve to A4 with 0 cents.
    """
    if frequency <= 0:
        return NoteMatch(note=create_note("A", A4_OCTAVE), cents=0)

    semitones_from_a4 = 12.0 * math.log2(frequency / A4_FREQ)
    rounded = _round_half_up(semitones_from_a4)
    cents = _round_half_up((semitones_from_a4 - rounded) * 100.0)

    note_index = ((rounded % 12) + 12 + A4_INDEX) % 12
    octave = A4_OCTAVE + (rounded + A4_INDEX) // 12

    return NoteMatch(note=create_note(NOTE_NAMES[note_index], octave), cents=cents)


def find_closest_tuning_note(
    frequency: float, tuning: Union[Tuning, Sequence[Note]]
) -> NoteMatch:
    """Resolve a frequency to the closest string of a tuning.

    Strings are scanned in order and the smallest absolute cents offset
    wins; on an exact tie the earlier string is kept.

    Args:
        frequency: Frequency in Hz (must be positive)
        tuning: A Tuning, or a plain sequence of candidate notes

    Returns:
        NoteMatch with the string's note, rounded cents and string index

    Raises:
        ValueError: If the tuning has no strings or the frequency is not positive
    """
    strings = tuning.strings if isinstance(tuning, Tuning) else tuple(tuning)
    if not strings:
        raise ValueError("Cannot resolve a frequency against a tuning with no strings")
    if frequency <= 0:
        raise ValueError(f"Frequency must be positive, got {frequency}")

    closest_index = 0
    closest_cents = math.inf
    for index, note in enumerate(strings):
        cents = cents_between(frequency, note.frequency)
        if abs(cents) < abs(closest_cents):
            closest_cents = cents
            closest_index = index

    return NoteMatch(
        note=strings[closest_index],
        cents=_round_half_up(closest_cents),
        string_index=closest_index,
    )


def clamp_cents(cents: float, limit: int = NEEDLE_RANGE_CENTS) -> float:
    """Bound a cents offset to the needle range [-limit, +limit]."""
    return max(-limit, min(limit, cents))


def convert_note_notation(note_name: str, to_flats: bool = False) -> str:
    """Convert a note name between sharp and flat notation.

    Args:
        note_name: The note name to convert (e.g., 'F#2' or 'Gb2')
        to_flats: If True, convert to flats (e.g., 'Gb2'), otherwise to sharps (e.g., 'F#2')

    Returns:
        str: The converted note name, or original if no conversion needed or invalid

    Examples:
        >>> convert_note_notation('F#2', to_flats=True)
        'Gb2'
        >>> convert_note_notation('Gb2', to_flats=False)
        'F#2'
    """
    if not note_name or not isinstance(note_name, str):
        return note_name or ""

    note_part = "".join(c for c in note_name if not c.isdigit() and c != "-").strip()
    octave_part = note_name[len(note_part) :]

    if to_flats and note_part in SHARP_TO_FLAT:
        return f"{SHARP_TO_FLAT[note_part]}{octave_part}"
    elif not to_flats and note_part in FLAT_TO_SHARP:
        return f"{FLAT_TO_SHARP[note_part]}{octave_part}"

    return note_name


def get_note_name(freq: float, use_flats: bool = False) -> str:
    """Convert frequency to note name using Scientific Pitch Notation (SPN).

    Args:
        freq: Frequency in Hz
        use_flats: If True, use flat notes (e.g., 'Bb') instead of sharps (e.g., 'A#')

    Returns:
        Note name with octave in SPN (e.g., 'A4', 'C#4', 'Bb3'), or '---'
        for a non-positive frequency

    Note:
        - Middle C is C4 (261.63 Hz)
        - Octave numbers change between B and C (e.g., B3 -> C4)
    """
    if freq <= 0:
        return "---"

    name = str(frequency_to_chromatic_note(freq).note)
    return convert_note_notation(name, to_flats=use_flats)

