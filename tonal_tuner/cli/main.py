"""Tonal Tuner command line: list tunings, name a frequency, or analyse an audio file."""

import argparse
import sys
from collections import Counter
from typing import List, Optional

from ..logger import get_logger
from ..logging_config import setup_logging
from ..note_types import DetectedPitch, Instrument, tuning_status
from ..note_utils import find_closest_tuning_note, frequency_to_chromatic_note
from ..tunings import ALL_TUNINGS, describe_strings, get_tuning_by_id, get_tunings_for_instrument
from ..core.config import ConfigManager
from ..core.factory import ComponentFactory
from ..core.timers import ManualClock

logger = get_logger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments.

    Args:
        argv: Arguments to parse, defaults to sys.argv[1:]

    Returns:
        Parsed arguments
    """
    parser = argparse.ArgumentParser(
        prog="tonal-tuner", description="Pitch detection and tuning tools"
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    tunings = subparsers.add_parser("tunings", help="List the tuning catalog")
    tunings.add_argument(
        "--instrument",
        choices=[i.value for i in Instrument],
        default=None,
        help="Only list tunings for this instrument",
    )

    note = subparsers.add_parser("note", help="Name the note closest to a frequency")
    note.add_argument("frequency", type=float, help="Frequency in Hz")
    note.add_argument(
        "--tuning",
        default=None,
        help="Resolve against this tuning's strings instead of chromatically",
    )

    analyze = subparsers.add_parser("analyze", help="Replay an audio file through the tuner")
    analyze.add_argument("file", help="Path to a WAV (or other soundfile-readable) file")
    mode = analyze.add_mutually_exclusive_group()
    mode.add_argument(
        "--tuning",
        default=None,
        help="Tuning id (default: the configured default tuning)",
    )
    mode.add_argument(
        "--chromatic",
        action="store_true",
        help="Resolve to the nearest chromatic note",
    )
    analyze.add_argument(
        "--config-dir",
        default=None,
        help="Settings directory (default: ~/.config/tonal_tuner)",
    )

    return parser.parse_args(argv)


def list_tunings(instrument: Optional[str]) -> int:
    tunings = get_tunings_for_instrument(instrument) if instrument else ALL_TUNINGS
    for tuning in tunings:
        print(f"{tuning.id:<24} {tuning.name:<20} {describe_strings(tuning.strings)}")
    return 0


def name_frequency(frequency: float, tuning_id: Optional[str]) -> int:
    """Print the note, cents offset and status for a frequency."""
    if tuning_id and tuning_id != "chromatic":
        tuning = get_tuning_by_id(tuning_id)
        if tuning is None:
            print(f"Unknown tuning: {tuning_id}", file=sys.stderr)
            return 2
        if frequency <= 0:
            print("Frequency must be positive", file=sys.stderr)
            return 2
        match = find_closest_tuning_note(frequency, tuning)
        where = f"  (string {match.string_index + 1} of {len(tuning.strings)})"
    else:
        match = frequency_to_chromatic_note(frequency)
        where = ""

    print(f"{match.note}  {match.cents:+d} cents  {tuning_status(match.cents).value}{where}")
    return 0


def format_pitch(pitch: DetectedPitch) -> str:
    text = (
        f"{pitch.note} ({pitch.frequency:.2f}Hz, {pitch.cents:+d} cents, "
        f"{pitch.status.value}, clarity {pitch.clarity:.2f})"
    )
    if pitch.string_index is not None:
        text += f" string {pitch.string_index + 1}"
    return text


def analyze_file(file_path: str, tuning_id: Optional[str], config_dir: Optional[str]) -> int:
    """Replay a file through a tuning session on a simulated clock.

    The clock advances by one hop per cycle, so the hold window behaves as
    it would on live input at the configured frame rate.
    """
    factory = ComponentFactory(ConfigManager(config_dir))
    clock = ManualClock()

    source = None
    try:
        source = factory.create_file_source(file_path)
        session = factory.create_session(source, tuning_id=tuning_id, clock=clock)
    except ValueError as e:
        if source is not None:
            source.close()
        print(str(e), file=sys.stderr)
        return 2
    except Exception as e:
        logger.error(f"Failed to open {file_path}: {e}")
        print(f"Could not open {file_path}: {e}", file=sys.stderr)
        return 1

    counts: Counter = Counter()
    last_label: List[Optional[str]] = [None]

    def on_pitch(pitch: Optional[DetectedPitch]) -> None:
        if pitch is None:
            print(f"[{clock.now():7.2f}s] ---")
            last_label[0] = None
            return
        counts[str(pitch.note)] += 1
        label = f"{pitch.note}:{pitch.string_index}"
        if label != last_label[0]:
            print(f"[{clock.now():7.2f}s] {format_pitch(pitch)}")
            last_label[0] = label

    step = source.hop_size / source.sample_rate
    session.start(on_pitch, background=False)
    try:
        while session.run_cycle():
            clock.advance(step)
    except KeyboardInterrupt:
        logger.info("Analysis interrupted by user")
    finally:
        session.close()

    if session.error:
        print(f"Analysis failed: {session.error}", file=sys.stderr)
        return 1

    total = sum(counts.values())
    print(f"Analysed {clock.now():.2f}s of audio, {total} detections")
    for name, count in counts.most_common():
        print(f"  {name:<4} {count}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    setup_logging("DEBUG" if args.debug else None)

    if args.command == "tunings":
        return list_tunings(args.instrument)
    if args.command == "note":
        return name_frequency(args.frequency, args.tuning)
    if args.command == "analyze":
        tuning_id = "chromatic" if args.chromatic else args.tuning
        return analyze_file(args.file, tuning_id, args.config_dir)
    return 2


if __name__ == "__main__":
    sys.exit(main())
