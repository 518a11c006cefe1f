#!/usr/bin/env python3
"""Split every MIDI channel into monophonic single-track files.

Each output file holds one voice: one instrument on one channel, never
more than one sounding note.  All outputs are padded to the same length
and carry the tempo/meta events of the source.

Examples
--------
Split into ./out:
    python tools/midi_split.py song.mid -o out

Polyphony report only:
    python tools/midi_split.py song.mid --info

Event dump:
    python tools/midi_split.py song.mid --dump
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
import sys

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from midisplit.demux import MalformedSequenceError
from midisplit.events import describe_event
from midisplit.gm_names import PERCUSSION_CHANNEL
from midisplit.sequence import MergedSequence, absolute_times, max_polyphony_by_channel, read_merged
from midisplit.splitter import SplitOptions, split_sequence
from midisplit.writer import DirectoryWriter


def _build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Split MIDI channels into monophonic per-voice files",
    )
    parser.add_argument("input", type=Path, help="Input MIDI file")
    parser.add_argument(
        "-o",
        "--output-dir",
        type=Path,
        default=None,
        help="Directory for the split files (default: next to the input)",
    )
    parser.add_argument(
        "--base-name",
        default=None,
        help="Prefix of the output file names (default: input file stem)",
    )
    parser.add_argument(
        "--percussion-channel",
        type=int,
        default=PERCUSSION_CHANNEL,
        help="0-based channel whose note numbers select the instrument (default: 9)",
    )
    parser.add_argument(
        "--info",
        action="store_true",
        help="Print the per-channel polyphony report only",
    )
    parser.add_argument(
        "--dump",
        action="store_true",
        help="Print every event of the merged stream only",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    return parser


def show_info(sequence: MergedSequence) -> None:
    print(f"Ticks per beat: {sequence.ticks_per_beat}")
    print(f"Length: {sequence.length_ticks} ticks")
    print(f"Channels: {', '.join(str(c) for c in sequence.channels) or '(none)'}")
    for channel, voices in max_polyphony_by_channel(sequence.events).items():
        print(f"Channel {channel} has {voices} voice polyphony")


def show_dump(sequence: MergedSequence) -> None:
    for event, tick in absolute_times(sequence.events):
        print(describe_event(event, tick))


def main() -> int:
    parser = _build_arg_parser()
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        )

    if not 0 <= args.percussion_channel <= 15:
        parser.error("--percussion-channel must be in [0, 15]")

    sequence = read_merged(args.input)

    if args.info:
        show_info(sequence)
        return 0
    if args.dump:
        show_dump(sequence)
        return 0

    out_dir = args.output_dir if args.output_dir is not None else args.input.parent
    options = SplitOptions(
        percussion_channel=args.percussion_channel,
        base_name=args.base_name or args.input.stem,
    )
    writer = DirectoryWriter(out_dir.expanduser().resolve(), sequence.ticks_per_beat)
    try:
        split_sequence(sequence, writer, options)
    except MalformedSequenceError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2

    for path, duration in writer.written:
        print(f"Wrote to {path}, duration {duration:.3f}s")
    print(f"{len(writer.written)} file(s) from {len(sequence.channels)} channel(s)")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
