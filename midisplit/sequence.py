"""Merged input sequence built from a MIDI file.

``mido.merge_tracks`` interleaves the file's tracks by absolute tick (ties
keep track order) and re-expresses every time as a delta from the
previous message of the merged stream.  The splitter consumes that stream
as-is and never reorders it.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Tuple, Union

import mido

from .events import Event, EventKind


@dataclass(frozen=True)
class MergedSequence:
    ticks_per_beat: int
    events: Tuple[Event, ...]
    channels: Tuple[int, ...]

    @property
    def length_ticks(self) -> int:
        return sum(event.delta for event in self.events)


def channels_in(events: Iterable[Event]) -> Tuple[int, ...]:
    return tuple(sorted({event.channel for event in events if event.kind.is_channel}))


def merge_midi_file(mid: mido.MidiFile) -> MergedSequence:
    events = tuple(Event.from_message(msg) for msg in mido.merge_tracks(mid.tracks))
    return MergedSequence(
        ticks_per_beat=mid.ticks_per_beat,
        events=events,
        channels=channels_in(events),
    )


def read_merged(path: Union[str, Path]) -> MergedSequence:
    return merge_midi_file(mido.MidiFile(str(path)))


def max_polyphony_by_channel(events: Iterable[Event]) -> Dict[int, int]:
    """Peak number of simultaneously open notes per channel.

    Channels that never sound a note are left out.
    """
    open_notes: Dict[int, int] = {}
    peak: Dict[int, int] = {}
    for event in events:
        if event.kind is EventKind.NOTE_ON:
            count = open_notes.get(event.channel, 0) + 1
            open_notes[event.channel] = count
            peak[event.channel] = max(peak.get(event.channel, 0), count)
        elif event.kind is EventKind.NOTE_OFF:
            open_notes[event.channel] = open_notes.get(event.channel, 0) - 1
    return dict(sorted(peak.items()))


def absolute_times(events: Iterable[Event]) -> List[Tuple[Event, int]]:
    """Pair each event with its absolute tick in the stream."""
    tick = 0
    out: List[Tuple[Event, int]] = []
    for event in events:
        tick += event.delta
        out.append((event, tick))
    return out
