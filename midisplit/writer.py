from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Iterable, List, Optional, Tuple

import mido

from .events import Event
from .gm_names import filename_label

if TYPE_CHECKING:
    from .voice import Voice


@dataclass(frozen=True)
class VoiceKey:
    """Identity of one emitted voice, used to name its output file."""

    base_name: str
    channel: int
    instrument_label: str
    instance: Optional[int] = None  # None when the instrument has a single voice

    def filename(self) -> str:
        stem = f"{self.base_name}_{self.channel}_{filename_label(self.instrument_label)}"
        if self.instance is not None:
            stem = f"{stem}_{self.instance}"
        return f"{stem}.mid"


def build_midi_file(events: Iterable[Event], ticks_per_beat: int) -> mido.MidiFile:
    mid = mido.MidiFile(type=0, ticks_per_beat=ticks_per_beat)
    mid.tracks.append(mido.MidiTrack(event.to_message() for event in events))
    return mid


def write_voice(path: Path, events: Iterable[Event], ticks_per_beat: int) -> float:
    """Write ``events`` as a single-track file and return its duration in seconds."""
    mid = build_midi_file(events, ticks_per_beat)
    mid.save(str(path))
    return mid.length


class DirectoryWriter:
    """Voice sink that writes each voice to ``out_dir/<key.filename()>``."""

    def __init__(self, out_dir: Path, ticks_per_beat: int):
        self.out_dir = Path(out_dir)
        self.ticks_per_beat = ticks_per_beat
        self.written: List[Tuple[Path, float]] = []

    def __call__(self, key: VoiceKey, voice: "Voice") -> None:
        self.out_dir.mkdir(parents=True, exist_ok=True)
        path = self.out_dir / key.filename()
        duration = write_voice(path, voice.events, self.ticks_per_beat)
        self.written.append((path, duration))
