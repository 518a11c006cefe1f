from __future__ import annotations

from typing import List, Optional

import mido

from .events import Event, EventKind


class Voice:
    """Append-only event buffer for one monophonic output line.

    A voice that is skipped by the router still has to move forward in
    time: ``add_delay`` banks the skipped ticks in ``pending_delay`` and the
    next ``write`` folds them into that event's delta.
    """

    def __init__(self, channel: int, instrument: Optional[int] = None, instance: int = 0):
        self.channel = channel
        self.instrument = instrument
        self.instance = instance
        self.events: List[Event] = []
        self.pending_delay = 0
        self.available = True
        self.active_note: Optional[int] = None

    def __repr__(self) -> str:
        return (
            f"Voice(channel={self.channel}, instrument={self.instrument}, "
            f"instance={self.instance}, events={len(self.events)})"
        )

    def write(self, event: Event) -> None:
        if self.pending_delay > 0:
            event = event.with_delta(event.delta + self.pending_delay)
            self.pending_delay = 0
        self.events.append(event)

        if event.kind is EventKind.NOTE_ON:
            self.available = False
            self.active_note = event.note
        elif event.kind is EventKind.NOTE_OFF:
            self.available = True
            self.active_note = None

    def add_delay(self, ticks: int) -> None:
        self.pending_delay += ticks

    def total_length(self) -> int:
        """Absolute tick of the last written event (0 when empty)."""
        return sum(event.delta for event in self.events)

    def finalize(self, target_length: int) -> None:
        """Pad the buffer so it ends exactly at ``target_length``.

        The pad is an ``end_of_track`` meta event; mido folds it into the
        single end-of-track marker it writes, so nothing audible is added.
        """
        shortfall = target_length - self.total_length()
        if shortfall > 0:
            self.events.append(Event.from_message(mido.MetaMessage("end_of_track", time=shortfall)))
        self.pending_delay = 0

    def clone(self, instrument: Optional[int], instance: int) -> "Voice":
        """Copy buffer and pending delay into a new, independent voice."""
        voice = Voice(self.channel, instrument, instance)
        voice.events = list(self.events)
        voice.pending_delay = self.pending_delay
        voice.available = self.available
        voice.active_note = self.active_note
        return voice

    def note_count(self, kind: EventKind = EventKind.NOTE_ON) -> int:
        return sum(1 for event in self.events if event.kind is kind)
