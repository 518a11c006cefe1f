"""Tagged event model over mido messages.

Every message coming out of the merged input stream is wrapped in an
``Event`` whose ``kind`` is one of a closed set of tags.  Dispatch sites
match on the tag, never on the message class.

The wrapped message's ``time`` field is the event delta: ticks elapsed
since the previous event of the stream it belongs to.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Optional, Union

import mido

from .gm_names import instrument_label

MidoMessage = Union[mido.Message, mido.MetaMessage]

NOTE_NAMES = ("C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B")


class EventKind(enum.Enum):
    NOTE_ON = "note_on"
    NOTE_OFF = "note_off"
    PROGRAM_CHANGE = "program_change"
    CONTROL_CHANGE = "control_change"
    PITCH_BEND = "pitch_bend"
    AFTERTOUCH = "aftertouch"
    POLY_AFTERTOUCH = "poly_aftertouch"
    META = "meta"

    @property
    def is_channel(self) -> bool:
        return self is not EventKind.META


_KIND_BY_TYPE = {
    "note_on": EventKind.NOTE_ON,
    "note_off": EventKind.NOTE_OFF,
    "program_change": EventKind.PROGRAM_CHANGE,
    "control_change": EventKind.CONTROL_CHANGE,
    "pitchwheel": EventKind.PITCH_BEND,
    "aftertouch": EventKind.AFTERTOUCH,
    "polytouch": EventKind.POLY_AFTERTOUCH,
}


@dataclass(frozen=True)
class Event:
    """One sequenced event.

    Instances are treated as immutable: the wrapped message is never
    modified in place, so buffers may share events freely.
    """

    kind: EventKind
    message: MidoMessage

    @classmethod
    def from_message(cls, msg: MidoMessage) -> "Event":
        if msg.is_meta:
            return cls(EventKind.META, msg)
        kind = _KIND_BY_TYPE.get(msg.type)
        if kind is None:
            # sysex and the system common/realtime messages carry no channel
            return cls(EventKind.META, msg)
        if kind is EventKind.NOTE_ON and msg.velocity == 0:
            kind = EventKind.NOTE_OFF
        return cls(kind, msg)

    @property
    def delta(self) -> int:
        return self.message.time

    @property
    def channel(self) -> Optional[int]:
        if not self.kind.is_channel:
            return None
        return self.message.channel

    @property
    def note(self) -> Optional[int]:
        return getattr(self.message, "note", None)

    @property
    def velocity(self) -> Optional[int]:
        return getattr(self.message, "velocity", None)

    @property
    def program(self) -> Optional[int]:
        return getattr(self.message, "program", None)

    def with_delta(self, delta: int) -> "Event":
        if delta < 0:
            raise ValueError(f"delta must be non-negative, got {delta}")
        return Event(self.kind, self.message.copy(time=delta))

    def to_message(self) -> MidoMessage:
        return self.message.copy()


def note_name(note: int) -> str:
    """``60`` -> ``C4`` (middle C in the scientific pitch convention)."""
    return f"{NOTE_NAMES[note % 12]}{note // 12 - 1}"


def describe_event(event: Event, abs_tick: int = 0) -> str:
    """Render one human-readable dump line.

    ``abs_tick`` is the event's absolute tick in its stream; it is only
    shown for channel events.
    """
    msg = event.message
    if not event.kind.is_channel:
        if msg.type == "set_tempo":
            return f"SetTempo {msg.tempo}us per quarter note"
        if msg.type == "key_signature":
            return f"KeySignature key={msg.key}"
        if hasattr(msg, "text"):
            return f"{msg.type} {msg.text}"
        if hasattr(msg, "name"):
            return f"{msg.type} {msg.name}"
        return f"Event {msg.type} ######"

    head = f"[{event.channel}] +{event.delta:04d} [{abs_tick:06d}] {event.kind.value}"
    if event.kind is EventKind.PROGRAM_CHANGE:
        return f"{head} {msg.program} ({instrument_label(0, msg.program)})"
    if event.kind is EventKind.CONTROL_CHANGE:
        return f"{head} cc{msg.control}={msg.value}"
    if event.kind in (EventKind.NOTE_ON, EventKind.NOTE_OFF):
        return f"{head} {note_name(msg.note)} {msg.note}"
    if event.kind is EventKind.PITCH_BEND:
        return f"{head} {msg.pitch}"
    if event.kind is EventKind.AFTERTOUCH:
        return f"{head} {msg.value}"
    if event.kind is EventKind.POLY_AFTERTOUCH:
        return f"{head} {note_name(msg.note)}={msg.value}"
    raise AssertionError(f"unhandled event kind {event.kind}")
