"""Route one channel's events onto monophonic voices.

Each note is placed on the first free voice of its instrument; a new voice
is opened only when every voice of that instrument is sounding.  Events the
voice does not receive are turned into pending delay so all voices of the
channel stay on the same timeline.

Routing table for an event reaching the demultiplexer of channel ``c``:

  note_on  (c)            -> first free voice of the instrument, delay others
  note_off (c)            -> voice holding that note, delay others
  program_change (c)      -> every voice, and switch current instrument
  other channel event (c) -> every voice
  channel event (not c)   -> delay every voice
  meta / sysex            -> every voice

Voices are seeded from a note-free template voice that receives every
broadcast event, so a voice opened late still carries the tempo map and
the channel's program/controller history.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass
from typing import Callable, List

from .events import Event, EventKind
from .gm_names import PERCUSSION_CHANNEL, instrument_label
from .voice import Voice
from .writer import VoiceKey

logger = logging.getLogger(__name__)

BROADCAST_KINDS = frozenset(
    {
        EventKind.CONTROL_CHANGE,
        EventKind.PITCH_BEND,
        EventKind.AFTERTOUCH,
        EventKind.POLY_AFTERTOUCH,
    }
)

VoiceSink = Callable[[VoiceKey, Voice], None]


class MalformedSequenceError(ValueError):
    """The note on/off pairing of a channel cannot be resolved."""

    def __init__(self, message: str, *, channel: int, note: int):
        super().__init__(message)
        self.channel = channel
        self.note = note


@dataclass(frozen=True)
class SplitResult:
    key: VoiceKey
    voice: Voice


class ChannelDemultiplexer:
    def __init__(
        self,
        channel: int,
        *,
        percussion_channel: int = PERCUSSION_CHANNEL,
        default_program: int = 0,
    ):
        if not 0 <= channel <= 15:
            raise ValueError(f"channel must be in [0, 15], got {channel}")
        self.channel = channel
        self.percussion_channel = percussion_channel
        self.current_instrument = default_program
        self._template = Voice(channel)
        self._voices: List[Voice] = []

    @property
    def is_percussion(self) -> bool:
        return self.channel == self.percussion_channel

    def voices(self) -> List[Voice]:
        """Voices in creation order (the template is not included)."""
        return list(self._voices)

    def _every_voice(self) -> List[Voice]:
        return [self._template, *self._voices]

    def process(self, event: Event) -> None:
        kind = event.kind
        if not kind.is_channel:
            self._write_all(event)
        elif event.channel != self.channel:
            self._delay_all(event.delta)
        elif kind is EventKind.NOTE_ON:
            self._note_on(event)
        elif kind is EventKind.NOTE_OFF:
            self._note_off(event)
        elif kind is EventKind.PROGRAM_CHANGE:
            self.current_instrument = event.program
            self._write_all(event)
        elif kind in BROADCAST_KINDS:
            self._write_all(event)
        else:
            raise AssertionError(f"unhandled event kind {kind}")

    def _write_all(self, event: Event) -> None:
        for voice in self._every_voice():
            voice.write(event)

    def _delay_all(self, ticks: int) -> None:
        for voice in self._every_voice():
            voice.add_delay(ticks)

    def _route(self, event: Event, target: Voice) -> None:
        for voice in self._every_voice():
            if voice is target:
                voice.write(event)
            else:
                voice.add_delay(event.delta)

    def _note_on(self, event: Event) -> None:
        note = event.note
        for voice in self._voices:
            if not voice.available and voice.active_note == note:
                raise MalformedSequenceError(
                    f"note_on for note {note} on channel {self.channel} "
                    "while the same note is still sounding",
                    channel=self.channel,
                    note=note,
                )

        instrument = note if self.is_percussion else self.current_instrument
        target = None
        for voice in self._voices:
            if voice.available and voice.instrument == instrument:
                target = voice
                break

        if target is None:
            instance = 1 + sum(1 for v in self._voices if v.instrument == instrument)
            target = self._template.clone(instrument, instance)
            self._voices.append(target)
            logger.debug(
                "channel %d: opened voice %d for %s",
                self.channel,
                instance,
                instrument_label(self.channel, instrument, self.percussion_channel),
            )

        self._route(event, target)

    def _note_off(self, event: Event) -> None:
        for voice in self._voices:
            if not voice.available and voice.active_note == event.note:
                self._route(event, voice)
                return
        raise MalformedSequenceError(
            f"note_off for note {event.note} on channel {self.channel} "
            "has no matching note_on",
            channel=self.channel,
            note=event.note,
        )

    def max_length(self) -> int:
        return max((voice.total_length() for voice in self._voices), default=0)

    def voice_keys(self, base_name: str) -> List[VoiceKey]:
        """Output keys for each voice, instance index only where needed."""
        per_instrument = Counter(voice.instrument for voice in self._voices)
        keys = []
        for voice in self._voices:
            keys.append(
                VoiceKey(
                    base_name=base_name,
                    channel=self.channel,
                    instrument_label=instrument_label(
                        self.channel, voice.instrument, self.percussion_channel
                    ),
                    instance=voice.instance if per_instrument[voice.instrument] > 1 else None,
                )
            )
        return keys

    def emit(self, target_length: int, sink: VoiceSink, base_name: str) -> List[SplitResult]:
        if not self._voices:
            logger.debug("channel %d: no notes, nothing to emit", self.channel)
        results = []
        for key, voice in zip(self.voice_keys(base_name), self._voices):
            voice.finalize(target_length)
            sink(key, voice)
            results.append(SplitResult(key=key, voice=voice))
        return results
