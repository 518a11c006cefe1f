"""Whole-stream properties of the splitter on synthetic multi-track songs."""

from __future__ import annotations

from collections import Counter

import mido
import pytest

from midisplit.demux import MalformedSequenceError
from midisplit.events import EventKind
from midisplit.sequence import max_polyphony_by_channel, merge_midi_file
from midisplit.splitter import SplitOptions, StreamSplitter, split_sequence


def _build_track(notes: list[tuple[int, int, int, int]], channel: int, program: int | None = None) -> mido.MidiTrack:
    """Build one MIDI track from absolute note tuples.

    notes tuple: (onset_tick, pitch, duration_ticks, velocity)
    """
    events: list[tuple[int, mido.Message]] = []
    if program is not None:
        events.append((0, mido.Message("program_change", channel=channel, program=program, time=0)))
    for onset, pitch, dur, vel in notes:
        events.append((onset, mido.Message("note_on", channel=channel, note=pitch, velocity=vel, time=0)))
        events.append((onset + dur, mido.Message("note_off", channel=channel, note=pitch, velocity=0, time=0)))
    events.sort(key=lambda item: (item[0], 0 if item[1].type == "note_off" else 1))

    track = mido.MidiTrack()
    last_tick = 0
    for tick, msg in events:
        msg.time = tick - last_tick
        track.append(msg)
        last_tick = tick
    return track


def _synthetic_song() -> mido.MidiFile:
    """Two bars: tempo track, triad chords, an overlapping bass, drums and a late CC."""
    tpb = 96
    bar = tpb * 4

    mid = mido.MidiFile(ticks_per_beat=tpb)
    tempo_track = mido.MidiTrack()
    tempo_track.append(mido.MetaMessage("set_tempo", tempo=mido.bpm2tempo(120), time=0))
    tempo_track.append(mido.MetaMessage("set_tempo", tempo=mido.bpm2tempo(90), time=bar))
    mid.tracks.append(tempo_track)

    chords = []
    for b in range(2):
        for i, pitch in enumerate((60, 64, 67)):
            chords.append((b * bar + i * 7, pitch, bar - 20, 80))
    mid.tracks.append(_build_track(chords, channel=0, program=48))

    # each bass note overlaps the next by 10 ticks
    bass = [(b * tpb, 36 + (b % 3), tpb + 10, 100) for b in range(8)]
    mid.tracks.append(_build_track(bass, channel=1, program=33))

    drums = []
    for beat in range(8):
        drums.append((beat * tpb, 42, tpb // 2, 70))
        if beat % 2 == 0:
            drums.append((beat * tpb, 36, tpb // 3, 110))
        else:
            drums.append((beat * tpb + 5, 38, tpb // 3, 100))
    mid.tracks.append(_build_track(drums, channel=9))

    cc_track = mido.MidiTrack()
    cc_track.append(mido.Message("control_change", channel=0, control=7, value=90, time=bar + 3))
    mid.tracks.append(cc_track)
    return mid


def _abs_note_events(events, channel=None) -> Counter:
    """Multiset of (abs_tick, kind, note) for note events."""
    tick = 0
    out: Counter = Counter()
    for event in events:
        tick += event.delta
        if event.kind in (EventKind.NOTE_ON, EventKind.NOTE_OFF):
            if channel is None or event.channel == channel:
                out[(tick, event.kind, event.note)] += 1
    return out


@pytest.fixture
def song_results():
    sequence = merge_midi_file(_synthetic_song())
    return sequence, split_sequence(sequence, options=SplitOptions(base_name="song"))


def test_every_voice_is_monophonic(song_results):
    _, results = song_results
    for result in results:
        sounding = None
        for event in result.voice.events:
            if event.kind is EventKind.NOTE_ON:
                assert sounding is None, f"{result.key} overlaps {sounding} with {event.note}"
                sounding = event.note
            elif event.kind is EventKind.NOTE_OFF:
                assert sounding == event.note
                sounding = None
        assert sounding is None


def test_all_voices_have_equal_duration(song_results):
    sequence, results = song_results
    lengths = {result.voice.total_length() for result in results}
    assert lengths == {sequence.length_ticks}


def test_note_events_are_conserved_per_channel(song_results):
    sequence, results = song_results
    for channel in sequence.channels:
        expected_on = sum(1 for e in sequence.events if e.kind is EventKind.NOTE_ON and e.channel == channel)
        expected_off = sum(1 for e in sequence.events if e.kind is EventKind.NOTE_OFF and e.channel == channel)
        voices = [r.voice for r in results if r.key.channel == channel]
        assert sum(v.note_count(EventKind.NOTE_ON) for v in voices) == expected_on
        assert sum(v.note_count(EventKind.NOTE_OFF) for v in voices) == expected_off


def test_voice_timelines_reproduce_input_times(song_results):
    sequence, results = song_results
    for channel in sequence.channels:
        expected = _abs_note_events(sequence.events, channel)
        combined: Counter = Counter()
        for result in results:
            if result.key.channel != channel:
                continue
            own = _abs_note_events(result.voice.events)
            assert not (own - expected), f"{result.key} has notes at times not in the input"
            combined += own
        assert combined == expected


def test_every_voice_carries_tempo_map(song_results):
    _, results = song_results
    for result in results:
        tempos = [e.message.tempo for e in result.voice.events if e.kind is EventKind.META and e.message.type == "set_tempo"]
        assert tempos == [mido.bpm2tempo(120), mido.bpm2tempo(90)]


def test_voice_layout_of_synthetic_song(song_results):
    _, results = song_results
    names = [r.key.filename() for r in results]
    assert names == [
        "song_0_String-Ensemble-1_1.mid",
        "song_0_String-Ensemble-1_2.mid",
        "song_0_String-Ensemble-1_3.mid",
        "song_1_Electric-Bass-finger_1.mid",
        "song_1_Electric-Bass-finger_2.mid",
        "song_9_Closed-Hi-Hat.mid",
        "song_9_Bass-Drum-1.mid",
        "song_9_Acoustic-Snare.mid",
    ]


def test_voice_count_never_exceeds_prescan_polyphony(song_results):
    sequence, results = song_results
    peaks = max_polyphony_by_channel(sequence.events)
    for channel in (0, 1):
        count = sum(1 for r in results if r.key.channel == channel)
        assert count == peaks[channel]
    assert sum(1 for r in results if r.key.channel == 9) <= 3


def test_split_is_repeatable():
    def _snapshot():
        sequence = merge_midi_file(_synthetic_song())
        results = split_sequence(sequence, options=SplitOptions(base_name="song"))
        return [(r.key, [str(e.message) for e in r.voice.events]) for r in results]

    assert _snapshot() == _snapshot()


def test_sink_receives_each_voice_once(song_results):
    sequence, results = song_results
    seen = []
    again = split_sequence(merge_midi_file(_synthetic_song()), lambda key, voice: seen.append(key), SplitOptions(base_name="song"))
    assert seen == [r.key for r in again] == [r.key for r in results]


def test_channel_without_notes_produces_no_voice():
    mid = _synthetic_song()
    extra = mido.MidiTrack()
    extra.append(mido.Message("program_change", channel=5, program=20, time=0))
    extra.append(mido.Message("control_change", channel=5, control=10, value=0, time=30))
    mid.tracks.append(extra)

    sequence = merge_midi_file(mid)
    assert 5 in sequence.channels
    results = split_sequence(sequence)
    assert all(r.key.channel != 5 for r in results)
    assert len(results) == 8


def test_malformed_input_emits_nothing():
    mid = mido.MidiFile(ticks_per_beat=96)
    track = mido.MidiTrack()
    track.append(mido.Message("note_on", channel=0, note=60, velocity=90, time=0))
    track.append(mido.Message("note_off", channel=0, note=60, velocity=0, time=10))
    track.append(mido.Message("note_off", channel=0, note=62, velocity=0, time=10))
    mid.tracks.append(track)

    emitted = []
    with pytest.raises(MalformedSequenceError):
        split_sequence(merge_midi_file(mid), lambda key, voice: emitted.append(key))
    assert emitted == []


def test_empty_input_has_zero_length():
    splitter = StreamSplitter([])
    splitter.feed([])
    assert splitter.global_length() == 0
    assert splitter.emit(lambda key, voice: None) == []
