"""Split a merged event stream into monophonic voices, one pass."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List

from .demux import ChannelDemultiplexer, SplitResult, VoiceSink
from .events import Event
from .gm_names import PERCUSSION_CHANNEL
from .sequence import MergedSequence

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SplitOptions:
    percussion_channel: int = PERCUSSION_CHANNEL
    default_program: int = 0
    base_name: str = "split"


class StreamSplitter:
    """One demultiplexer per channel, all fed the same event stream.

    Every demultiplexer sees every event; each one decides whether the
    event is written to its voices or only advances their timeline.
    """

    def __init__(self, channels: Iterable[int], options: SplitOptions = SplitOptions()):
        self.options = options
        self.demuxes: Dict[int, ChannelDemultiplexer] = {}
        for channel in sorted(set(channels)):
            self.demuxes[channel] = ChannelDemultiplexer(
                channel,
                percussion_channel=options.percussion_channel,
                default_program=options.default_program,
            )

    def feed(self, events: Iterable[Event]) -> None:
        for event in events:
            for demux in self.demuxes.values():
                demux.process(event)

    def global_length(self) -> int:
        return max((demux.max_length() for demux in self.demuxes.values()), default=0)

    def emit(self, sink: VoiceSink) -> List[SplitResult]:
        """Pad every voice to the longest one and hand each to ``sink``."""
        target = self.global_length()
        results: List[SplitResult] = []
        for demux in self.demuxes.values():
            results.extend(demux.emit(target, sink, self.options.base_name))
        logger.debug("emitted %d voices of %d ticks", len(results), target)
        return results


def _discard(key, voice) -> None:
    pass


def split_sequence(
    sequence: MergedSequence,
    sink: VoiceSink = _discard,
    options: SplitOptions = SplitOptions(),
) -> List[SplitResult]:
    """Split ``sequence`` and emit every voice to ``sink``.

    Nothing reaches ``sink`` unless the whole stream was routed; a
    MalformedSequenceError during routing aborts before emission.
    """
    splitter = StreamSplitter(sequence.channels, options)
    splitter.feed(sequence.events)
    return splitter.emit(sink)
