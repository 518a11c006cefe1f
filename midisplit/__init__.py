"""Split polyphonic MIDI channels into monophonic per-voice streams."""

from .demux import (  # noqa: F401
    ChannelDemultiplexer,
    MalformedSequenceError,
    SplitResult,
)
from .events import (  # noqa: F401
    Event,
    EventKind,
    describe_event,
    note_name,
)
from .gm_names import (  # noqa: F401
    GM_PERCUSSION,
    GM_PROGRAMS,
    PERCUSSION_CHANNEL,
    instrument_label,
)
from .sequence import (  # noqa: F401
    MergedSequence,
    absolute_times,
    channels_in,
    max_polyphony_by_channel,
    merge_midi_file,
    read_merged,
)
from .splitter import (  # noqa: F401
    SplitOptions,
    StreamSplitter,
    split_sequence,
)
from .voice import Voice  # noqa: F401
from .writer import (  # noqa: F401
    DirectoryWriter,
    VoiceKey,
    build_midi_file,
    write_voice,
)
