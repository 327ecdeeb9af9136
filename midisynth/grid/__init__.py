"""GRID — Timing layer: merge MIDI tracks and map ticks to microseconds."""

from midisynth.grid.sequencer import MergedEvent, Sequencer, TrackCursor
from midisynth.grid.timing import (
    PlayerEvent,
    PlayerTrack,
    TempoState,
    TimeMapper,
    play_all,
    sequence_midi,
)

__all__ = [
    "MergedEvent",
    "Sequencer",
    "TrackCursor",
    "PlayerEvent",
    "PlayerTrack",
    "TempoState",
    "TimeMapper",
    "play_all",
    "sequence_midi",
]
