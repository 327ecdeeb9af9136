"""MIDISYNTH Time Mapper — Ticks to microseconds under a piecewise-constant tempo.

Consumes the Sequencer's merged stream and buckets note-on events into one
PlayerTrack per MIDI track, timestamped in absolute microseconds.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import mido
import structlog

from midisynth.console.progress import NullProgress, ProgressReporter
from midisynth.errors import ResourceError, UnsupportedFeatureError
from midisynth.grid.sequencer import MergedEvent, Sequencer

logger = structlog.get_logger()

DEFAULT_TEMPO = 500_000  # µs per quarter note (120 BPM)


# ── Data Types ───────────────────────────────────────────


@dataclass(frozen=True)
class PlayerEvent:
    """A note-on at an absolute time."""

    time: int  # µs from song start
    note: int  # 0-127
    velocity: int  # 0-127


@dataclass
class PlayerTrack:
    """All note-ons of one MIDI track, in time order."""

    name: str | None = None
    length: int = 0  # µs, set by end_of_track
    events: list[PlayerEvent] = field(default_factory=list)


@dataclass
class TempoState:
    """Tempo anchored at the last tempo change."""

    ticks_per_quarter: int
    tempo: int = DEFAULT_TEMPO
    anchor_tick: int = 0
    anchor_time: int = 0

    def time_at(self, tick: int) -> int:
        """Absolute µs for a tick at or after the anchor."""
        elapsed = tick - self.anchor_tick
        return self.anchor_time + elapsed * self.tempo // self.ticks_per_quarter

    def change(self, tick: int, tempo: int) -> int:
        """Re-pin the anchor at ``tick`` and switch to ``tempo``.

        Returns the time of the change, computed with the old tempo.
        """
        time = self.time_at(tick)
        self.anchor_tick = tick
        self.anchor_time = time
        self.tempo = tempo
        return time


# ── Helpers ──────────────────────────────────────────────


def ticks_per_quarter(division: int) -> int:
    """Validate a header time division; only metrical timing is supported."""
    if division <= 0 or division & 0x8000:
        msg = f"Unsupported MIDI timing: SMPTE/non-metrical division {division:#06x}"
        raise UnsupportedFeatureError(msg)
    return division


def decode_track_name(name: str) -> str | None:
    """Best-effort UTF-8 decode of a track name mido read as latin-1.

    Only meaningful for names read from file bytes: a latin-1-only string
    such as "Café" built in memory is not valid UTF-8 and yields None.
    """
    try:
        raw = name.encode("latin-1")
    except UnicodeEncodeError:
        # Already real text (built in memory, not read from bytes)
        return name
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError:
        return None


def load_midi(path: str | Path) -> mido.MidiFile:
    """Read a standard MIDI file."""
    try:
        return mido.MidiFile(str(path))
    except (OSError, EOFError, ValueError, KeyError) as e:
        msg = f"Loading MIDI file {path} failed: {e}"
        raise ResourceError(msg) from e


# ── Time Mapper ──────────────────────────────────────────


class TimeMapper:
    """Turns a merged event stream into PlayerTracks."""

    def __init__(self, division: int, n_tracks: int, raw_names: bool = True) -> None:
        self.raw_names = raw_names  # names are latin-1 text of file bytes
        self.tempo = TempoState(ticks_per_quarter=ticks_per_quarter(division))
        self.tracks: list[PlayerTrack] = [PlayerTrack() for _ in range(n_tracks)]

    def feed(self, merged: MergedEvent) -> None:
        event: Any = merged.event
        track = self.tracks[merged.track]
        kind = event.type

        if kind == "set_tempo":
            self.tempo.change(merged.tick, int(event.tempo))
            return

        time = self.tempo.time_at(merged.tick)
        if kind == "track_name":
            track.name = decode_track_name(event.name) if self.raw_names else event.name
        elif kind == "end_of_track":
            track.length = time
        elif kind == "note_on":
            track.events.append(PlayerEvent(time=time, note=event.note, velocity=event.velocity))
        # note_off, controllers and other meta events are not rendered


def play_all(
    sequencer: Sequencer,
    division: int,
    progress: ProgressReporter | None = None,
    raw_names: bool = True,
) -> list[PlayerTrack]:
    """Drain the sequencer through a TimeMapper."""
    progress = progress or NullProgress()
    mapper = TimeMapper(division, len(sequencer.cursors), raw_names)

    progress.set_total(sequencer.total_events)
    for merged in sequencer:
        mapper.feed(merged)
        progress.advance(1)
    progress.finish()

    logger.info(
        "sequencer.done",
        tracks=len(mapper.tracks),
        notes=sum(len(t.events) for t in mapper.tracks),
    )
    return mapper.tracks


def sequence_midi(
    midi: mido.MidiFile,
    progress: ProgressReporter | None = None,
) -> list[PlayerTrack]:
    """Sequence every track of a MidiFile into PlayerTracks.

    Track names are only re-decoded as UTF-8 when the file was read from
    disk; names of a MidiFile built in memory are already text.
    """
    division = ticks_per_quarter(midi.ticks_per_beat)
    raw_names = midi.filename is not None
    return play_all(Sequencer(midi.tracks), division, progress, raw_names)
