"""Tests for tick → microsecond conversion and PlayerTrack building."""

from __future__ import annotations

import mido
import pytest
from structlog.testing import capture_logs

from midisynth.errors import ResourceError, UnsupportedFeatureError
from midisynth.grid.sequencer import Sequencer
from midisynth.grid.timing import (
    DEFAULT_TEMPO,
    TempoState,
    decode_track_name,
    load_midi,
    play_all,
    sequence_midi,
    ticks_per_quarter,
)


class _CountingProgress:
    def __init__(self) -> None:
        self.total = None
        self.count = 0
        self.finished = False

    def set_total(self, total: int) -> None:
        self.total = total

    def advance(self, n: int = 1) -> None:
        self.count += n

    def finish(self) -> None:
        self.finished = True


# ── Tempo State ──────────────────────────────────────────


def test_default_tempo() -> None:
    state = TempoState(ticks_per_quarter=480)
    assert state.tempo == DEFAULT_TEMPO
    assert state.time_at(480) == 500_000


def test_tempo_change_uses_old_tempo_then_reanchors() -> None:
    state = TempoState(ticks_per_quarter=480)
    assert state.change(960, 1_000_000) == 1_000_000
    assert (state.anchor_tick, state.anchor_time) == (960, 1_000_000)
    assert state.time_at(1440) == 2_000_000


# ── Time Mapper ──────────────────────────────────────────


def test_tempo_change_on_other_track_shifts_later_notes() -> None:
    """A tempo event on the conductor track applies to every track after it."""
    conductor = [
        mido.MetaMessage("set_tempo", tempo=1_000_000, time=960),
        mido.MetaMessage("end_of_track", time=0),
    ]
    melody = [
        mido.Message("note_on", note=60, velocity=100, time=480),
        mido.Message("note_on", note=62, velocity=100, time=960),
        mido.MetaMessage("end_of_track", time=480),
    ]
    tracks = play_all(Sequencer([conductor, melody]), 480)

    assert [e.time for e in tracks[1].events] == [500_000, 2_000_000]
    assert tracks[0].length == 1_000_000
    assert tracks[1].length == 3_000_000  # tick 1920


def test_player_track_contents(song_midi: mido.MidiFile) -> None:
    tracks = sequence_midi(song_midi)

    assert [t.name for t in tracks] == ["Conductor", "Piano"]
    piano = tracks[1]
    assert piano.length == 1_500_000
    assert [(e.time, e.note, e.velocity) for e in piano.events] == [
        (0, 60, 100),
        (500_000, 64, 90),
        (1_000_000, 67, 80),
    ]
    assert tracks[0].events == []


def test_other_events_are_ignored() -> None:
    track = [
        mido.Message("note_on", note=60, velocity=100, time=0),
        mido.Message("control_change", control=7, value=100, time=10),
        mido.Message("note_off", note=60, velocity=0, time=10),
        mido.MetaMessage("key_signature", key="C", time=0),
        mido.Message("note_on", note=60, velocity=0, time=10),
        mido.MetaMessage("end_of_track", time=0),
    ]
    (player,) = play_all(Sequencer([track]), 480)
    # velocity-0 note_on is still a note_on
    assert [(e.note, e.velocity) for e in player.events] == [(60, 100), (60, 0)]
    assert player.name is None


def test_progress_counts_every_event(song_midi: mido.MidiFile) -> None:
    progress = _CountingProgress()
    sequence_midi(song_midi, progress)
    assert progress.total == 8
    assert progress.count == 8
    assert progress.finished


# ── Header & Names ───────────────────────────────────────


@pytest.mark.parametrize("division", [0, -1, 0xE728])
def test_non_metrical_timing_is_fatal(division: int) -> None:
    with pytest.raises(UnsupportedFeatureError):
        ticks_per_quarter(division)


def test_smpte_midi_file_is_rejected() -> None:
    mid = mido.MidiFile(ticks_per_beat=0xE728)
    mid.tracks.append(mido.MidiTrack())
    with pytest.raises(UnsupportedFeatureError):
        sequence_midi(mid)


def test_track_name_decoding() -> None:
    assert decode_track_name("Piano") == "Piano"
    # UTF-8 bytes read by mido as latin-1
    assert decode_track_name("Ã©tude") == "étude"
    assert decode_track_name("\xff\xfe") is None
    assert decode_track_name("流れ") == "流れ"


def test_load_midi_missing_file(tmp_path) -> None:
    with pytest.raises(ResourceError, match="Loading MIDI file"):
        load_midi(tmp_path / "missing.mid")


def test_load_midi_garbage(tmp_path) -> None:
    path = tmp_path / "garbage.mid"
    path.write_bytes(b"not a midi file at all")
    with pytest.raises(ResourceError):
        load_midi(path)


def test_in_memory_latin1_name_is_kept() -> None:
    mid = mido.MidiFile(ticks_per_beat=480)
    mid.tracks.append(mido.MidiTrack([mido.MetaMessage("track_name", name="Café", time=0)]))
    (track,) = sequence_midi(mid)
    assert track.name == "Café"


def test_file_names_are_decoded_as_utf8(tmp_path) -> None:
    mid = mido.MidiFile(ticks_per_beat=480)
    # UTF-8 bytes of "Café", stored one byte per latin-1 character
    mid.tracks.append(mido.MidiTrack([mido.MetaMessage("track_name", name="CafÃ©", time=0)]))
    mid.tracks.append(mido.MidiTrack([mido.MetaMessage("track_name", name="Caf\xe9", time=0)]))
    path = tmp_path / "names.mid"
    mid.save(str(path))

    tracks = sequence_midi(load_midi(path))
    assert [t.name for t in tracks] == ["Café", None]


def test_tempo_changes_are_not_logged_per_event() -> None:
    conductor = [mido.MetaMessage("set_tempo", tempo=400_000 + i, time=10) for i in range(50)]
    with capture_logs() as logs:
        play_all(Sequencer([conductor]), 480)
    assert [entry["event"] for entry in logs] == ["sequencer.done"]
