"""Shared fixtures: a recording synth engine and small MIDI/config builders."""

from __future__ import annotations

from pathlib import Path

import mido
import numpy as np
import pytest

from midisynth.config import Settings

SF2_HEADER = b"RIFF\x00\x00\x00\x00sfbk"


class FakeEngine:
    """Synth engine stand-in that records every call.

    Renders a constant 0.5 on the left channel and 0.25 on the right.
    """

    def __init__(self, sample_rate: int = 1000, block_size: int = 10) -> None:
        self.sample_rate = sample_rate
        self.block_size = block_size
        self.calls: list[tuple] = []
        self.blocks = 0
        self.closed = False

    def bank_select(self, bank: int) -> None:
        self.calls.append(("bank", bank))

    def program_change(self, preset: int) -> None:
        self.calls.append(("program", preset))

    def note_on(self, note: int, velocity: int) -> None:
        self.calls.append(("note", note, velocity, self.blocks))

    def render(self, left: np.ndarray, right: np.ndarray) -> None:
        assert len(left) == len(right) == self.block_size
        left[:] = 0.5
        right[:] = 0.25
        self.blocks += 1
        self.calls.append(("render",))

    def close(self) -> None:
        self.closed = True


class FailingEngine(FakeEngine):
    def render(self, left: np.ndarray, right: np.ndarray) -> None:
        raise RuntimeError("synth exploded")


@pytest.fixture
def small_settings() -> Settings:
    return Settings(sample_rate=1000, block_size=10, padding_us=1_500_000)


@pytest.fixture
def song_midi() -> mido.MidiFile:
    """Conductor track + one 'Piano' track with three quarter notes.

    Track 1 ends at tick 1440 = 1.5 s at the default tempo.
    """
    mid = mido.MidiFile(ticks_per_beat=480)

    conductor = mido.MidiTrack()
    conductor.append(mido.MetaMessage("track_name", name="Conductor", time=0))
    conductor.append(mido.MetaMessage("set_tempo", tempo=500_000, time=0))
    conductor.append(mido.MetaMessage("end_of_track", time=0))

    piano = mido.MidiTrack()
    piano.append(mido.MetaMessage("track_name", name="Piano", time=0))
    piano.append(mido.Message("note_on", note=60, velocity=100, time=0))
    piano.append(mido.Message("note_on", note=64, velocity=90, time=480))
    piano.append(mido.Message("note_on", note=67, velocity=80, time=480))
    piano.append(mido.MetaMessage("end_of_track", time=480))

    mid.tracks.extend([conductor, piano])
    return mid


@pytest.fixture
def song_files(tmp_path: Path, song_midi: mido.MidiFile):
    """Write a soundfont stub, the MIDI file and a config; return a path builder."""
    sf2 = tmp_path / "test.sf2"
    sf2.write_bytes(SF2_HEADER + b"\x00" * 16)
    midi_path = tmp_path / "song.mid"
    song_midi.save(str(midi_path))

    def _write(instr_toml: str) -> tuple[Path, Path]:
        config_path = tmp_path / "song.toml"
        config_path.write_text(f'soundfont = "{sf2.as_posix()}"\n\n{instr_toml}\n')
        return config_path, midi_path

    return _write
