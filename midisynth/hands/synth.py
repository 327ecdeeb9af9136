"""MIDISYNTH Synthesis Engine — Soundfont playback through FluidSynth.

The renderer only needs a handful of operations from a synthesizer: select a
bank and program, start notes, and produce fixed-size blocks of stereo
float samples. SynthEngine captures that contract; FluidSynthEngine
implements it with pyfluidsynth.
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Protocol

import numpy as np
from numpy.typing import NDArray

from midisynth.config import Settings, settings
from midisynth.errors import ResourceError

CHANNEL = 0  # every engine plays a single instrument on channel 0

SF2_MAGIC = (b"RIFF", b"sfbk")


# ── Engine Contract ──────────────────────────────────────


class SynthEngine(Protocol):
    """Something that renders MIDI note-ons to stereo sample blocks."""

    sample_rate: int
    block_size: int

    def bank_select(self, bank: int) -> None: ...
    def program_change(self, preset: int) -> None: ...
    def note_on(self, note: int, velocity: int) -> None: ...
    def render(self, left: NDArray[np.float32], right: NDArray[np.float32]) -> None: ...
    def close(self) -> None: ...


EngineFactory = Callable[[], SynthEngine]


# ── Soundfont Checks ─────────────────────────────────────


def check_soundfont(path: str | Path) -> Path:
    """Verify a soundfont file exists and carries a RIFF/sfbk header."""
    p = Path(path)
    try:
        with p.open("rb") as f:
            header = f.read(12)
    except OSError as e:
        msg = f"Opening soundfont file {p} failed: {e}"
        raise ResourceError(msg) from e

    if len(header) < 12 or (header[:4], header[8:12]) != SF2_MAGIC:
        msg = f"Loading soundfont file {p} failed: not a SoundFont 2 file"
        raise ResourceError(msg)
    return p


# ── FluidSynth ───────────────────────────────────────────


class FluidSynthEngine:
    """pyfluidsynth wrapper rendering offline (no audio driver is started).

    Not thread-safe: each render worker owns its own instance.
    """

    def __init__(self, soundfont: str | Path, config: Settings | None = None) -> None:
        import fluidsynth

        config = config or settings
        self.sample_rate = config.sample_rate
        self.block_size = config.block_size
        self.fs = fluidsynth.Synth(gain=config.synth_gain, samplerate=float(config.sample_rate))
        self.sfid = self.fs.sfload(str(soundfont))
        if self.sfid == -1:
            self.fs.delete()
            msg = f"Loading soundfont file {soundfont} failed"
            raise ResourceError(msg)
        self.fs.program_select(CHANNEL, self.sfid, 0, 0)

    def bank_select(self, bank: int) -> None:
        self.fs.bank_select(CHANNEL, bank)

    def program_change(self, preset: int) -> None:
        self.fs.program_change(CHANNEL, preset)

    def note_on(self, note: int, velocity: int) -> None:
        self.fs.noteon(CHANNEL, note, velocity)

    def render(self, left: NDArray[np.float32], right: NDArray[np.float32]) -> None:
        """Fill ``left`` and ``right`` with the next block of samples.

        get_samples() returns interleaved int16 [L, R, L, R, ...].
        """
        frames = len(left)
        raw = self.fs.get_samples(frames)
        audio = np.asarray(raw, dtype=np.float32) / 32768.0
        left[:] = audio[0::2]
        right[:] = audio[1::2]

    def close(self) -> None:
        self.fs.delete()


def fluidsynth_factory(soundfont: str | Path, config: Settings | None = None) -> EngineFactory:
    """Factory creating one private FluidSynthEngine per call."""

    def _make() -> SynthEngine:
        return FluidSynthEngine(soundfont, config)

    return _make
