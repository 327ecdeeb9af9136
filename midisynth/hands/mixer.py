"""MIDISYNTH Mixer — Pan-law gain factors and stereo mix-down.

Every rendered track is already stereo (soundfonts pan their own samples),
so panning is a 2x2 matrix: direct gains keep each channel on its own side
and cross gains feed one side into the other as the pan moves away from it.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from pathlib import Path

import numpy as np
import soundfile as sf
import structlog
from numpy.typing import NDArray

from midisynth.console.progress import NullProgress, ProgressReporter

logger = structlog.get_logger()


# ── Data Types ───────────────────────────────────────────


@dataclass(frozen=True)
class GainFactors:
    """Stereo routing coefficients for one track."""

    l_to_l: float
    l_to_r: float
    r_to_l: float
    r_to_r: float

    @classmethod
    def from_gain_pan(cls, gain_db: float = 0.0, pan: float = 0.0) -> GainFactors:
        """Constant-power pan law with non-negative cross-feed.

        ``pan`` is -1 (left) .. +1 (right). The value goes through a
        truncating modulo first, so ±1 wrap to centre and values outside
        the range wrap instead of clamping.
        """
        # map pan from [-1 .. 1] to [0 .. π/2]
        angle = ((math.fmod(pan, 1.0) + 1.0) / 2.0) * (math.pi / 2.0)
        gain = 10.0 ** (gain_db / 20.0)

        return cls(
            l_to_l=gain * math.cos(angle),
            r_to_l=max(0.0, gain * math.cos(angle + math.pi / 4.0)),
            r_to_r=gain * math.sin(angle),
            l_to_r=max(0.0, gain * math.sin(angle - math.pi / 4.0)),
        )


@dataclass
class MixerTrack:
    """One rendered stereo track, ready for the mix."""

    left: NDArray[np.float32]
    right: NDArray[np.float32]
    gain: GainFactors
    name: str = ""

    def __len__(self) -> int:
        return len(self.left)


@dataclass
class MixResult:
    """Result of writing a mix to disk."""

    output_path: str
    duration_s: float
    peak_db: float
    tracks_mixed: int
    sample_rate: int


# ── Mixer Engine ─────────────────────────────────────────


class Mixer:
    """Sums rendered tracks into one interleaved stereo buffer.

    No clipping or normalization: overshoot is left to the writer.
    """

    def __init__(self, tracks: list[MixerTrack] | None = None) -> None:
        self.tracks: list[MixerTrack] = tracks or []

    def mix_stereo(self, progress: ProgressReporter | None = None) -> NDArray[np.float32]:
        """Mix all tracks; returns [L0, R0, L1, R1, ...].

        The output is as long as the longest track. Shorter tracks only
        touch their own prefix, so past their end they contribute silence.
        """
        progress = progress or NullProgress()
        sc = max((len(t) for t in self.tracks), default=0)
        progress.set_total(sum(len(t) for t in self.tracks))

        out_l = np.zeros(sc, dtype=np.float32)
        out_r = np.zeros(sc, dtype=np.float32)

        for track in self.tracks:
            n = len(track)
            gf = track.gain
            il = track.left
            ir = track.right
            out_l[:n] += gf.l_to_l * il + gf.r_to_l * ir
            out_r[:n] += gf.l_to_r * il + gf.r_to_r * ir
            progress.advance(n)

        out = np.empty(sc * 2, dtype=np.float32)
        out[0::2] = out_l
        out[1::2] = out_r

        progress.finish()
        logger.info("mix.done", tracks=len(self.tracks), samples=sc)
        return out


# ── Output ───────────────────────────────────────────────


def write_wav(
    output_path: str | Path,
    interleaved: NDArray[np.float32],
    sample_rate: int,
    channels: int = 2,
    tracks_mixed: int = 0,
) -> MixResult:
    """Write an interleaved float buffer as a 32-bit float WAV."""
    frames = interleaved.reshape(-1, channels)
    p = Path(output_path)
    p.parent.mkdir(parents=True, exist_ok=True)
    sf.write(str(p), frames, sample_rate, subtype="FLOAT")

    peak = float(np.max(np.abs(frames))) if frames.size else 0.0
    return MixResult(
        output_path=str(p),
        duration_s=len(frames) / sample_rate,
        peak_db=float(20.0 * np.log10(max(peak, 1e-10))),
        tracks_mixed=tracks_mixed,
        sample_rate=sample_rate,
    )
