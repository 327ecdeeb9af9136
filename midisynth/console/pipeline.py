"""MIDISYNTH pipeline — Sequence, render and mix a MIDI file.

Phases:
  1. Sequencing: merge all tracks and convert ticks to microseconds
  2. Rendering: one worker per (track, instrument) pair, run in parallel
  3. Mixing: sum the rendered stereo buffers with their pan/gain factors

Sequencing and mixing are single-threaded. Render workers share nothing:
each gets its own engine and its own copy of the track's notes.
"""

from __future__ import annotations

import copy
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass
from pathlib import Path

import structlog

from midisynth.config import Settings, settings
from midisynth.console.progress import NullProgress, ProgressReporter
from midisynth.console.song_config import InstrumentSetting, SongConfig, load_config
from midisynth.errors import ConfigurationError, NoAudioProducedError, RenderError
from midisynth.grid.timing import PlayerTrack, load_midi, sequence_midi
from midisynth.hands.mixer import GainFactors, Mixer, MixerTrack, MixResult, write_wav
from midisynth.hands.renderer import Renderer
from midisynth.hands.synth import EngineFactory, check_soundfont, fluidsynth_factory

logger = structlog.get_logger()

# Creates the progress reporter for one render job, given its label
ProgressFactory = Callable[[str], ProgressReporter]


@dataclass
class RenderJob:
    """One (track, instrument) pair to render."""

    track_index: int
    track_name: str
    track: PlayerTrack
    instrument: InstrumentSetting


# ── Job Planning ─────────────────────────────────────────


def plan_jobs(tracks: list[PlayerTrack], config: SongConfig) -> list[RenderJob]:
    """Match tracks to instrument settings.

    Unnamed tracks are skipped silently. Track 0 is usually the conductor
    track (tempo, signature) so it is not warned about when unmatched.
    """
    jobs: list[RenderJob] = []
    for idx, track in enumerate(tracks):
        if track.name is None:
            continue

        entries = config.instruments_for(track.name)
        if entries is None:
            if idx != 0:
                logger.warning("pipeline.no_instruments", track=track.name, index=idx)
            continue

        for raw in entries:
            try:
                instrument = InstrumentSetting.from_mapping(raw)
            except ConfigurationError as e:
                logger.warning("pipeline.bad_instrument", track=track.name, error=str(e))
                continue
            jobs.append(RenderJob(
                track_index=idx,
                track_name=track.name,
                track=copy.deepcopy(track),
                instrument=instrument,
            ))
    return jobs


# ── Rendering ────────────────────────────────────────────


def render_job(
    job: RenderJob,
    engine_factory: EngineFactory,
    padding_us: int,
    progress: ProgressReporter | None = None,
) -> MixerTrack:
    """Render one job with a private engine."""
    engine = engine_factory()
    try:
        left, right = Renderer(engine, job.track).render(job.instrument, padding_us, progress)
    finally:
        engine.close()

    return MixerTrack(
        left=left,
        right=right,
        gain=GainFactors.from_gain_pan(job.instrument.gain, job.instrument.pan),
        name=job.track_name,
    )


def render_all(
    jobs: list[RenderJob],
    engine_factory: EngineFactory,
    config: Settings | None = None,
    progress_factory: ProgressFactory | None = None,
) -> list[MixerTrack]:
    """Fan out one worker per job and join them all.

    Every worker runs to completion; afterwards the first failure in job
    order aborts the run as a RenderError.
    """
    config = config or settings
    if not jobs:
        msg = "No audio was produced"
        raise NoAudioProducedError(msg)

    def _progress(job: RenderJob) -> ProgressReporter:
        if progress_factory is None:
            return NullProgress()
        return progress_factory(job.track_name)

    workers = config.max_workers or len(jobs)
    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = [
            executor.submit(render_job, job, engine_factory, config.padding_us, _progress(job))
            for job in jobs
        ]
        wait(futures)

    for job, future in zip(jobs, futures):
        exc = future.exception()
        if exc is not None:
            instr = job.instrument
            msg = (
                f"Rendering track {job.track_name} "
                f"(bank {instr.bank}, preset {instr.preset}) failed: {exc}"
            )
            raise RenderError(msg) from exc

    logger.info("render.done", jobs=len(jobs))
    return [f.result() for f in futures]


# ── Full Run ─────────────────────────────────────────────


def run(
    config_path: str | Path,
    midi_path: str | Path,
    wav_path: str | Path,
    config: Settings | None = None,
    engine_factory: EngineFactory | None = None,
    writer: Callable[..., MixResult] = write_wav,
    announce: Callable[[str], None] | None = None,
    progress_factory: ProgressFactory | None = None,
) -> MixResult:
    """Config + MIDI file in, WAV file out.

    ``announce`` receives the phase banners; ``progress_factory`` builds
    one reporter per phase or render job.
    """
    config = config or settings
    announce = announce or (lambda _: None)

    def _progress(label: str) -> ProgressReporter:
        return progress_factory(label) if progress_factory else NullProgress()

    song = load_config(config_path)
    soundfont = check_soundfont(song.soundfont)
    if engine_factory is None:
        engine_factory = fluidsynth_factory(soundfont, config)
    midi = load_midi(midi_path)

    announce("[1/3] Sequencing MIDI file...")
    tracks = sequence_midi(midi, _progress("sequencing"))

    announce("[2/3] Rendering tracks...")
    jobs = plan_jobs(tracks, song)
    rendered = render_all(jobs, engine_factory, config, progress_factory)

    announce("[3/3] Mixing...")
    wavdata = Mixer(rendered).mix_stereo(_progress("mixing"))

    result = writer(wav_path, wavdata, config.sample_rate, 2, tracks_mixed=len(rendered))
    logger.info(
        "pipeline.done",
        output=result.output_path,
        duration_s=round(result.duration_s, 2),
        peak_db=round(result.peak_db, 1),
    )
    return result
