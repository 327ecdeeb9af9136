"""Tests for runtime settings."""

from midisynth.config import Settings


def test_defaults() -> None:
    s = Settings()
    assert s.sample_rate == 44100
    assert s.block_size == 64
    assert s.padding_us == 1_500_000
    assert s.max_workers is None


def test_environment_override(monkeypatch) -> None:
    monkeypatch.setenv("MIDISYNTH_SAMPLE_RATE", "48000")
    monkeypatch.setenv("MIDISYNTH_MAX_WORKERS", "2")
    s = Settings()
    assert s.sample_rate == 48000
    assert s.max_workers == 2
