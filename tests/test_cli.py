"""Tests for the command-line entry point."""

from __future__ import annotations

import pytest

from midisynth import __version__
from midisynth.cli import build_parser, main


def test_parser_arguments() -> None:
    args = build_parser().parse_args(["-c", "song.toml", "song.mid", "song.wav"])
    assert (args.config, args.midifile, args.wavfile) == ("song.toml", "song.mid", "song.wav")


def test_config_is_required() -> None:
    with pytest.raises(SystemExit):
        build_parser().parse_args(["song.mid", "song.wav"])


def test_version(capsys) -> None:
    with pytest.raises(SystemExit):
        build_parser().parse_args(["--version"])
    assert __version__ in capsys.readouterr().out


def test_fatal_error_is_reported(tmp_path, capsys) -> None:
    code = main(["-c", str(tmp_path / "missing.toml"), "song.mid", str(tmp_path / "out.wav")])
    assert code == 1
    out = capsys.readouterr().out
    assert "Error" in out
    assert "Reading configuration file" in out
