"""MIDISYNTH command line — ``midisynth -c song.toml song.mid song.wav``."""

from __future__ import annotations

import argparse
import sys

from rich.console import Console

from midisynth import __version__
from midisynth.console.pipeline import run
from midisynth.console.progress import RichProgress, make_progress
from midisynth.errors import MidiSynthError


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="midisynth",
        description="Render a MIDI file to a stereo WAV file using a soundfont.",
    )
    parser.add_argument("-c", "--config", required=True, help="Configuration file")
    parser.add_argument("midifile", help="Input MIDI file")
    parser.add_argument("wavfile", help="Destination WAV file")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    console = Console()

    try:
        with make_progress() as progress:
            run(
                args.config,
                args.midifile,
                args.wavfile,
                announce=progress.console.print,
                progress_factory=lambda label: RichProgress(progress, label),
            )
    except MidiSynthError as e:
        console.print(f"[bold red]Error[/bold red]: {e}", highlight=False)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
