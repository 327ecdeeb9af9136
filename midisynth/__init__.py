"""MIDISYNTH — Render multi-track MIDI files to stereo WAV through a soundfont."""

__version__ = "0.1.0"
