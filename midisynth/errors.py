"""MIDISYNTH error taxonomy.

Only ConfigurationError is recoverable (the pipeline skips the offending
instrument); everything else aborts the run.
"""

from __future__ import annotations


class MidiSynthError(Exception):
    """Base class for all midisynth errors."""


class ConfigurationError(MidiSynthError):
    """An instrument setting is incomplete or invalid."""


class ResourceError(MidiSynthError):
    """A soundfont, MIDI file or configuration file could not be read."""


class UnsupportedFeatureError(MidiSynthError):
    """The input uses a feature midisynth does not implement."""


class NoAudioProducedError(MidiSynthError):
    """No instrument matched any track, so nothing was rendered."""


class RenderError(MidiSynthError):
    """A rendering worker failed."""
