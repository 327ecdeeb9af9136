"""MIDISYNTH song configuration — soundfont and per-track instruments.

Configuration is a TOML file::

    soundfont = "GeneralUser.sf2"

    [[instr.Piano]]
    bank = 0
    preset = 0
    tsp = -12    # transpose in semitones
    pan = -0.25  # -1 (left) .. +1 (right)
    gain = -3.0  # dB

Track names of the MIDI file select instrument lists; a track may be
rendered with several instruments (layering).
"""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from midisynth.errors import ConfigurationError, ResourceError


class InstrumentSetting(BaseModel):
    """One instrument layer for a track."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    bank: int = Field(ge=0, le=255)
    preset: int = Field(ge=0, le=255)
    transpose: int | None = Field(default=None, alias="tsp")
    pan: float = 0.0  # -1 .. 1
    gain: float = 0.0  # dB

    @classmethod
    def from_mapping(cls, raw: Any) -> InstrumentSetting:
        """Validate one ``[[instr.<name>]]`` entry."""
        if not isinstance(raw, dict):
            msg = "Instrument entry is not a table"
            raise ConfigurationError(msg)
        for key in ("bank", "preset"):
            if key not in raw:
                msg = f"Missing {key} value"
                raise ConfigurationError(msg)
        try:
            return cls.model_validate(raw)
        except ValidationError as e:
            fields = ", ".join(str(err["loc"][0]) for err in e.errors() if err["loc"])
            msg = f"Invalid instrument setting ({fields or 'entry'})"
            raise ConfigurationError(msg) from e


@dataclass
class SongConfig:
    """Parsed configuration file. Instrument entries stay raw until used."""

    soundfont: Path
    instruments: dict[str, list[Any]] = field(default_factory=dict)

    def instruments_for(self, track_name: str) -> list[Any] | None:
        entries = self.instruments.get(track_name)
        if entries is None:
            return None
        # A single inline table is accepted as a one-element list
        if isinstance(entries, dict):
            return [entries]
        return list(entries)


def parse_config(data: dict[str, Any]) -> SongConfig:
    """Build a SongConfig from a decoded TOML document."""
    instr = data.get("instr")
    if not isinstance(instr, dict):
        msg = "Invalid configuration: No instruments specified"
        raise ResourceError(msg)

    soundfont = data.get("soundfont")
    if not isinstance(soundfont, str):
        msg = "Invalid configuration: No soundfont specified"
        raise ResourceError(msg)

    return SongConfig(soundfont=Path(soundfont), instruments=dict(instr))


def load_config(path: str | Path) -> SongConfig:
    """Read and parse a configuration file."""
    p = Path(path)
    try:
        with p.open("rb") as f:
            data = tomllib.load(f)
    except OSError as e:
        msg = f"Reading configuration file {p} failed: {e}"
        raise ResourceError(msg) from e
    except tomllib.TOMLDecodeError as e:
        msg = f"Parsing configuration file {p} failed: {e}"
        raise ResourceError(msg) from e

    return parse_config(data)
