"""MIDISYNTH global configuration."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Render settings loaded from environment variables."""

    # Synthesis
    sample_rate: int = 44100
    block_size: int = 64  # frames per synth render call
    synth_gain: float = 0.2

    # Trailing time rendered past each track's end (lets notes ring out)
    padding_us: int = 1_500_000

    # Rendering workers (None = one per instrument/track pair)
    max_workers: int | None = None

    model_config = {"env_prefix": "MIDISYNTH_"}


settings = Settings()
