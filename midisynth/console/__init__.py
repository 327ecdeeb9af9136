"""CONSOLE — Orchestration layer.

Modules:
  song_config: TOML configuration (soundfont + instruments per track)
  pipeline: sequence → render (parallel) → mix → write
  progress: progress reporting for the three phases
"""
