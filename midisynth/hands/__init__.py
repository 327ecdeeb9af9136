"""HANDS — Audio layer: synth engine, per-track renderer and stereo mixer."""
