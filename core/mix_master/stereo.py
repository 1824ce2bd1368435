"""
core/mix_master/stereo.py — Stereo width as a mix width multiplier.

The reference matcher compares a reference's width against
``MixSettings.stereo_imaging.width``, where 1.0 means "leave the image as
is". The measurement uses the same scale:

    width = 1 + rms(side) / rms(mid),  clamped to [0, 2]

A mono file (or identical channels) measures exactly 1.0, a typical wide
mix lands between 1.2 and 1.5, and a fully out-of-phase pair saturates at 2.0.
"""

from __future__ import annotations

import numpy as np

from core.mix_master.types import AudioSample

_EPS = 1e-10
MAX_WIDTH = 2.0


def measure_stereo_width(sample: AudioSample) -> float:
    """Width multiplier of the first two channels; 1.0 for mono input."""
    if sample.channels < 2:
        return 1.0
    left, right = sample.samples[0], sample.samples[1]
    rms_mid = float(np.sqrt(np.mean(((left + right) / 2.0) ** 2)))
    rms_side = float(np.sqrt(np.mean(((left - right) / 2.0) ** 2)))
    if rms_side < _EPS:
        return 1.0
    if rms_mid < _EPS:
        return MAX_WIDTH
    return float(min(MAX_WIDTH, 1.0 + rms_side / rms_mid))
