"""
core/mix_master/intensity.py — Blend a preset toward its neutral baseline.

Rules (i = intensity in [0, 1]):

    scaled by i          EQ gains, makeup gain, reverb/delay/chorus wetness,
                         saturation drive and warmth
    1 + (x − 1)·i        compression ratio, stereo width
    passed through       cutoffs, threshold, attack/release, room size,
                         damping, delay time/feedback, chorus rate/depth,
                         bass-mono crossover

i = 0 reproduces ``neutral_baseline(preset)``; i = 1 reproduces the preset.
"""

from __future__ import annotations

import math

from core.mix_master.errors import InputError
from core.mix_master.settings import (
    ChorusSettings,
    CompressionSettings,
    DelaySettings,
    EffectsSettings,
    EQSettings,
    MixSettings,
    ReverbSettings,
    SaturationSettings,
    StereoImagingSettings,
)


def intensity_from_percent(percent: float) -> float:
    """Convert a 0–100 intensity to 0–1, clamping out-of-range values.

    Raises:
        InputError: If ``percent`` is NaN or infinite.
    """
    if not math.isfinite(percent):
        raise InputError(f"Intensity must be a finite number, got {percent}")
    return min(100.0, max(0.0, float(percent))) / 100.0


def _toward_unity(value: float, intensity: float) -> float:
    # same as 1 + (value - 1) * intensity, but exact at both ends
    return value * intensity + (1.0 - intensity)


def apply_intensity(mix: MixSettings, intensity: float) -> MixSettings:
    """Return a new MixSettings blended between neutral (0) and ``mix`` (1).

    Raises:
        InputError: If ``intensity`` is outside [0, 1] or not finite.
    """
    if not math.isfinite(intensity) or not 0.0 <= intensity <= 1.0:
        raise InputError(f"Intensity must be within [0, 1], got {intensity}")

    i = float(intensity)
    eq, comp, fx = mix.eq, mix.compression, mix.effects
    return MixSettings(
        eq=EQSettings(
            low_gain=eq.low_gain * i,
            low_mid_gain=eq.low_mid_gain * i,
            mid_gain=eq.mid_gain * i,
            high_mid_gain=eq.high_mid_gain * i,
            high_gain=eq.high_gain * i,
            low_cut=eq.low_cut,
            high_cut=eq.high_cut,
        ),
        compression=CompressionSettings(
            threshold=comp.threshold,
            ratio=_toward_unity(comp.ratio, i),
            attack=comp.attack,
            release=comp.release,
            makeup_gain=comp.makeup_gain * i,
        ),
        effects=EffectsSettings(
            reverb=ReverbSettings(
                wetness=fx.reverb.wetness * i,
                room_size=fx.reverb.room_size,
                damping=fx.reverb.damping,
            ),
            delay=DelaySettings(
                time=fx.delay.time,
                feedback=fx.delay.feedback,
                wetness=fx.delay.wetness * i,
            ),
            chorus=ChorusSettings(
                rate=fx.chorus.rate,
                depth=fx.chorus.depth,
                wetness=fx.chorus.wetness * i,
            ),
            saturation=SaturationSettings(
                drive=fx.saturation.drive * i,
                warmth=fx.saturation.warmth * i,
            ),
        ),
        stereo_imaging=StereoImagingSettings(
            width=_toward_unity(mix.stereo_imaging.width, i),
            bass_mono_freq=mix.stereo_imaging.bass_mono_freq,
        ),
        genre_preset=mix.genre_preset,
        preset_intensity=mix.preset_intensity,
    )
