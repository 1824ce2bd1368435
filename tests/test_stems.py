"""Tests for core/mix_master/stems.py — frequency-band stem filtering.

Covers:
- Attenuation curves per stem type (bass fade 150→300 Hz, step curves)
- Confidence heuristic bounds: [base for type, 0.95]
- extract_stem returns a new sample of identical shape; input untouched
- Bass extraction raises the low band share (low-heavy mix scenario)
- Overlap-add reconstruction: an all-pass curve reproduces the input
- Unknown stem types raise InputError
"""

from __future__ import annotations

import numpy as np
import pytest

from conftest import SR, make_noise, make_sine
from core.mix_master.errors import InputError
from core.mix_master.spectral import analyze_spectrum
from core.mix_master.stems import (
    MAX_STEM_CONFIDENCE,
    STEM_BASE_CONFIDENCE,
    attenuation_curve,
    extract_stem,
    filter_channel,
    stem_confidence,
)
from core.mix_master.types import AudioSample, StemType


def _mix(seconds: float = 1.0) -> AudioSample:
    """Bass tone + mid tone + hiss, stereo."""
    t = np.arange(int(seconds * SR)) / SR
    rng = np.random.default_rng(5)
    y = (
        0.4 * np.sin(2 * np.pi * 60.0 * t)
        + 0.3 * np.sin(2 * np.pi * 1500.0 * t)
        + 0.05 * rng.uniform(-1, 1, size=t.size)
    )
    return AudioSample(samples=np.stack([y, y]), sample_rate=SR)


class TestAttenuationCurve:
    def test_bass_passes_below_150(self) -> None:
        gains = attenuation_curve(np.array([0.0, 50.0, 149.9]), StemType.BASS)
        np.testing.assert_allclose(gains, 1.0)

    def test_bass_fades_linearly_to_300(self) -> None:
        gains = attenuation_curve(np.array([150.0, 225.0, 300.0, 5000.0]), StemType.BASS)
        np.testing.assert_allclose(gains, [1.0, 0.6, 0.2, 0.2])

    def test_drums_full_pass_in_body(self) -> None:
        gains = attenuation_curve(np.array([50.0, 1000.0, 7000.0, 15000.0]), StemType.DRUMS)
        np.testing.assert_allclose(gains, [0.8, 1.0, 0.8, 0.4])

    def test_vocals_emphasise_speech_band(self) -> None:
        gains = attenuation_curve(np.array([100.0, 1000.0, 6000.0, 12000.0]), StemType.VOCALS)
        np.testing.assert_allclose(gains, [0.3, 1.0, 0.8, 0.4])

    @pytest.mark.parametrize("stem", list(StemType))
    def test_gains_within_unit_interval(self, stem: StemType) -> None:
        gains = attenuation_curve(np.fft.rfftfreq(4096, d=1 / SR), stem)
        assert np.all(gains >= 0.0)
        assert np.all(gains <= 1.0)


class TestStemConfidence:
    @pytest.mark.parametrize("stem", list(StemType))
    def test_silence_gets_base_value(self, stem: StemType) -> None:
        assert stem_confidence(np.zeros(0), stem, 0) == STEM_BASE_CONFIDENCE[stem]

    @pytest.mark.parametrize("stem", list(StemType))
    def test_capped_at_max(self, stem: StemType) -> None:
        loud = np.ones(100)
        assert stem_confidence(loud, stem, 10**9) == MAX_STEM_CONFIDENCE

    def test_base_values_in_documented_range(self) -> None:
        assert all(0.76 <= v <= 0.88 for v in STEM_BASE_CONFIDENCE.values())

    def test_size_bonus_grows_with_input(self) -> None:
        quiet = np.zeros(10)
        small = stem_confidence(quiet, StemType.HARMONY, 1_000)
        large = stem_confidence(quiet, StemType.HARMONY, 500_000)
        assert large > small


class TestFilterChannel:
    def test_output_length_matches_input(self) -> None:
        y = np.random.default_rng(1).normal(size=10_001)
        assert filter_channel(y, SR, StemType.MELODY).shape == y.shape

    def test_low_tone_survives_bass_filter(self) -> None:
        t = np.arange(SR) / SR
        y = 0.5 * np.sin(2 * np.pi * 60.0 * t)
        out = filter_channel(y, SR, StemType.BASS)
        # Hann frames at 50% overlap sum to one away from the edges
        np.testing.assert_allclose(out[4096:-4096], y[4096:-4096], atol=1e-2)

    def test_high_tone_attenuated_by_bass_filter(self) -> None:
        t = np.arange(SR) / SR
        y = 0.5 * np.sin(2 * np.pi * 5000.0 * t)
        out = filter_channel(y, SR, StemType.BASS)
        ratio = np.sqrt(np.mean(out[4096:-4096] ** 2)) / np.sqrt(np.mean(y[4096:-4096] ** 2))
        assert ratio == pytest.approx(0.2, abs=0.01)


class TestExtractStem:
    @pytest.mark.parametrize("stem", list(StemType))
    def test_confidence_bounds_for_every_stem(self, stem: StemType) -> None:
        result = extract_stem(make_noise(seconds=0.3, channels=2), stem)
        assert STEM_BASE_CONFIDENCE[stem] <= result.confidence <= MAX_STEM_CONFIDENCE

    def test_returns_new_sample_with_same_shape(self) -> None:
        sample = make_noise(seconds=0.3, channels=2)
        before = sample.samples.copy()
        result = extract_stem(sample, StemType.VOCALS)
        assert result.audio is not sample
        assert result.audio.samples.shape == sample.samples.shape
        assert result.audio.sample_rate == sample.sample_rate
        np.testing.assert_array_equal(sample.samples, before)

    def test_accepts_string_stem_type(self) -> None:
        result = extract_stem(make_sine(100.0, seconds=0.2), "bass")
        assert result.stem_type is StemType.BASS

    def test_unknown_stem_raises(self) -> None:
        with pytest.raises(InputError, match="Unknown stem type"):
            extract_stem(make_sine(seconds=0.1), "guitar")

    def test_bass_stem_raises_low_band_share(self) -> None:
        sample = _mix()
        original = analyze_spectrum(sample).band_shares()["low"]
        stem = extract_stem(sample, StemType.BASS)
        assert stem.spectral_profile.band_shares()["low"] > original

    def test_profile_describes_filtered_audio(self) -> None:
        result = extract_stem(_mix(0.5), StemType.HARMONY)
        assert result.spectral_profile == analyze_spectrum(result.audio)

    def test_output_path_empty_until_written(self) -> None:
        assert extract_stem(make_sine(seconds=0.1), StemType.DRUMS).output_path is None
