"""Tests for core/mix_master/reference.py and stereo.py — reference matching.

Covers:
- FrequencyBalance as per-band energy shares; flat spectra trigger no EQ rule
- Each matching rule fires independently (loudness, treble, width, bass)
- Overall confidence: mean of triggered rules, 0.8 when none fire
- Input settings are never modified
- Stereo width measurement on the mix-width scale
"""

from __future__ import annotations

import numpy as np
import pytest

from conftest import SR, make_noise, make_sine
from core.mix_master.reference import (
    DEFAULT_MATCH_CONFIDENCE,
    FrequencyBalance,
    build_reference_profile,
    match_reference,
)
from core.mix_master.settings import MixSettings
from core.mix_master.spectral import analyze_spectrum
from core.mix_master.stereo import measure_stereo_width
from core.mix_master.suggestions import SuggestionCategory
from core.mix_master.types import AudioSample, LoudnessMetrics, SpectralProfile


def _profile(*bands: float) -> SpectralProfile:
    low, low_mid, mid, high_mid, high = bands
    return SpectralProfile(
        low=low,
        low_mid=low_mid,
        mid=mid,
        high_mid=high_mid,
        high=high,
        centroid=0.0,
        rolloff=0.0,
        flux=0.0,
    )


def _loudness(integrated: float) -> LoudnessMetrics:
    return LoudnessMetrics(
        integrated=integrated,
        short_term=integrated,
        momentary=integrated,
        true_peak=-1.0,
        dynamic_range=8.0,
        loudness_range=5.0,
    )


# Mid band strongest; bass and treble shares are 0.5/3.2, so neither EQ rule fires.
_FLAT = _profile(0.5, 0.6, 1.0, 0.6, 0.5)
# Top band carries 80% of the energy.
_BRIGHT = _profile(0.1, 0.1, 0.1, 0.1, 1.6)
# Low band carries 80% of the energy.
_BASSY = _profile(1.6, 0.1, 0.1, 0.1, 0.1)


def _reference(profile: SpectralProfile = _FLAT, lufs: float = -20.0, width: float = 1.0):
    return build_reference_profile(profile, _loudness(lufs), width)


class TestFrequencyBalance:
    def test_shares_of_total_energy(self) -> None:
        balance = FrequencyBalance.from_profile(_profile(2.0, 4.0, 8.0, 4.0, 2.0))
        assert balance.mid == pytest.approx(0.4)
        assert balance.bass == pytest.approx(0.1)
        assert balance.treble == pytest.approx(0.1)
        assert sum(balance.as_dict().values()) == pytest.approx(1.0)

    def test_silence_is_all_zero(self) -> None:
        balance = FrequencyBalance.from_profile(_profile(0.0, 0.0, 0.0, 0.0, 0.0))
        assert set(balance.as_dict().values()) == {0.0}

    def test_white_noise_is_even(self) -> None:
        balance = FrequencyBalance.from_profile(analyze_spectrum(make_noise(seconds=2.0)))
        for share in balance.as_dict().values():
            assert 0.15 < share < 0.25

    def test_white_noise_triggers_no_eq_rule(self) -> None:
        reference = build_reference_profile(
            analyze_spectrum(make_noise(seconds=2.0)), _loudness(-20.0), 1.0
        )
        match = match_reference(MixSettings(), reference)
        assert match.suggestions == ()
        assert match.settings.eq.low_gain == 0.0
        assert match.settings.eq.high_gain == 0.0


class TestMatchRules:
    def test_no_rule_fires(self) -> None:
        current = MixSettings()
        match = match_reference(current, _reference())
        assert match.suggestions == ()
        assert match.adjustments == {}
        assert match.confidence == DEFAULT_MATCH_CONFIDENCE
        assert match.settings == current

    def test_loud_reference_sets_target(self) -> None:
        match = match_reference(MixSettings(), _reference(lufs=-10.0))
        assert match.adjustments["target_lufs"] == -10.0
        assert match.suggestions[0].category == SuggestionCategory.LOUDNESS
        assert match.suggestions[0].parameters["targetLUFS"] == -10.0
        assert match.confidence == pytest.approx(0.88)

    def test_streaming_norm_is_not_loud(self) -> None:
        match = match_reference(MixSettings(), _reference(lufs=-14.0))
        assert "target_lufs" not in match.adjustments

    def test_bright_reference_boosts_high_shelf(self) -> None:
        match = match_reference(MixSettings(), _reference(_BRIGHT))
        assert match.settings.eq.high_gain == pytest.approx(0.3)
        assert match.adjustments["high_shelf"]["frequency"] == 8000.0
        assert [s.category for s in match.suggestions] == [SuggestionCategory.EQ]

    def test_wide_reference_sets_width(self) -> None:
        match = match_reference(MixSettings(), _reference(width=1.3))
        assert match.settings.stereo_imaging.width == pytest.approx(1.3)
        assert match.adjustments["stereo_width"] == 1.3
        assert match.confidence == pytest.approx(0.82)

    def test_bass_heavy_reference_boosts_low_shelf(self) -> None:
        match = match_reference(MixSettings(), _reference(_BASSY))
        assert match.settings.eq.low_gain == pytest.approx(2.5)
        assert match.adjustments["bass_boost"] == {"frequency": 80.0, "gain": 2.5}

    def test_triggered_rules_average_confidence(self) -> None:
        match = match_reference(MixSettings(), _reference(_BASSY, lufs=-8.0, width=1.4))
        assert len(match.suggestions) == 3
        assert match.confidence == pytest.approx((0.88 + 0.82 + 0.90) / 3)

    def test_shelf_rules_never_fire_together(self) -> None:
        for profile in (_BRIGHT, _BASSY, _FLAT):
            match = match_reference(MixSettings(), _reference(profile))
            assert not {"high_shelf", "bass_boost"} <= set(match.adjustments)

    def test_adjustments_add_to_current_settings(self) -> None:
        current = MixSettings()
        current.eq.low_gain = 1.0
        match = match_reference(current, _reference(_BASSY))
        assert match.settings.eq.low_gain == pytest.approx(3.5)

    def test_input_not_modified(self) -> None:
        current = MixSettings()
        before = current.copy()
        match_reference(current, _reference(_BRIGHT, -8.0, 1.4))
        assert current == before


class TestReferenceProfile:
    def test_dynamic_range_from_loudness(self) -> None:
        assert _reference().dynamic_range == 8.0

    def test_as_dict_shape(self) -> None:
        data = _reference().as_dict()
        assert set(data) == {
            "spectral_profile",
            "loudness",
            "dynamic_range",
            "stereo_width",
            "frequency_balance",
        }


class TestStereoWidth:
    def test_mono_is_unity(self) -> None:
        assert measure_stereo_width(make_sine(channels=1)) == 1.0

    def test_identical_channels_are_unity(self) -> None:
        assert measure_stereo_width(make_sine(channels=2)) == 1.0

    def test_inverted_channels_saturate(self) -> None:
        y = make_sine().samples[0]
        assert measure_stereo_width(AudioSample(samples=np.stack([y, -y]), sample_rate=SR)) == 2.0

    def test_partial_width(self) -> None:
        y = make_sine().samples[0]
        sample = AudioSample(samples=np.stack([y, 0.5 * y]), sample_rate=SR)
        # mid = 0.75·y, side = 0.25·y
        assert measure_stereo_width(sample) == pytest.approx(1.0 + 1.0 / 3.0)

    def test_independent_noise_is_wide(self) -> None:
        assert 1.5 < measure_stereo_width(make_noise(channels=2)) <= 2.0
