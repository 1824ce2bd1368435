"""Tests for core/mix_master/intensity.py — preset intensity blending."""

from __future__ import annotations

import math

import pytest

from core.mix_master.catalog import GenrePresetCatalog
from core.mix_master.errors import InputError
from core.mix_master.intensity import apply_intensity, intensity_from_percent
from core.mix_master.settings import neutral_baseline


class TestIntensityFromPercent:
    @pytest.mark.parametrize(("percent", "expected"), [(0, 0.0), (50, 0.5), (100, 1.0)])
    def test_scale(self, percent: float, expected: float) -> None:
        assert intensity_from_percent(percent) == expected

    @pytest.mark.parametrize(("percent", "expected"), [(-10, 0.0), (150, 1.0)])
    def test_out_of_range_clamped(self, percent: float, expected: float) -> None:
        assert intensity_from_percent(percent) == expected

    @pytest.mark.parametrize("percent", [math.nan, math.inf, -math.inf])
    def test_non_finite_rejected(self, percent: float) -> None:
        with pytest.raises(InputError):
            intensity_from_percent(percent)


class TestApplyIntensity:
    def test_zero_equals_neutral_baseline(self, catalog: GenrePresetCatalog) -> None:
        for preset in catalog.list_presets():
            mix = preset.mix_settings
            assert apply_intensity(mix, 0.0) == neutral_baseline(mix)

    def test_one_equals_preset(self, catalog: GenrePresetCatalog) -> None:
        for preset in catalog.list_presets():
            assert apply_intensity(preset.mix_settings, 1.0) == preset.mix_settings

    def test_hip_hop_half_intensity(self, catalog: GenrePresetCatalog) -> None:
        mix = catalog.get("hip_hop").mix_settings
        half = apply_intensity(mix, 0.5)
        assert half.eq.low_gain == pytest.approx(2.0)
        assert half.compression.ratio == pytest.approx(3.5)
        assert half.compression.makeup_gain == pytest.approx(2.0)
        assert half.effects.saturation.drive == pytest.approx(0.25)

    def test_passthrough_fields_unchanged(self, catalog: GenrePresetCatalog) -> None:
        mix = catalog.get("hip_hop").mix_settings
        half = apply_intensity(mix, 0.3)
        assert half.eq.low_cut == mix.eq.low_cut
        assert half.eq.high_cut == mix.eq.high_cut
        assert half.compression.threshold == mix.compression.threshold
        assert half.compression.attack == mix.compression.attack
        assert half.effects.reverb.room_size == mix.effects.reverb.room_size
        assert half.effects.delay.time == mix.effects.delay.time
        assert half.stereo_imaging.bass_mono_freq == mix.stereo_imaging.bass_mono_freq
        assert half.genre_preset == "hip_hop"

    def test_monotonic_in_intensity(self, catalog: GenrePresetCatalog) -> None:
        mix = catalog.get("edm").mix_settings
        steps = [apply_intensity(mix, i / 10) for i in range(11)]
        ratios = [s.compression.ratio for s in steps]
        widths = [s.stereo_imaging.width for s in steps]
        wetness = [s.effects.reverb.wetness for s in steps]
        assert ratios == sorted(ratios)
        assert widths == sorted(widths)
        assert wetness == sorted(wetness)

    def test_input_not_modified(self, catalog: GenrePresetCatalog) -> None:
        mix = catalog.get("rock").mix_settings
        before = mix.copy()
        apply_intensity(mix, 0.4)
        assert mix == before

    @pytest.mark.parametrize("intensity", [-0.01, 1.01, math.nan])
    def test_out_of_range_rejected(self, catalog: GenrePresetCatalog, intensity: float) -> None:
        with pytest.raises(InputError):
            apply_intensity(catalog.get("pop").mix_settings, intensity)
