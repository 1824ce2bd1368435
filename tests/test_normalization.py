"""Tests for core/mix_master/normalization.py — loudness normalization plans."""

from __future__ import annotations

import math

import pytest

from core.mix_master.errors import InputError
from core.mix_master.normalization import loudness_recommendation, plan_normalization
from core.mix_master.suggestions import SuggestionCategory
from core.mix_master.types import LoudnessMetrics, MeasurementSource


def _measured(
    integrated: float,
    *,
    true_peak: float = -1.0,
    lra: float = 6.0,
    threshold: float | None = None,
    degraded: bool = False,
) -> LoudnessMetrics:
    return LoudnessMetrics(
        integrated=integrated,
        short_term=integrated,
        momentary=integrated,
        true_peak=true_peak,
        dynamic_range=10.0,
        loudness_range=lra,
        degraded=degraded,
        source=MeasurementSource.INTERNAL if degraded else MeasurementSource.EXTERNAL,
        threshold=threshold,
    )


class TestGain:
    def test_gain_is_target_minus_measured(self) -> None:
        plan = plan_normalization(_measured(-20.0), -14.0)
        assert plan.gain_db == 6.0
        assert plan.measured_lufs == -20.0
        assert plan.target_lufs == -14.0

    def test_six_db_exactly_has_no_compression_warning(self) -> None:
        plan = plan_normalization(_measured(-20.0), -14.0)
        assert [s.category for s in plan.suggestions] == [SuggestionCategory.LOUDNESS]

    @pytest.mark.parametrize("measured", [-21.0, -7.0])
    def test_large_change_adds_compression_warning(self, measured: float) -> None:
        plan = plan_normalization(_measured(measured), -14.0)
        assert abs(plan.gain_db) == 7.0
        assert [s.category for s in plan.suggestions] == [
            SuggestionCategory.LOUDNESS,
            SuggestionCategory.COMPRESSION,
        ]

    def test_gain_suggestion_parameters(self) -> None:
        plan = plan_normalization(_measured(-18.0), -14.0)
        assert plan.suggestions[0].parameters == {"gain": 4.0, "targetLUFS": -14.0}
        assert plan.suggestions[0].suggestion.startswith("Apply +4.0dB")

    @pytest.mark.parametrize("target", [0.5, -70.5, math.nan, math.inf])
    def test_target_out_of_range(self, target: float) -> None:
        with pytest.raises(InputError, match="Target loudness"):
            plan_normalization(_measured(-20.0), target)

    @pytest.mark.parametrize("target", [0.0, -70.0])
    def test_target_bounds_inclusive(self, target: float) -> None:
        assert plan_normalization(_measured(-20.0), target).target_lufs == target

    def test_degraded_measurement_propagates(self) -> None:
        plan = plan_normalization(_measured(-20.0, degraded=True), -14.0)
        assert plan.degraded is True
        assert "approximate meter" in plan.suggestions[0].reasoning


class TestRecommendation:
    def test_close_to_target(self) -> None:
        assert "already close" in loudness_recommendation(0.5, -14.0)

    def test_quieter(self) -> None:
        assert "quieter" in loudness_recommendation(4.0, -14.0)

    def test_louder(self) -> None:
        assert "louder" in loudness_recommendation(-4.0, -14.0)


class TestLoudnormDescriptor:
    def test_second_pass_targets(self) -> None:
        descriptor = plan_normalization(_measured(-20.0, threshold=-30.5), -14.0).filter
        assert descriptor.name == "loudnorm"
        assert descriptor.get("I") == -14.0
        assert descriptor.get("TP") == -1.5
        assert descriptor.get("LRA") == 11.0
        assert descriptor.get("measured_I") == -20.0
        assert descriptor.get("measured_LRA") == 6.0
        assert descriptor.get("measured_thresh") == -30.5
        assert descriptor.get("linear") is True

    def test_threshold_estimated_without_external_report(self) -> None:
        descriptor = plan_normalization(_measured(-20.0), -14.0).filter
        assert descriptor.get("measured_thresh") == -30.0

    def test_silent_peak_clamped_for_renderer(self) -> None:
        descriptor = plan_normalization(_measured(-70.0, true_peak=-200.0), -14.0).filter
        assert descriptor.get("measured_TP") == -99.0

    def test_ffmpeg_string(self) -> None:
        text = plan_normalization(_measured(-20.0), -14.0).filter.to_ffmpeg()
        assert text.startswith("loudnorm=I=-14:TP=-1.5:LRA=11:")
        assert text.endswith(":linear=true")
