"""
core/mix_master/normalization.py — Loudness normalization planning.

Given a loudness measurement and a target, compute the required gain and
the second-pass ``loudnorm`` descriptor for the external renderer. The
measured values are fed back into the descriptor so the renderer can apply
a linear gain without measuring a third time.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from core.mix_master.errors import InputError
from core.mix_master.filters import FilterDescriptor, loudnorm_filter
from core.mix_master.suggestions import AISuggestion, Priority, SuggestionCategory
from core.mix_master.types import LoudnessMetrics

NORMALIZATION_TRUE_PEAK = -1.5
NORMALIZATION_LRA = 11.0
COMPRESSION_WARNING_DB = 6.0
CLOSE_ENOUGH_DB = 1.0
_RELATIVE_GATE_LU = 10.0
_TARGET_RANGE = (-70.0, 0.0)


@dataclass(frozen=True)
class NormalizationPlan:
    """Gain, advice and renderer filter for one normalization."""

    target_lufs: float
    measured_lufs: float
    gain_db: float
    suggestions: tuple[AISuggestion, ...]
    filter: FilterDescriptor
    recommendation: str
    degraded: bool = False


def loudness_recommendation(gain_db: float, target_lufs: float) -> str:
    """Plain-language advice for a gain change."""
    if abs(gain_db) < CLOSE_ENOUGH_DB:
        return (
            f"Your track is already close to the target loudness of {target_lufs:.1f} LUFS. "
            f"Minor adjustment of {gain_db:.1f} dB needed."
        )
    if gain_db > 0:
        return (
            f"Your track is {abs(gain_db):.1f} dB quieter than the target. "
            "Consider increasing overall volume or applying subtle limiting."
        )
    return (
        f"Your track is {abs(gain_db):.1f} dB louder than the target. "
        "Consider reducing overall volume to preserve dynamics."
    )


def plan_normalization(measured: LoudnessMetrics, target_lufs: float) -> NormalizationPlan:
    """Plan a normalization from ``measured`` to ``target_lufs``.

    gain = target_lufs − measured.integrated. A compression suggestion is
    added exactly when |gain| > 6 dB.

    Raises:
        InputError: If the target is not finite or outside [-70, 0] LUFS.
    """
    if not math.isfinite(target_lufs) or not _TARGET_RANGE[0] <= target_lufs <= _TARGET_RANGE[1]:
        raise InputError(
            f"Target loudness must be within {_TARGET_RANGE[0]}..{_TARGET_RANGE[1]} LUFS, "
            f"got {target_lufs}"
        )

    gain = target_lufs - measured.integrated
    suggestions = [
        AISuggestion(
            category=SuggestionCategory.LOUDNESS,
            suggestion=f"Apply {gain:+.1f}dB gain to reach {target_lufs:.1f} LUFS",
            reasoning=(
                f"Measured {measured.integrated:.1f} LUFS"
                f"{' (approximate meter)' if measured.degraded else ''}; "
                f"target is {target_lufs:.1f} LUFS."
            ),
            confidence=0.95,
            priority=Priority.CRITICAL,
            estimated_impact=9.5,
            parameters={"gain": gain, "targetLUFS": target_lufs},
        )
    ]
    if abs(gain) > COMPRESSION_WARNING_DB:
        suggestions.append(
            AISuggestion(
                category=SuggestionCategory.COMPRESSION,
                suggestion="Apply compression before the gain change to avoid clipping",
                reasoning=(
                    f"A {abs(gain):.1f}dB change is large; controlling peaks first keeps "
                    "the limiter from working too hard."
                ),
                confidence=0.88,
                priority=Priority.HIGH,
                estimated_impact=8.0,
                parameters={"ratio": 3, "threshold": -18},
            )
        )

    threshold = (
        measured.threshold
        if measured.threshold is not None
        else measured.integrated - _RELATIVE_GATE_LU
    )
    descriptor = loudnorm_filter(
        target_lufs=target_lufs,
        true_peak=NORMALIZATION_TRUE_PEAK,
        loudness_range=NORMALIZATION_LRA,
        measured_integrated=measured.integrated,
        measured_lra=measured.loudness_range,
        measured_true_peak=measured.true_peak,
        measured_threshold=threshold,
    )
    return NormalizationPlan(
        target_lufs=target_lufs,
        measured_lufs=measured.integrated,
        gain_db=gain,
        suggestions=tuple(suggestions),
        filter=descriptor,
        recommendation=loudness_recommendation(gain, target_lufs),
        degraded=measured.degraded,
    )
