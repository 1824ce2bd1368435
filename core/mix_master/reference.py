"""
core/mix_master/reference.py — Reference-track profile and matching rules.

A ReferenceProfile summarises a reference track: spectral profile, loudness,
stereo width, and a frequency balance. ``match_reference`` compares it with
a target track's current MixSettings and returns advice plus adjusted
settings.

Frequency balance:
    Each band's energy share: the band mean divided by the sum of the five
    band means, so the shares add up to 1.0. The treble and bass thresholds
    below (0.7, 0.75) are on this scale: a reference whose top band carries
    over 70% of the spectral energy is "bright". A spectrally flat reference
    reads about 0.2 in every band and triggers neither rule.

Rules (each independent, each one suggestion):

    integrated > -14 LUFS   raise target loudness to the reference   0.88  high    8.5
    treble > 0.7            high shelf +(treble − 0.7)·3 dB @ 8 kHz   0.85  medium  7.2
    stereo width > 1.0      set width to the reference width         0.82  medium  6.8
    bass > 0.75             low shelf +2.5 dB @ 80 Hz                 0.90  high    8.0

Overall confidence is the mean confidence of the triggered rules, or 0.8
when none triggered.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from core.mix_master.settings import MixSettings
from core.mix_master.suggestions import AISuggestion, Priority, SuggestionCategory
from core.mix_master.types import LoudnessMetrics, SpectralProfile

# ---------------------------------------------------------------------------
# Rule constants
# ---------------------------------------------------------------------------

LOUD_REFERENCE_LUFS = -14.0
TREBLE_THRESHOLD = 0.7
TREBLE_BOOST_PER_UNIT_DB = 3.0
TREBLE_SHELF_HZ = 8000.0
WIDTH_THRESHOLD = 1.0
BASS_THRESHOLD = 0.75
BASS_BOOST_DB = 2.5
BASS_SHELF_HZ = 80.0
DEFAULT_MATCH_CONFIDENCE = 0.8


# ---------------------------------------------------------------------------
# Types
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FrequencyBalance:
    """Energy share of each band; the five shares sum to 1.0."""

    bass: float
    low_mid: float
    mid: float
    high_mid: float
    treble: float

    @classmethod
    def from_profile(cls, profile: SpectralProfile) -> FrequencyBalance:
        """Band shares of a SpectralProfile; silence gives all zeros."""
        shares = profile.band_shares()
        return cls(
            bass=shares["low"],
            low_mid=shares["low_mid"],
            mid=shares["mid"],
            high_mid=shares["high_mid"],
            treble=shares["high"],
        )

    def as_dict(self) -> dict[str, float]:
        return {
            "bass": self.bass,
            "low_mid": self.low_mid,
            "mid": self.mid,
            "high_mid": self.high_mid,
            "treble": self.treble,
        }


@dataclass(frozen=True)
class ReferenceProfile:
    """Measured characteristics of a reference track."""

    spectral_profile: SpectralProfile
    loudness: LoudnessMetrics
    stereo_width: float
    frequency_balance: FrequencyBalance

    @property
    def dynamic_range(self) -> float:
        return self.loudness.dynamic_range

    def as_dict(self) -> dict[str, Any]:
        return {
            "spectral_profile": self.spectral_profile.as_dict(),
            "loudness": self.loudness.as_dict(),
            "dynamic_range": self.dynamic_range,
            "stereo_width": self.stereo_width,
            "frequency_balance": self.frequency_balance.as_dict(),
        }


@dataclass(frozen=True)
class ReferenceMatch:
    """Outcome of matching a target against a reference."""

    suggestions: tuple[AISuggestion, ...]
    adjustments: dict[str, Any] = field(default_factory=dict)
    confidence: float = DEFAULT_MATCH_CONFIDENCE
    settings: MixSettings = field(default_factory=MixSettings)


def build_reference_profile(
    spectral_profile: SpectralProfile,
    loudness: LoudnessMetrics,
    stereo_width: float,
) -> ReferenceProfile:
    """Assemble a ReferenceProfile from its measurements."""
    return ReferenceProfile(
        spectral_profile=spectral_profile,
        loudness=loudness,
        stereo_width=stereo_width,
        frequency_balance=FrequencyBalance.from_profile(spectral_profile),
    )


# ---------------------------------------------------------------------------
# Matching
# ---------------------------------------------------------------------------


def match_reference(current: MixSettings, reference: ReferenceProfile) -> ReferenceMatch:
    """Compare a target's MixSettings against a reference profile.

    Adjustments are merged into a copy of ``current``; the input is not
    modified.
    """
    settings = current.copy()
    suggestions: list[AISuggestion] = []
    adjustments: dict[str, Any] = {}

    ref_lufs = reference.loudness.integrated
    if ref_lufs > LOUD_REFERENCE_LUFS:
        adjustments["target_lufs"] = ref_lufs
        suggestions.append(
            AISuggestion(
                category=SuggestionCategory.LOUDNESS,
                suggestion=f"Raise loudness to {ref_lufs:.1f} LUFS to match the reference",
                reasoning=(
                    f"The reference is mastered at {ref_lufs:.1f} LUFS, louder than the "
                    f"{LOUD_REFERENCE_LUFS:.0f} LUFS streaming norm."
                ),
                confidence=0.88,
                priority=Priority.HIGH,
                estimated_impact=8.5,
                parameters={"targetLUFS": ref_lufs},
            )
        )

    treble = reference.frequency_balance.treble
    if treble > TREBLE_THRESHOLD:
        boost = (treble - TREBLE_THRESHOLD) * TREBLE_BOOST_PER_UNIT_DB
        settings.eq.high_gain += boost
        adjustments["high_shelf"] = {"frequency": TREBLE_SHELF_HZ, "gain": boost}
        suggestions.append(
            AISuggestion(
                category=SuggestionCategory.EQ,
                suggestion=f"Add {boost:.1f}dB high shelf at 8kHz for brightness",
                reasoning="Most of the reference's spectral energy sits in the top band.",
                confidence=0.85,
                priority=Priority.MEDIUM,
                estimated_impact=7.2,
                parameters={"frequency": TREBLE_SHELF_HZ, "gain": boost, "type": "highshelf"},
            )
        )

    ref_width = reference.stereo_width
    if ref_width > WIDTH_THRESHOLD:
        delta = ref_width - settings.stereo_imaging.width
        settings.stereo_imaging.width += delta
        adjustments["stereo_width"] = ref_width
        suggestions.append(
            AISuggestion(
                category=SuggestionCategory.STEREO,
                suggestion=f"Set stereo width to {ref_width:.2f} to match the reference",
                reasoning="The reference carries more side energy than the target's image.",
                confidence=0.82,
                priority=Priority.MEDIUM,
                estimated_impact=6.8,
                parameters={"width": ref_width},
            )
        )

    bass = reference.frequency_balance.bass
    if bass > BASS_THRESHOLD:
        settings.eq.low_gain += BASS_BOOST_DB
        adjustments["bass_boost"] = {"frequency": BASS_SHELF_HZ, "gain": BASS_BOOST_DB}
        suggestions.append(
            AISuggestion(
                category=SuggestionCategory.EQ,
                suggestion=f"Boost bass by {BASS_BOOST_DB}dB at 80Hz",
                reasoning="The reference low end dominates its spectrum.",
                confidence=0.90,
                priority=Priority.HIGH,
                estimated_impact=8.0,
                parameters={"frequency": BASS_SHELF_HZ, "gain": BASS_BOOST_DB, "type": "lowshelf"},
            )
        )

    if suggestions:
        confidence = sum(s.confidence for s in suggestions) / len(suggestions)
    else:
        confidence = DEFAULT_MATCH_CONFIDENCE

    return ReferenceMatch(
        suggestions=tuple(suggestions),
        adjustments=adjustments,
        confidence=confidence,
        settings=settings,
    )
