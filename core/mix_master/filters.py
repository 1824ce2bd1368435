"""
core/mix_master/filters.py — Renderer filter-chain descriptors.

A FilterDescriptor names one ffmpeg audio filter and its options. The engine
only builds descriptors; ingestion/renderer.py turns them into an ``-af``
argument and runs the external renderer.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field

from core.mix_master.settings import MixSettings

# EQ centre frequencies (Hz) for the five MixSettings gain bands.
EQ_BAND_FREQUENCIES: tuple[tuple[str, int], ...] = (
    ("low_gain", 80),
    ("low_mid_gain", 250),
    ("mid_gain", 1000),
    ("high_mid_gain", 4000),
    ("high_gain", 10000),
)

# Option ranges accepted by ffmpeg's acompressor and stereotools.
_RATIO_RANGE = (1.0, 20.0)
_THRESHOLD_DB_RANGE = (-60.0, 0.0)
_ATTACK_MS_RANGE = (0.01, 2000.0)
_RELEASE_MS_RANGE = (0.01, 9000.0)
_MAKEUP_DB_RANGE = (0.0, 36.0)
_WIDTH_RANGE = (0.015625, 2.0)

# Ranges accepted by loudnorm for first-pass measurements.
_MEASURED_LEVEL_RANGE = (-99.0, 0.0)
_MEASURED_TP_RANGE = (-99.0, 99.0)
_MEASURED_LRA_RANGE = (0.0, 99.0)


def _clamp(value: float, bounds: tuple[float, float]) -> float:
    return float(min(bounds[1], max(bounds[0], value)))


def _format_value(value: object) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        return f"{value:.6g}"
    return str(value)


@dataclass(frozen=True)
class FilterDescriptor:
    """One renderer filter with ordered options."""

    name: str
    params: tuple[tuple[str, object], ...] = field(default_factory=tuple)

    def get(self, key: str) -> object:
        """Return one option value.

        Raises:
            KeyError: If the option is not set.
        """
        for k, v in self.params:
            if k == key:
                return v
        raise KeyError(key)

    def to_ffmpeg(self) -> str:
        """``name=k=v:k=v`` (just ``name`` without options)."""
        if not self.params:
            return self.name
        options = ":".join(f"{k}={_format_value(v)}" for k, v in self.params)
        return f"{self.name}={options}"

    def as_dict(self) -> dict[str, object]:
        return {"name": self.name, "params": dict(self.params)}


def filter_chain_string(filters: Sequence[FilterDescriptor]) -> str:
    """Comma-joined chain; ``anull`` for an empty chain."""
    if not filters:
        return "anull"
    return ",".join(f.to_ffmpeg() for f in filters)


def mix_filter_chain(mix: MixSettings) -> list[FilterDescriptor]:
    """Translate applied MixSettings into a renderer chain.

    EQ bands with zero gain, cutoffs at the audible limits, and unity width
    are omitted. Effects (reverb, delay, chorus, saturation) are advisory
    and are not rendered.
    """
    chain: list[FilterDescriptor] = []

    for attr, freq in EQ_BAND_FREQUENCIES:
        gain = getattr(mix.eq, attr)
        if gain != 0.0:
            chain.append(
                FilterDescriptor(
                    "equalizer",
                    (("f", freq), ("width_type", "o"), ("width", 1), ("g", float(gain))),
                )
            )

    if mix.eq.low_cut > 20.0:
        chain.append(FilterDescriptor("highpass", (("f", float(mix.eq.low_cut)),)))
    if mix.eq.high_cut < 20000.0:
        chain.append(FilterDescriptor("lowpass", (("f", float(mix.eq.high_cut)),)))

    comp = mix.compression
    if comp.ratio > 1.0:
        chain.append(
            FilterDescriptor(
                "acompressor",
                (
                    ("threshold", f"{_clamp(comp.threshold, _THRESHOLD_DB_RANGE):.6g}dB"),
                    ("ratio", _clamp(comp.ratio, _RATIO_RANGE)),
                    ("attack", _clamp(comp.attack, _ATTACK_MS_RANGE)),
                    ("release", _clamp(comp.release, _RELEASE_MS_RANGE)),
                    ("makeup", f"{_clamp(comp.makeup_gain, _MAKEUP_DB_RANGE):.6g}dB"),
                ),
            )
        )

    width = mix.stereo_imaging.width
    if width != 1.0:
        chain.append(
            FilterDescriptor(
                "stereotools",
                (("mlev", _clamp(width, _WIDTH_RANGE)), ("mwid", 1.0)),
            )
        )

    return chain


def loudnorm_filter(
    *,
    target_lufs: float,
    true_peak: float,
    loudness_range: float,
    measured_integrated: float,
    measured_lra: float,
    measured_true_peak: float,
    measured_threshold: float,
) -> FilterDescriptor:
    """Second-pass ``loudnorm`` descriptor using first-pass measurements.

    Measurements are clamped to the ranges loudnorm accepts (silence can
    report a -200 dB peak).
    """
    return FilterDescriptor(
        "loudnorm",
        (
            ("I", float(target_lufs)),
            ("TP", float(true_peak)),
            ("LRA", float(loudness_range)),
            ("measured_I", _clamp(measured_integrated, _MEASURED_LEVEL_RANGE)),
            ("measured_LRA", _clamp(measured_lra, _MEASURED_LRA_RANGE)),
            ("measured_TP", _clamp(measured_true_peak, _MEASURED_TP_RANGE)),
            ("measured_thresh", _clamp(measured_threshold, _MEASURED_LEVEL_RANGE)),
            ("linear", True),
        ),
    )
