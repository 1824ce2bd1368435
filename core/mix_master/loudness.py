"""
core/mix_master/loudness.py — Loudness metering with an external primary path.

Two paths produce the same LoudnessMetrics type:

    external   A two-pass psychoacoustic analyzer (ffmpeg ``loudnorm``) reports
               integrated loudness, true peak, loudness range and gate
               threshold. Short-term and momentary are approximated as
               ``integrated + LRA/3`` and ``integrated + LRA/2``; they are NOT
               true 3 s / 400 ms sliding measurements.

    internal   Block-gated mean-square approximation used when the analyzer is
               absent, times out or returns unparseable output. No K-weighting
               filter: the BS.1770 weighting is approximated by the constant
               -0.691 offset. Results are tagged ``degraded=True``.

Internal algorithm:
    1. Split into 400 ms blocks at 50% overlap (the whole buffer is one block
       when it is shorter than 400 ms).
    2. Per block, sum the per-channel mean squares (equal channel weights).
    3. loudness = -0.691 + 10·log10(mean square).
    4. Drop blocks below the absolute gate (-70 LUFS); integrated loudness is
       the arithmetic mean of the surviving block loudness values, clamped to
       the floor.
    5. Short-term / momentary: the first 3 s / 400 ms of the buffer.
    6. True peak: 20·log10(max|x|) (sample peak, no oversampling).
    7. Dynamic range: 20·log10(peak / RMS).
    8. LRA: 10th→95th percentile spread of gated 3 s block loudness, 1.5 s hop.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

import numpy as np

from core.config import DEFAULT_ENGINE_CONFIG, EngineConfig
from core.mix_master.collaborators import ExternalLoudness, LoudnessAnalyzer
from core.mix_master.errors import CollaboratorUnavailableError
from core.mix_master.types import AudioSample, LoudnessMetrics, MeasurementSource

logger = logging.getLogger(__name__)

_EPS = 1e-10
_LUFS_OFFSET = -0.691
_SHORT_TERM_SECONDS = 3.0
_MOMENTARY_SECONDS = 0.4
_LRA_LOW_PERCENTILE = 10.0
_LRA_HIGH_PERCENTILE = 95.0


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _mean_square_to_lufs(mean_square: float) -> float:
    return float(_LUFS_OFFSET + 10.0 * np.log10(mean_square + _EPS))


def _block_mean_squares(samples: np.ndarray, block: int, hop: int) -> np.ndarray:
    """Channel-summed mean square of every full block.

    A buffer shorter than one block is measured as a single block.
    """
    n = samples.shape[1]
    if n <= block:
        return np.array([float(np.sum(np.mean(samples**2, axis=1)))])
    starts = range(0, n - block + 1, hop)
    return np.array(
        [float(np.sum(np.mean(samples[:, s : s + block] ** 2, axis=1))) for s in starts]
    )


def _window_loudness(samples: np.ndarray, length: int, floor: float) -> float:
    """Loudness of the first ``length`` samples, clamped to the floor."""
    head = samples[:, : max(1, length)]
    return max(floor, _mean_square_to_lufs(float(np.sum(np.mean(head**2, axis=1)))))


def sample_peak_db(samples: np.ndarray) -> float:
    """Peak level in dB: 20·log10(max|x|)."""
    return float(20.0 * np.log10(float(np.max(np.abs(samples))) + _EPS))


def peak_to_rms_db(samples: np.ndarray) -> float:
    """Peak-to-RMS ratio in dB; 0.0 for silence."""
    peak = float(np.max(np.abs(samples)))
    rms = float(np.sqrt(np.mean(samples**2)))
    if rms < _EPS:
        return 0.0
    return float(20.0 * np.log10(peak / rms + _EPS))


def integrated_loudness(sample: AudioSample, config: EngineConfig = DEFAULT_ENGINE_CONFIG) -> float:
    """Gated integrated loudness (internal approximation), clamped to the floor."""
    floor = config.loudness_floor_lufs
    block = max(1, int(round(config.block_seconds * sample.sample_rate)))
    ms = _block_mean_squares(sample.samples, block, max(1, block // 2))
    blocks = np.array([_mean_square_to_lufs(m) for m in ms])
    gated = blocks[blocks >= floor]
    if gated.size == 0:
        return floor
    return max(floor, float(np.mean(gated)))


def loudness_range(sample: AudioSample, config: EngineConfig = DEFAULT_ENGINE_CONFIG) -> float:
    """Spread between the 10th and 95th percentile of gated 3 s block loudness.

    Returns 0.0 when the buffer holds fewer than two gated blocks.
    """
    block = int(round(config.lra_block_seconds * sample.sample_rate))
    if block <= 0 or sample.n_frames < block:
        return 0.0
    ms = _block_mean_squares(sample.samples, block, max(1, block // 2))
    values = np.array([_mean_square_to_lufs(m) for m in ms])
    values = values[values >= config.loudness_floor_lufs]
    if values.size < 2:
        return 0.0
    low, high = np.percentile(values, [_LRA_LOW_PERCENTILE, _LRA_HIGH_PERCENTILE])
    return float(high - low)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def measure_internal(
    sample: AudioSample,
    config: EngineConfig = DEFAULT_ENGINE_CONFIG,
) -> LoudnessMetrics:
    """Fallback meter. Always returns ``degraded=True``."""
    floor = config.loudness_floor_lufs
    sr = sample.sample_rate
    return LoudnessMetrics(
        integrated=integrated_loudness(sample, config),
        short_term=_window_loudness(sample.samples, int(_SHORT_TERM_SECONDS * sr), floor),
        momentary=_window_loudness(sample.samples, int(_MOMENTARY_SECONDS * sr), floor),
        true_peak=sample_peak_db(sample.samples),
        dynamic_range=peak_to_rms_db(sample.samples),
        loudness_range=loudness_range(sample, config),
        degraded=True,
        source=MeasurementSource.INTERNAL,
    )


def metrics_from_external(
    measured: ExternalLoudness,
    sample: AudioSample,
    config: EngineConfig = DEFAULT_ENGINE_CONFIG,
) -> LoudnessMetrics:
    """Convert an external analyzer result to LoudnessMetrics.

    Short-term and momentary are offsets of integrated loudness by 1/3 and
    1/2 of the measured loudness range.
    """
    integrated = max(config.loudness_floor_lufs, measured.integrated)
    return LoudnessMetrics(
        integrated=integrated,
        short_term=integrated + measured.loudness_range / 3.0,
        momentary=integrated + measured.loudness_range / 2.0,
        true_peak=measured.true_peak,
        dynamic_range=peak_to_rms_db(sample.samples),
        loudness_range=measured.loudness_range,
        degraded=False,
        source=MeasurementSource.EXTERNAL,
        threshold=measured.threshold,
    )


@dataclass(frozen=True)
class MeasurementUnavailable:
    """Typed "degraded" outcome of an external measurement attempt."""

    reason: str
    collaborator: str = "loudness_analyzer"


@dataclass
class LoudnessMeter:
    """Loudness meter preferring an external analyzer, with internal fallback.

    Args:
        analyzer:    External two-pass analyzer, or None to always use the
                     internal approximation.
        config:      Gating and floor parameters.
        on_fallback: Called with the failure reason whenever the fallback runs.
    """

    analyzer: LoudnessAnalyzer | None = None
    config: EngineConfig = DEFAULT_ENGINE_CONFIG
    on_fallback: Callable[[str], None] | None = None

    def measure_via_external(self, sample: AudioSample) -> LoudnessMetrics | MeasurementUnavailable:
        """Run the external analyzer only. Never raises for collaborator failures."""
        if self.analyzer is None:
            return MeasurementUnavailable(reason="no external analyzer configured")
        try:
            measured = self.analyzer.measure(sample)
        except CollaboratorUnavailableError as exc:
            return MeasurementUnavailable(reason=exc.reason, collaborator=exc.collaborator)
        return metrics_from_external(measured, sample, self.config)

    def measure(self, sample: AudioSample) -> LoudnessMetrics:
        """Measure loudness, falling back to the internal meter when needed."""
        result = self.measure_via_external(sample)
        if isinstance(result, LoudnessMetrics):
            return result
        logger.warning(
            "External loudness measurement unavailable (%s: %s); using internal meter",
            result.collaborator,
            result.reason,
        )
        if self.on_fallback is not None:
            self.on_fallback(result.reason)
        return measure_internal(sample, self.config)
