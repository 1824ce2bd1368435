"""
core/mix_master/types.py — Data types shared by the mix/master engine.

Measurement results (SpectralProfile, LoudnessMetrics, stem results) are
frozen dataclasses: immutable value objects that can be passed between
threads without copying. AudioSample is frozen too and its sample array is
marked read-only, so filters must always produce a new sample.

Design:
    - No I/O, no side effects, no state.
    - Band labels are a closed tuple; stem types are a closed Enum.
    - LoudnessMetrics always says which path produced it (``source``) and
      whether precision is reduced (``degraded``).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

import numpy as np

from core.mix_master.errors import InputError

# ---------------------------------------------------------------------------
# Spectral band partition
# ---------------------------------------------------------------------------

BAND_NAMES: tuple[str, ...] = ("low", "low_mid", "mid", "high_mid", "high")

# Proportional split of the analyzed bins. Must sum to 1.0.
BAND_SPLIT: tuple[float, ...] = (0.10, 0.20, 0.30, 0.20, 0.20)

_MAX_CHANNELS = 8


# ---------------------------------------------------------------------------
# Audio buffer
# ---------------------------------------------------------------------------


@dataclass(frozen=True, eq=False)
class AudioSample:
    """Decoded PCM audio, owned by the request that decoded it.

    Invariants:
        - ``samples`` has shape (channels, frames), dtype float64, and is
          read-only. Values are nominally in [-1.0, 1.0].
        - ``sample_rate`` > 0 and at least one frame is present.
    """

    samples: np.ndarray
    """Read-only float64 array of shape (channels, frames)."""

    sample_rate: int
    """Sample rate in Hz."""

    bit_depth: int = 16
    """Bit depth of the source PCM (16, 24 or 32)."""

    def __post_init__(self) -> None:
        """Normalise the array layout and validate the buffer."""
        if self.sample_rate <= 0:
            raise InputError(f"Sample rate must be positive, got {self.sample_rate}")
        data = np.asarray(self.samples, dtype=np.float64)
        if data.ndim == 1:
            data = data[np.newaxis, :]
        if data.ndim != 2:
            raise InputError(f"Expected a 1-D or 2-D sample array, got {data.ndim} dimensions")
        if not 1 <= data.shape[0] <= _MAX_CHANNELS:
            raise InputError(f"Expected 1–{_MAX_CHANNELS} channels, got {data.shape[0]}")
        if data.shape[1] == 0:
            raise InputError("Audio buffer is empty")
        if not np.all(np.isfinite(data)):
            raise InputError("Audio buffer contains NaN or infinite samples")
        data = data.copy()
        data.flags.writeable = False
        object.__setattr__(self, "samples", data)

    @property
    def channels(self) -> int:
        """Number of channels."""
        return int(self.samples.shape[0])

    @property
    def n_frames(self) -> int:
        """Number of samples per channel."""
        return int(self.samples.shape[1])

    @property
    def duration(self) -> float:
        """Duration in seconds."""
        return self.n_frames / self.sample_rate

    def mono(self) -> np.ndarray:
        """Return the channel mean as a new 1-D array."""
        return np.mean(self.samples, axis=0)

    def with_samples(self, samples: np.ndarray) -> AudioSample:
        """Return a new sample with the same rate and depth but new data."""
        return AudioSample(samples=samples, sample_rate=self.sample_rate, bit_depth=self.bit_depth)

    def scaled(self, gain: float) -> AudioSample:
        """Return a copy multiplied by a linear gain."""
        return self.with_samples(self.samples * gain)


# ---------------------------------------------------------------------------
# Spectral profile
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SpectralProfile:
    """Aggregate spectral descriptors over every frame of one buffer.

    The five band values are mean magnitudes over contiguous slices of the
    flattened magnitude vector (see core/mix_master/spectral.py).

    Invariants:
        - All band values are >= 0.
        - The band slices partition the vector with no gap or overlap.
    """

    low: float
    low_mid: float
    mid: float
    high_mid: float
    high: float

    centroid: float
    """Magnitude-weighted mean bin index (0 for silence)."""

    rolloff: float
    """Bin index at 85% of the analyzed bandwidth."""

    flux: float
    """Sum of absolute consecutive differences of the flat magnitude vector."""

    n_frames: int = 1
    bins_per_frame: int = 2048
    sample_rate: int = 48000
    frame_size: int = 4096

    def band_energies(self) -> dict[str, float]:
        """Return the five band means keyed by band name, low to high."""
        return {name: getattr(self, name) for name in BAND_NAMES}

    def band_shares(self) -> dict[str, float]:
        """Return each band mean as a fraction of the five-band total.

        Shares sum to 1.0; a silent profile returns all zeros.
        """
        energies = self.band_energies()
        total = sum(energies.values())
        if total <= 0.0:
            return {name: 0.0 for name in BAND_NAMES}
        return {name: value / total for name, value in energies.items()}

    @property
    def centroid_hz(self) -> float:
        """Spectral centroid converted to Hz."""
        return self.centroid * self.sample_rate / self.frame_size

    @property
    def rolloff_hz(self) -> float:
        """Rolloff position converted to Hz."""
        return self.rolloff * self.sample_rate / self.frame_size

    def as_dict(self) -> dict[str, float]:
        """Return a JSON-safe dict of bands and scalar descriptors."""
        return {
            **self.band_energies(),
            "centroid": self.centroid,
            "centroid_hz": self.centroid_hz,
            "rolloff": self.rolloff,
            "rolloff_hz": self.rolloff_hz,
            "flux": self.flux,
        }


# ---------------------------------------------------------------------------
# Loudness
# ---------------------------------------------------------------------------


class MeasurementSource(str, Enum):
    """Which loudness path produced a LoudnessMetrics value."""

    EXTERNAL = "external"
    INTERNAL = "internal"


@dataclass(frozen=True)
class LoudnessMetrics:
    """Loudness measurement of one buffer.

    Invariants:
        - ``integrated`` >= the configured loudness floor (-70 LUFS by default).
        - ``degraded`` is True exactly when the internal approximation ran.
        - ``true_peak`` is reported as measured, never corrected to <= 0.
    """

    integrated: float
    """Integrated loudness in LUFS."""

    short_term: float
    """Short-term loudness in LUFS."""

    momentary: float
    """Momentary loudness in LUFS."""

    true_peak: float
    """Peak level in dBTP (sample peak for the internal path)."""

    dynamic_range: float
    """Peak-to-RMS ratio in dB."""

    loudness_range: float
    """Loudness range in LU."""

    degraded: bool = False
    source: MeasurementSource = MeasurementSource.EXTERNAL

    threshold: float | None = None
    """Relative gating threshold reported by the external analyzer."""

    def as_dict(self) -> dict[str, object]:
        """Return a JSON-safe dict."""
        return {
            "integrated": self.integrated,
            "short_term": self.short_term,
            "momentary": self.momentary,
            "true_peak": self.true_peak,
            "dynamic_range": self.dynamic_range,
            "loudness_range": self.loudness_range,
            "degraded": self.degraded,
            "source": self.source.value,
            "threshold": self.threshold,
        }


# ---------------------------------------------------------------------------
# Stems
# ---------------------------------------------------------------------------


class StemType(str, Enum):
    """Frequency-band stems the engine can isolate."""

    VOCALS = "vocals"
    DRUMS = "drums"
    BASS = "bass"
    MELODY = "melody"
    HARMONY = "harmony"


@dataclass(frozen=True, eq=False)
class StemExtractionResult:
    """One band-filtered stem.

    ``confidence`` is a deterministic explainability heuristic in
    [base value for the stem type, 0.95]. It is not an estimate of
    separation quality: every instrument sharing the stem's frequency band
    is present in ``audio``.
    """

    stem_type: StemType
    audio: AudioSample
    confidence: float
    spectral_profile: SpectralProfile
    output_path: str | None = None


@dataclass(frozen=True, eq=False)
class StemSeparationResult:
    """All five stems of one buffer."""

    stems: dict[StemType, StemExtractionResult] = field(default_factory=dict)
    overall_confidence: float = 0.0
    processing_time_ms: float = 0.0

    def get(self, stem_type: StemType | str) -> StemExtractionResult:
        """Return the result for one stem type.

        Raises:
            InputError: If the stem type is unknown or was not extracted.
        """
        try:
            key = StemType(stem_type)
        except ValueError as exc:
            raise InputError(f"Unknown stem type {stem_type!r}") from exc
        if key not in self.stems:
            raise InputError(f"Stem {key.value!r} was not extracted")
        return self.stems[key]
