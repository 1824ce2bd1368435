"""
core/mix_master/stems.py — Frequency-band stem isolation.

Each stem is produced by multiplying every FFT bin of every frame by a
piecewise attenuation curve for the stem type, inverse-transforming, and
overlap-adding the frames back into a waveform.

This is deterministic band filtering, NOT source separation: any instrument
that shares the stem's frequency range leaks into the stem. A bass guitar and
a kick drum both land in the "bass" stem; a synth lead lands in "vocals".

Theory:
    Frames are Hann-windowed at 50% overlap, and a periodic Hann window sums
    to exactly 1.0 at that hop. With a pass-through curve the reconstruction
    is therefore the input itself. The signal is padded by one hop on each
    side so the first and last samples also receive two overlapping windows.

Confidence:
    ``stem_confidence`` is a fixed per-type base value plus small bonuses for
    input length and output energy, capped at 0.95. It is an explainability
    signal for the UI, not a measured separation quality.
"""

from __future__ import annotations

import numpy as np

from core.config import DEFAULT_ENGINE_CONFIG, EngineConfig
from core.mix_master.errors import InputError
from core.mix_master.spectral import analysis_window, analyze_spectrum, frame_signal
from core.mix_master.types import AudioSample, StemExtractionResult, StemType

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

STEM_BASE_CONFIDENCE: dict[StemType, float] = {
    StemType.VOCALS: 0.82,
    StemType.DRUMS: 0.88,
    StemType.BASS: 0.85,
    StemType.MELODY: 0.79,
    StemType.HARMONY: 0.76,
}

MAX_STEM_CONFIDENCE = 0.95
_SIZE_BONUS_CAP = 0.1
_SIZE_BONUS_SCALE = 1e7  # samples for a full size bonus
_ENERGY_BONUS_CAP = 0.05
_ENERGY_BONUS_SCALE = 10.0


# ---------------------------------------------------------------------------
# Attenuation curves
# ---------------------------------------------------------------------------


def _steps(freqs: np.ndarray, edges: tuple[float, ...], gains: tuple[float, ...]) -> np.ndarray:
    """Piecewise-constant gain: gains[i] applies below edges[i], gains[-1] above all."""
    idx = np.searchsorted(np.asarray(edges), freqs, side="right")
    return np.asarray(gains)[idx]


def attenuation_curve(freqs_hz: np.ndarray, stem_type: StemType) -> np.ndarray:
    """Per-bin gain for a stem type.

    Args:
        freqs_hz:  Bin centre frequencies in Hz.
        stem_type: Stem to isolate.

    Returns:
        Gain per bin in [0, 1].
    """
    f = np.asarray(freqs_hz, dtype=np.float64)
    match stem_type:
        case StemType.BASS:
            # Full pass below 150 Hz, linear fade to 0.2 at 300 Hz.
            fade = 1.0 - 0.8 * (f - 150.0) / 150.0
            return np.where(f < 150.0, 1.0, np.where(f < 300.0, fade, 0.2))
        case StemType.DRUMS:
            return _steps(f, (100.0, 5000.0, 10000.0), (0.8, 1.0, 0.8, 0.4))
        case StemType.VOCALS:
            return _steps(f, (200.0, 4000.0, 8000.0), (0.3, 1.0, 0.8, 0.4))
        case StemType.MELODY:
            return _steps(f, (300.0, 5000.0, 10000.0), (0.4, 0.9, 0.7, 0.3))
        case StemType.HARMONY:
            return _steps(f, (500.0, 8000.0), (0.5, 0.8, 0.4))
    raise ValueError(f"Unhandled stem type: {stem_type!r}")


def stem_confidence(filtered: np.ndarray, stem_type: StemType, original_size: int) -> float:
    """Heuristic confidence for a band-filtered stem.

    base(stem_type) + min(0.1, size / 1e7) + min(0.05, rms * 10), capped at 0.95.
    """
    rms = float(np.sqrt(np.mean(np.square(filtered)))) if filtered.size else 0.0
    size_bonus = min(_SIZE_BONUS_CAP, original_size / _SIZE_BONUS_SCALE)
    energy_bonus = min(_ENERGY_BONUS_CAP, rms * _ENERGY_BONUS_SCALE)
    return min(MAX_STEM_CONFIDENCE, STEM_BASE_CONFIDENCE[stem_type] + size_bonus + energy_bonus)


# ---------------------------------------------------------------------------
# Filtering
# ---------------------------------------------------------------------------


def filter_channel(
    y: np.ndarray,
    sr: int,
    stem_type: StemType,
    config: EngineConfig = DEFAULT_ENGINE_CONFIG,
) -> np.ndarray:
    """Band-filter one channel with frame-wise FFT and overlap-add.

    Returns:
        New 1-D array with the same length as ``y``.
    """
    n_fft, hop = config.frame_size, config.hop_size
    padded = np.concatenate([np.zeros(hop), y, np.zeros(hop)])
    frames = frame_signal(padded, n_fft, hop) * analysis_window(n_fft)

    freqs = np.fft.rfftfreq(n_fft, d=1.0 / sr)
    gains = attenuation_curve(freqs, stem_type)
    filtered_frames = np.fft.irfft(np.fft.rfft(frames, axis=1) * gains, n=n_fft, axis=1)

    out = np.zeros((len(frames) - 1) * hop + n_fft)
    for i, frame in enumerate(filtered_frames):
        out[i * hop : i * hop + n_fft] += frame
    return out[hop : hop + len(y)]


def extract_stem(
    sample: AudioSample,
    stem_type: StemType | str,
    config: EngineConfig = DEFAULT_ENGINE_CONFIG,
) -> StemExtractionResult:
    """Isolate one frequency-band stem from a sample.

    Every channel is filtered independently. The input sample is untouched;
    the result carries a new AudioSample.

    Raises:
        InputError: If ``stem_type`` is not a known stem.
    """
    try:
        stem = StemType(stem_type)
    except ValueError as exc:
        raise InputError(f"Unknown stem type {stem_type!r}") from exc
    filtered = np.stack(
        [filter_channel(ch, sample.sample_rate, stem, config) for ch in sample.samples]
    )
    audio = sample.with_samples(filtered)
    return StemExtractionResult(
        stem_type=stem,
        audio=audio,
        confidence=stem_confidence(filtered, stem, sample.samples.size),
        spectral_profile=analyze_spectrum(audio, config),
    )
