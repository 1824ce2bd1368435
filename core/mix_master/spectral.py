"""
core/mix_master/spectral.py — Framed FFT analysis and spectral profile.

Frames a buffer into fixed-size, 50%-overlapping windows, takes the
magnitude of the first half of each frame's real FFT, and reduces the
magnitudes to a SpectralProfile.

Design:
    - Pure: AudioSample (or mono array + sr) → SpectralProfile.
    - Framing is shared with core/mix_master/stems.py: ``frame_signal`` is the
      single framing convention for analysis and overlap-add filtering.
    - Every frame is zero-padded to ``frame_size``; a buffer shorter than one
      frame yields exactly one padded frame instead of an error.
    - The flat magnitude vector is bin-major: all frames of bin 0, then all
      frames of bin 1, and so on. Contiguous slices of it are therefore
      frequency bands, and the 10/20/30/20/20% split maps to bin ranges.
    - Deterministic: no randomness, identical input → bit-identical output.
"""

from __future__ import annotations

import numpy as np
from scipy import signal as scipy_signal

from core.config import DEFAULT_ENGINE_CONFIG, EngineConfig
from core.mix_master.types import BAND_NAMES, BAND_SPLIT, AudioSample, SpectralProfile

_ROLLOFF_FRACTION = 0.85

# ---------------------------------------------------------------------------
# Framing
# ---------------------------------------------------------------------------


def analysis_window(frame_size: int) -> np.ndarray:
    """Periodic Hann window; sums to 1.0 at 50% overlap."""
    return scipy_signal.get_window("hann", frame_size, fftbins=True)


def frame_count(n_samples: int, frame_size: int, hop_size: int) -> int:
    """Number of frames needed to cover ``n_samples`` samples.

    The last frame may run past the end of the buffer; it is zero-padded.
    """
    if n_samples <= frame_size:
        return 1
    return 1 + int(np.ceil((n_samples - frame_size) / hop_size))


def frame_signal(y: np.ndarray, frame_size: int, hop_size: int) -> np.ndarray:
    """Split a 1-D signal into overlapping, zero-padded frames.

    Args:
        y:          1-D signal.
        frame_size: Samples per frame.
        hop_size:   Samples between consecutive frame starts.

    Returns:
        Array of shape (n_frames, frame_size).
    """
    n_frames = frame_count(len(y), frame_size, hop_size)
    padded_len = (n_frames - 1) * hop_size + frame_size
    padded = np.zeros(padded_len, dtype=np.float64)
    padded[: len(y)] = y
    starts = np.arange(n_frames) * hop_size
    return np.stack([padded[s : s + frame_size] for s in starts])


def magnitude_frames(y: np.ndarray, frame_size: int, hop_size: int) -> np.ndarray:
    """Windowed FFT magnitudes of every frame, first half of bins only.

    Returns:
        Array of shape (n_frames, frame_size // 2).
    """
    frames = frame_signal(y, frame_size, hop_size) * analysis_window(frame_size)
    spectra = np.fft.rfft(frames, axis=1)
    return np.abs(spectra[:, : frame_size // 2])


def band_bin_edges(bins_per_frame: int) -> list[int]:
    """Bin indices bounding the five bands. First edge 0, last edge n."""
    cumulative = np.cumsum((0.0, *BAND_SPLIT))
    edges = [int(round(c * bins_per_frame)) for c in cumulative]
    edges[-1] = bins_per_frame
    return edges


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def profile_from_magnitudes(
    magnitudes: np.ndarray,
    *,
    sample_rate: int,
    frame_size: int,
) -> SpectralProfile:
    """Reduce a (frames, bins) magnitude matrix to a SpectralProfile.

    Band values are mean magnitudes over five contiguous slices of the
    bin-major flat vector. Centroid is the magnitude-weighted bin index;
    rolloff is the fixed 85%-of-bandwidth position; flux is the sum of
    absolute consecutive differences of the flat vector.
    """
    n_frames, n_bins = magnitudes.shape
    flat = magnitudes.T.reshape(-1)

    bands: dict[str, float] = {}
    edges = band_bin_edges(n_bins)
    for name, lo, hi in zip(BAND_NAMES, edges[:-1], edges[1:]):
        segment = flat[lo * n_frames : hi * n_frames]
        bands[name] = float(np.mean(segment)) if segment.size else 0.0

    bin_index = np.repeat(np.arange(n_bins, dtype=np.float64), n_frames)
    total = float(np.sum(flat))
    centroid = float(np.sum(flat * bin_index) / total) if total > 0.0 else 0.0
    flux = float(np.sum(np.abs(np.diff(flat)))) if flat.size > 1 else 0.0

    return SpectralProfile(
        **bands,
        centroid=centroid,
        rolloff=_ROLLOFF_FRACTION * n_bins,
        flux=flux,
        n_frames=n_frames,
        bins_per_frame=n_bins,
        sample_rate=sample_rate,
        frame_size=frame_size,
    )


def analyze_array(
    y: np.ndarray,
    sr: int,
    config: EngineConfig = DEFAULT_ENGINE_CONFIG,
) -> SpectralProfile:
    """Spectral profile of a raw array.

    Args:
        y:      Shape (N,) mono or (C, N) multichannel; channels are averaged.
        sr:     Sample rate in Hz.
        config: Framing parameters.

    Raises:
        ValueError: If sr <= 0 or the array is empty.
    """
    if sr <= 0:
        raise ValueError(f"Sample rate must be positive, got {sr}")
    mono = np.mean(y, axis=0) if y.ndim == 2 else np.asarray(y, dtype=np.float64)
    if mono.size == 0:
        raise ValueError("Audio array is empty")
    magnitudes = magnitude_frames(mono, config.frame_size, config.hop_size)
    return profile_from_magnitudes(magnitudes, sample_rate=sr, frame_size=config.frame_size)


def analyze_spectrum(
    sample: AudioSample,
    config: EngineConfig = DEFAULT_ENGINE_CONFIG,
) -> SpectralProfile:
    """Frame, transform and profile an AudioSample (mono mixdown)."""
    return analyze_array(sample.mono(), sample.sample_rate, config)
