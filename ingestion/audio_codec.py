"""
ingestion/audio_codec.py — Decode and encode audio at the I/O boundary.

The engine works on AudioSample buffers only. This module turns bytes or
files into AudioSample and back into PCM WAV bytes; everything in
core/mix_master takes pre-decoded samples, never paths.

Usage:
    from ingestion.audio_codec import LibrosaAudioCodec, load_audio_file
    sample = load_audio_file("/path/to/track.wav")
    wav_bytes = LibrosaAudioCodec().encode(sample)
"""

from __future__ import annotations

import io
import logging
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING

import librosa
import numpy as np
import soundfile as sf

from core.mix_master.errors import InputError
from core.mix_master.types import AudioSample

if TYPE_CHECKING:
    from core.mix_master.collaborators import FilterGraphRenderer

logger = logging.getLogger(__name__)

# Extensions accepted by load_audio_file (decodable by librosa / soundfile)
AUDIO_EXTENSIONS: frozenset[str] = frozenset(
    {".mp3", ".wav", ".flac", ".aiff", ".aif", ".ogg", ".m4a", ".opus"}
)

# MIME types soundfile decodes natively; anything else needs a WAV transcode.
NATIVE_MIME_TYPES: dict[str, str] = {
    "audio/wav": ".wav",
    "audio/wave": ".wav",
    "audio/x-wav": ".wav",
    "audio/vnd.wave": ".wav",
    "audio/flac": ".flac",
    "audio/x-flac": ".flac",
    "audio/ogg": ".ogg",
    "audio/aiff": ".aiff",
    "audio/x-aiff": ".aiff",
}

_MIME_EXTENSIONS: dict[str, str] = {
    "audio/mpeg": ".mp3",
    "audio/mp3": ".mp3",
    "audio/mp4": ".m4a",
    "audio/x-m4a": ".m4a",
    "audio/aac": ".m4a",
    "audio/opus": ".opus",
    "audio/webm": ".webm",
}

_SUBTYPE_BIT_DEPTH: dict[str, int] = {
    "PCM_U8": 8,
    "PCM_S8": 8,
    "PCM_16": 16,
    "PCM_24": 24,
    "PCM_32": 32,
    "FLOAT": 32,
    "DOUBLE": 32,
}

_BIT_DEPTH_SUBTYPE: dict[int, str] = {16: "PCM_16", 24: "PCM_24", 32: "PCM_32"}


def _bit_depth(subtype: str) -> int:
    return _SUBTYPE_BIT_DEPTH.get(subtype, 16)


def _to_sample(y: np.ndarray, sr: int, bit_depth: int) -> AudioSample:
    # librosa returns (N,) for mono and (C, N) for multichannel
    return AudioSample(samples=np.asarray(y, dtype=np.float64), sample_rate=int(sr), bit_depth=bit_depth)


class LibrosaAudioCodec:
    """AudioCodec backed by librosa (decode) and soundfile (encode).

    Args:
        renderer: Optional renderer used to transcode non-native containers
                  (mp3, m4a, ...) to WAV before decoding. Without one those
                  MIME types are rejected.
    """

    def __init__(self, renderer: FilterGraphRenderer | None = None) -> None:
        """Initialize with an optional transcoding renderer."""
        self._renderer = renderer

    def decode(self, data: bytes, mime_type: str) -> AudioSample:
        """Decode an encoded buffer into an AudioSample at its native rate.

        Raises:
            InputError: Empty data, unsupported MIME type, or undecodable bytes.
        """
        if not data:
            raise InputError("Audio data is empty")
        mime = mime_type.split(";", 1)[0].strip().lower()
        if mime in NATIVE_MIME_TYPES:
            return self._decode_native(data)
        if mime not in _MIME_EXTENSIONS:
            raise InputError(f"Unsupported audio MIME type {mime_type!r}")
        if self._renderer is None:
            raise InputError(f"MIME type {mime_type!r} needs a renderer to transcode to WAV")
        return self._decode_transcoded(data, _MIME_EXTENSIONS[mime])

    def encode(self, sample: AudioSample) -> bytes:
        """Encode as PCM WAV at the sample's bit depth (16 if unsupported)."""
        subtype = _BIT_DEPTH_SUBTYPE.get(sample.bit_depth, "PCM_16")
        buf = io.BytesIO()
        sf.write(
            buf,
            np.clip(sample.samples, -1.0, 1.0).T,
            sample.sample_rate,
            format="WAV",
            subtype=subtype,
        )
        return buf.getvalue()

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _decode_native(self, data: bytes) -> AudioSample:
        try:
            info = sf.info(io.BytesIO(data))
            y, sr = librosa.load(io.BytesIO(data), sr=None, mono=False)
        except (RuntimeError, ValueError) as exc:
            raise InputError(f"Could not decode audio data: {exc}") from exc
        return _to_sample(y, sr, _bit_depth(info.subtype))

    def _decode_transcoded(self, data: bytes, suffix: str) -> AudioSample:
        assert self._renderer is not None
        with tempfile.TemporaryDirectory(prefix="mixmaster_") as tmp:
            source = Path(tmp) / f"input{suffix}"
            source.write_bytes(data)
            wav_path = self._renderer.transcode_to_wav(str(source), str(Path(tmp) / "input.wav"))
            return self._decode_native(Path(wav_path).read_bytes())


def load_audio_file(path: str | Path) -> AudioSample:
    """Load an audio file from disk at its native rate and channel count.

    This is the only function in the engine pipeline that reads audio from
    the filesystem by path.

    Args:
        path: Absolute or relative path to an audio file.
              Supported formats: mp3, wav, flac, aiff, ogg, m4a, opus.

    Returns:
        AudioSample with shape (channels, frames).

    Raises:
        FileNotFoundError: File does not exist at the given path.
        InputError: Unsupported extension, or the file could not be decoded
                    (corrupted, truncated, DRM-protected, etc.).
    """
    file_path = Path(path)

    if not file_path.exists():
        raise FileNotFoundError(f"Audio file not found: {file_path}")

    if file_path.suffix.lower() not in AUDIO_EXTENSIONS:
        raise InputError(
            f"Unsupported audio format {file_path.suffix!r}. "
            f"Supported: {sorted(AUDIO_EXTENSIONS)}"
        )

    try:
        y, sr = librosa.load(file_path, sr=None, mono=False)
    except Exception as exc:
        raise InputError(f"Failed to decode audio file {file_path.name!r}: {exc}") from exc

    try:
        bit_depth = _bit_depth(sf.info(str(file_path)).subtype)
    except RuntimeError:
        # compressed formats without a PCM subtype
        bit_depth = 16

    logger.debug("Loaded %s: sr=%d shape=%s", file_path.name, sr, np.shape(y))
    return _to_sample(y, sr, bit_depth)
